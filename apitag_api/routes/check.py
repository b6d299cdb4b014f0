"""Inspection endpoint: tag problems across the loaded project."""

from fastapi import APIRouter, Depends, HTTPException, Query

from apitag_analyzer.inspections.runner import InspectionRunner
from apitag_api.dependencies import get_inspection_runner
from apitag_api.schemas.check import CheckResponse, ProblemModel, RuleInfo

router = APIRouter()


@router.get("/check", response_model=CheckResponse)
def run_check(
    rule: str | None = Query(None, description="Only run this rule"),
    runner: InspectionRunner = Depends(get_inspection_runner),
) -> CheckResponse:
    """Run inspection rules and return the problems found."""
    rules = runner.list_rules()
    if rule:
        rules = [r for r in rules if r["rule_id"] == rule]
        if not rules:
            raise HTTPException(status_code=404, detail=f"Unknown rule: {rule}")
        problems = runner.run_rule(rule)
    else:
        problems = runner.run_all()

    return CheckResponse(
        problems=[
            ProblemModel(
                rule_id=p.rule_id,
                fqn=p.fqn,
                severity=p.severity.value,
                message=p.message,
                fix=p.fix_name,
            )
            for p in problems
        ],
        rules=[RuleInfo(**r) for r in rules],
        total=len(problems),
    )
