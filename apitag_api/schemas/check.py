"""Schemas for the inspection endpoint."""

from pydantic import BaseModel, Field


class ProblemModel(BaseModel):
    """A problem reported by an inspection rule."""

    rule_id: str = Field(description="Rule that reported the problem")
    fqn: str = Field(description="Offending symbol")
    severity: str = Field(description="error, warning or info")
    message: str = Field(description="Problem description")
    fix: str | None = Field(default=None, description="Available quick fix")


class RuleInfo(BaseModel):
    """An available inspection rule."""

    rule_id: str
    severity: str
    description: str
    fix: str


class CheckResponse(BaseModel):
    """Inspection results."""

    problems: list[ProblemModel] = Field(default_factory=list)
    rules: list[RuleInfo] = Field(default_factory=list, description="Rules that ran")
    total: int = Field(default=0, description="Number of problems")
