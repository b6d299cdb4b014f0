"""Symbol detail endpoint."""

from fastapi import APIRouter, Depends, HTTPException

from apitag_api.dependencies import get_code_model
from apitag_api.schemas.symbol import SymbolDetail
from apitag_core.code_model.sqlite_model import SQLiteCodeModel
from apitag_core.utils.layer import classify

router = APIRouter()


@router.get("/symbols/{fqn:path}", response_model=SymbolDetail)
def get_symbol(fqn: str, model: SQLiteCodeModel = Depends(get_code_model)) -> SymbolDetail:
    """Get a symbol with its layer and current tag."""
    with model.read_scope():
        symbol = model.get_symbol(fqn)
        if symbol is None:
            raise HTTPException(status_code=404, detail=f"Symbol not found: {fqn}")

        return SymbolDetail(
            fqn=symbol.fqn,
            kind=symbol.kind.value,
            name=symbol.name,
            layer=classify(symbol).value,
            declaring_type=symbol.declaring_type.fqn if symbol.declaring_type else None,
            is_interface=symbol.is_interface,
            modifiers=list(symbol.modifiers),
            annotations=list(symbol.annotations),
            parameters=list(symbol.parameters),
            interfaces=list(symbol.interfaces),
            documentation=symbol.documentation,
            tag=symbol.existing_tag,
        )
