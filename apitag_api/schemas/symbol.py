"""Schemas for symbol detail endpoint."""

from pydantic import BaseModel, Field


class SymbolDetail(BaseModel):
    """Detailed information about a symbol."""

    fqn: str = Field(description="Fully qualified name")
    kind: str = Field(description="Symbol kind (type, method, field)")
    name: str | None = Field(default=None, description="Symbol name")
    layer: str = Field(description="Architectural layer (entry_point, abstraction, implementation, unknown)")
    declaring_type: str | None = Field(default=None, description="Declaring type FQN")
    is_interface: bool = Field(default=False, description="Whether the type is an interface")
    modifiers: list[str] = Field(default_factory=list, description="Access modifiers (public, private, etc.)")
    annotations: list[str] = Field(default_factory=list, description="Annotations")
    parameters: list[str] = Field(default_factory=list, description="Method parameter types")
    interfaces: list[str] = Field(default_factory=list, description="Declared implements list")
    documentation: str | None = Field(default=None, description="Documentation block")
    tag: str | None = Field(default=None, description="API message tag found in the documentation")
