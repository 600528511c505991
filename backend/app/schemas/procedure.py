"""Procedure catalog schemas.

JSON payloads use camelCase keys (``controlName``, ``categoryId``) so that
catalogs exported from the browser UI load without conversion.
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from app.schemas.base import FieldType


class CatalogModel(BaseModel):
    """Base model accepting both snake_case and camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CategoryDefinition(CatalogModel):
    """A shared category that procedures reference by id."""

    id: str = Field(..., min_length=1, description="Category identifier (e.g. 'gastrointestinal')")
    name: str = Field(..., description="Display name")
    sort_order: int = Field(default=0, description="Display order, lower first")


class SubcategoryDefinition(CatalogModel):
    """A subcategory for secondary grouping within categories."""

    id: str = Field(..., min_length=1, description="Subcategory identifier")
    name: str = Field(..., description="Display name")
    sort_order: int = Field(default=0, description="Display order within a category")


class ProcedureFieldDefinition(CatalogModel):
    """A single input field captured when a procedure is added."""

    type: FieldType = Field(..., description="Input control type")
    label: str = Field(..., description="Display label")
    control_name: str = Field(..., description="Field identifier used for data binding")
    list_items: list[str] | None = Field(None, description="Choices when type is 'list'")

    @model_validator(mode="after")
    def list_requires_items(self) -> "ProcedureFieldDefinition":
        """Validate that list fields declare their items."""
        if self.type == FieldType.LIST and not self.list_items:
            raise ValueError(f"List field '{self.control_name}' requires list_items")
        return self


class ProcedureDefinition(CatalogModel):
    """A procedure in the configurable catalog.

    ``control_name`` is the unique key used everywhere else, including the
    prediction statistics.
    """

    control_name: str = Field(..., min_length=1, description="Unique procedure identifier")
    description: str = Field(..., description="Human-readable procedure name")
    category_id: str = Field(default="", description="Category id reference")
    subcategory_id: str = Field(default="", description="Subcategory id reference")
    fields: list[ProcedureFieldDefinition] = Field(
        default_factory=list,
        description="Input fields; empty means the procedure is added immediately",
    )
    aliases: list[str] = Field(default_factory=list, description="Search aliases (e.g. 'LP')")
    tags: list[str] = Field(default_factory=list, description="Anatomical/contextual search tags")


class ProcedureConfig(CatalogModel):
    """Root catalog configuration for import/export."""

    version: str = Field(default="1.0", description="Schema version")
    categories: list[CategoryDefinition] = Field(default_factory=list)
    subcategories: list[SubcategoryDefinition] = Field(default_factory=list)
    procedures: list[ProcedureDefinition] = Field(default_factory=list)

    @model_validator(mode="after")
    def control_names_unique(self) -> "ProcedureConfig":
        """Validate that every procedure control name is unique."""
        seen: set[str] = set()
        duplicates: list[str] = []
        for procedure in self.procedures:
            if procedure.control_name in seen:
                duplicates.append(procedure.control_name)
            seen.add(procedure.control_name)
        if duplicates:
            raise ValueError(f"Duplicate procedure control names: {', '.join(sorted(set(duplicates)))}")
        return self
