"""Procedure catalog API endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.schemas.procedure import ProcedureDefinition
from app.services.procedure_catalog import ProcedureCatalogService, get_procedure_catalog_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/procedures", tags=["Procedures"])

# Type alias for the catalog dependency
Catalog = Annotated[ProcedureCatalogService, Depends(get_procedure_catalog_service)]


@router.get(
    "",
    response_model=list[ProcedureDefinition],
    summary="List procedures",
)
def list_procedures(
    catalog: Catalog,
    category_id: str | None = Query(None, description="Only procedures in this category"),
) -> list[ProcedureDefinition]:
    """List catalog procedures, optionally filtered by category."""
    if category_id:
        return catalog.get_procedures_by_category(category_id)
    return catalog.procedures


# Registered before /{control_name} so "search" is not taken as a control name
@router.get(
    "/search",
    response_model=list[ProcedureDefinition],
    summary="Search procedures",
    description="Case-insensitive search over descriptions, control names, aliases and tags.",
)
def search_procedures(
    catalog: Catalog,
    q: str = Query(..., min_length=1, description="Search text"),
    limit: int = Query(20, ge=1, le=100),
) -> list[ProcedureDefinition]:
    return catalog.search(q, limit=limit)


@router.get(
    "/{control_name}",
    response_model=ProcedureDefinition,
    summary="Get a procedure",
)
def get_procedure(control_name: str, catalog: Catalog) -> ProcedureDefinition:
    """Get a procedure by control name.

    Raises:
        HTTPException: 404 if the procedure is not in the catalog.
    """
    procedure = catalog.get_procedure(control_name)
    if procedure is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Procedure {control_name} not found",
        )
    return procedure
