"""API endpoints for employee data exports."""

from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from staffdir.database.database import get_db
from staffdir.services.export_service import ExportService
from staffdir.utils.auth import CurrentUser, get_current_user


def get_export_service(
    session: Annotated[Session, Depends(get_db)],
) -> ExportService:
    """Get export service instance."""
    return ExportService(session)


export_router = APIRouter(
    prefix="/api/export",
    tags=["Export"],
)


@export_router.get(
    "/employees/csv",
    summary="Export Employees as CSV",
    description="CSV of the employees visible to the current user; hidden values are left empty.",
)
async def export_employees_csv(
    service: Annotated[ExportService, Depends(get_export_service)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> StreamingResponse:
    csv_content, filename = service.export_employees_csv(current_user)

    return StreamingResponse(
        iter([csv_content]),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@export_router.get(
    "/hierarchy/json",
    summary="Export Hierarchy as JSON",
)
async def export_hierarchy_json(
    service: Annotated[ExportService, Depends(get_export_service)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> Dict[str, Any]:
    return service.export_hierarchy_json(current_user)


@export_router.get(
    "/stats",
    summary="Export Statistics",
)
async def export_stats(
    service: Annotated[ExportService, Depends(get_export_service)],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> Dict[str, Any]:
    return service.get_export_stats(current_user)
