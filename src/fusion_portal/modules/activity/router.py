"""
Fusion Portal Activity - Router.
"""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from fusion_portal.auth.schemas import Environment, Organization
from fusion_portal.core.functions_client import FunctionsClient
from fusion_portal.core.notifications import Notifier
from fusion_portal.deps import (
    get_functions_client,
    get_notifier,
    require_activity,
    require_environment,
    require_organization,
)
from fusion_portal.modules.activity.schemas import ActivityFilters, ActivityListResponse, ActivityQuery
from fusion_portal.modules.activity.service import ActivityService, export_filename

router = APIRouter(
    prefix="/client/activity",
    tags=["activity"],
    dependencies=[require_activity],
)


def get_service(
    client: Annotated[FunctionsClient, Depends(get_functions_client)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
) -> ActivityService:
    """Get activity service instance."""
    return ActivityService(client, notifier)


def get_query(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
    search: str = Query(default=""),
    result: str | None = Query(default=None),
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    api_key: str | None = Query(default=None),
) -> ActivityQuery:
    return ActivityQuery(
        page=page,
        page_size=page_size,
        search=search,
        filters=ActivityFilters(result=result, date_from=date_from, date_to=date_to, api_key=api_key),
    )


Service = Annotated[ActivityService, Depends(get_service)]
CurrentOrganization = Annotated[Organization, Depends(require_organization)]
CurrentEnvironment = Annotated[Environment, Depends(require_environment)]
Filters = Annotated[ActivityQuery, Depends(get_query)]


@router.get("", response_model=ActivityListResponse)
async def list_activity(query: Filters, org: CurrentOrganization, env: CurrentEnvironment, service: Service):
    """One page of verification history with search and filters."""
    return await service.list_activity(query, org, env)


@router.get("/export")
async def export_activity(query: Filters, org: CurrentOrganization, env: CurrentEnvironment, service: Service):
    """Download the filtered history as CSV."""
    content = await service.export_csv(query, org, env)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )
