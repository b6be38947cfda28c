"""
Fusion Portal Activity - Service.

Paged verification history for the current organization and environment.
"""

import logging
import math
from datetime import datetime, timezone

from fusion_portal.auth.schemas import Environment, Organization
from fusion_portal.core.functions_client import FunctionsClient
from fusion_portal.core.notifications import Notifier
from fusion_portal.modules.activity.schemas import ActivityListResponse, ActivityQuery
from fusion_portal.schemas import PaginationMeta

logger = logging.getLogger(__name__)


def total_pages(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if page_size > 0 else 0


def export_filename(today: datetime | None = None) -> str:
    day = (today or datetime.now(timezone.utc)).date().isoformat()
    return f"verification-activity-{day}.csv"


class ActivityService:
    """Service for verification activity."""

    def __init__(self, client: FunctionsClient, notifier: Notifier):
        self.client = client
        self.notifier = notifier

    async def list_activity(
        self,
        query: ActivityQuery,
        org: Organization,
        env: Environment,
    ) -> ActivityListResponse:
        response = await self.client.get_verification_activity(
            organization_id=org.id,
            environment_id=env.id,
            page=query.page,
            limit=query.page_size,
            search=query.search,
            filters=query.filters.to_backend(),
        )
        return ActivityListResponse(
            items=response.activities,
            meta=PaginationMeta(
                total_count=response.total,
                page=query.page,
                page_size=query.page_size,
                total_pages=total_pages(response.total, query.page_size),
            ),
        )

    async def export_csv(self, query: ActivityQuery, org: Organization, env: Environment) -> bytes:
        """CSV of everything matching the search and filters, not just one page."""
        content = await self.client.export_verification_activity(
            organization_id=org.id,
            environment_id=env.id,
            search=query.search,
            filters=query.filters.to_backend(),
        )
        logger.info(f"Exported {len(content)} bytes of activity for org {org.id} env {env.id}")
        self.notifier.success("Activity exported successfully")
        return content
