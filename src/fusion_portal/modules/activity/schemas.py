"""
Fusion Portal Activity - Schemas.
"""

from datetime import date
from typing import Any

from pydantic import BaseModel, Field

from fusion_portal.core.functions_schemas import ActivityItem
from fusion_portal.schemas import PaginationMeta


class ActivityFilters(BaseModel):
    """Optional narrowing of the activity list. Empty fields are not sent."""

    result: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    api_key: str | None = None

    def to_backend(self) -> dict[str, Any]:
        values = {
            "result": self.result,
            "dateFrom": self.date_from.isoformat() if self.date_from else None,
            "dateTo": self.date_to.isoformat() if self.date_to else None,
            "apiKey": self.api_key,
        }
        return {key: value for key, value in values.items() if value}

    @property
    def active_count(self) -> int:
        return len(self.to_backend())


class ActivityQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)
    search: str = ""
    filters: ActivityFilters = Field(default_factory=ActivityFilters)


class ActivityListResponse(BaseModel):
    items: list[ActivityItem]
    meta: PaginationMeta
