"""
Fusion Portal Layout - Router.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from fusion_portal.config import Settings, get_settings
from fusion_portal.core.session_store import SessionStore
from fusion_portal.deps import get_session_store
from fusion_portal.modules.layout.guard import LayoutGuard
from fusion_portal.modules.layout.schemas import GuardOutcome

router = APIRouter(
    prefix="/client/dashboard",
    tags=["layout"],
)


@router.get("", response_model=GuardOutcome)
async def evaluate_layout(
    session: Annotated[SessionStore, Depends(get_session_store)],
    settings: Annotated[Settings, Depends(get_settings)],
    path: str = Query(default="/client/dashboard", description="Route being rendered"),
):
    """
    Decide what an authenticated page renders.

    Never raises for a missing session; the outcome says where to go instead.
    """
    guard = LayoutGuard(session, quota_warning_percent=settings.quota_warning_percent)
    return guard.evaluate(path)
