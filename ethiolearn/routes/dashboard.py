"""Landing view route."""

from fastapi import APIRouter, Query

from ..auth import CurrentUser
from ..dashboard import DashboardResponse, Tab, view_for

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("", response_model=DashboardResponse)
async def get_dashboard(
    user: CurrentUser,
    tab: Tab = Query("welcome", description="Tab the client is showing"),
):
    """Return the caller's role-specific landing view."""
    return DashboardResponse(active_tab=tab, view=view_for(user.role))
