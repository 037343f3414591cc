"""API routes exposing the activity state for snapshot and restore."""

from fastapi import APIRouter, Depends, status

from apps.base.schemas import UserProfile
from server.dependencies import get_activity_tracker, get_current_user

from .schemas import Activity
from .tracker import ActivityTracker

router = APIRouter(prefix="/activity", tags=["activity"])


@router.get("")
async def get_activity(
    user: UserProfile = Depends(get_current_user),
    tracker: ActivityTracker = Depends(get_activity_tracker),
) -> Activity:
    """Return the whole activity state."""

    return Activity(data=tracker.get_all_domain_activity())


@router.put("", status_code=status.HTTP_204_NO_CONTENT)
async def replace_activity(
    activity: Activity,
    user: UserProfile = Depends(get_current_user),
    tracker: ActivityTracker = Depends(get_activity_tracker),
) -> None:
    """Replace the whole activity state."""

    tracker.set_all_domain_activity(activity.data)
