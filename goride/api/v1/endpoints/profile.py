"""Profile endpoints."""

from fastapi import APIRouter

from goride.dependencies import CurrentHome
from goride.schemas.users import ProfileNameUpdate, ProfileResponse

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=ProfileResponse)
async def get_profile(home: CurrentHome) -> ProfileResponse:
    """Name, email and ride count of the signed-in user."""
    return home.overview()


@router.put("/name", response_model=ProfileResponse)
async def update_name(update: ProfileNameUpdate, home: CurrentHome) -> ProfileResponse:
    """Change the display name. Other profile fields are kept."""
    await home.rename(update.name)
    return home.overview().model_copy(update={"message": "Profile updated"})
