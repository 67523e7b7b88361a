"""User profile schemas."""

from pydantic import BaseModel, Field


class UserProfile(BaseModel):
    """Profile stored at users/{uid}."""

    uid: str
    display_name: str
    email: str | None = None


class ProfileNameUpdate(BaseModel):
    """Schema for editing the display name."""

    name: str = Field(..., max_length=100, description="New display name")


class ProfileResponse(UserProfile):
    """Profile as shown in the profile dialog."""

    total_rides: int = 0
    rides_loading: bool = False
    rides_error: str | None = None
    message: str | None = None
