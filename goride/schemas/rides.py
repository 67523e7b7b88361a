"""Ride schemas for request/response validation."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from goride.core.collaborators import Document


class RideCreate(BaseModel):
    """Schema for booking a ride."""

    pickup: str = Field(..., description="Pickup location")
    drop: str = Field(..., description="Drop location")

    @field_validator("pickup", "drop")
    @classmethod
    def strip_and_require(cls, v: str) -> str:
        """Trim surrounding whitespace and reject empty values."""
        v = v.strip()
        if not v:
            raise ValueError("Please enter pickup and drop")
        return v


class RideRecord(BaseModel):
    """A ride as delivered by the rides subscription."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = ""
    pickup: str = ""
    drop: str = ""
    created_at: datetime | None = Field(default=None, alias="createdAt")

    @classmethod
    def from_document(cls, doc: Document) -> "RideRecord":
        """Decode a ride document, tolerating missing or mistyped fields."""
        pickup = doc.data.get("pickup")
        drop = doc.data.get("drop")
        created_at = doc.data.get("createdAt")
        return cls(
            id=doc.id,
            pickup=pickup if isinstance(pickup, str) else "",
            drop=drop if isinstance(drop, str) else "",
            created_at=created_at if isinstance(created_at, datetime) else None,
        )


class RideListState(BaseModel):
    """Immutable view of the rides list, replaced wholesale on every change."""

    model_config = ConfigDict(frozen=True)

    uid: str | None = None
    rides: tuple[RideRecord, ...] = ()
    is_loading: bool = False
    error: str | None = None


class RideListResponse(BaseModel):
    """Rides list response, newest first."""

    rides: list[RideRecord]
    is_loading: bool
    error: str | None = None
    total: int


class RideActionResponse(BaseModel):
    """Acknowledgement of a submitted ride request."""

    id: str
    message: str
