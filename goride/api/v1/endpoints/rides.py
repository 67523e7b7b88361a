"""Ride endpoints."""

from fastapi import APIRouter, status

from goride.dependencies import CurrentHome
from goride.schemas.rides import RideActionResponse, RideCreate, RideListResponse

router = APIRouter(prefix="/rides", tags=["rides"])


@router.get("", response_model=RideListResponse)
async def list_rides(home: CurrentHome) -> RideListResponse:
    """
    Current rides of the signed-in user, newest first.

    The list is whatever the live subscription last delivered. A ride booked a
    moment ago may not be listed yet.
    """
    state = home.ride_list()
    return RideListResponse(
        rides=list(state.rides),
        is_loading=state.is_loading,
        error=state.error,
        total=len(state.rides),
    )


@router.post("", response_model=RideActionResponse, status_code=status.HTTP_202_ACCEPTED)
async def book_ride(ride: RideCreate, home: CurrentHome) -> RideActionResponse:
    """Submit a ride. It appears in the list once the store confirms it."""
    ride_id = await home.book_ride(ride.pickup, ride.drop)
    return RideActionResponse(id=ride_id, message="Ride booked!")


@router.delete(
    "/{ride_id}", response_model=RideActionResponse, status_code=status.HTTP_202_ACCEPTED
)
async def delete_ride(ride_id: str, home: CurrentHome) -> RideActionResponse:
    """Request deletion of a ride."""
    await home.delete_ride(ride_id)
    return RideActionResponse(id=ride_id, message="Ride deleted")
