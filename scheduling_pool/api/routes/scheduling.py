import logging

from fastapi import APIRouter, HTTPException, Query, status

from scheduling_pool.schemas.scheduling import (
    BookingRequest,
    BookingResponse,
    SchedulingSlotsResponse,
)
from scheduling_pool.services.scheduling_errors import (
    InvalidRequestError,
    NoAvailabilityError,
    UpstreamError,
)
from scheduling_pool.services.scheduling_service import SchedulingService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["scheduling"])


@router.get("/slots", response_model=SchedulingSlotsResponse)
async def get_slots(
    start: str | None = Query(default=None),
    end: str | None = Query(default=None),
    timezone: str | None = Query(default=None),
) -> SchedulingSlotsResponse:
    try:
        service = SchedulingService()
        return await service.list_slots(start=start, end=end, timezone=timezone)
    except InvalidRequestError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Slot listing failed start=%s end=%s timezone=%s", start, end, timezone)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc


@router.post("/book", response_model=BookingResponse, response_model_exclude_none=True)
async def book_slot(payload: BookingRequest) -> BookingResponse:
    try:
        service = SchedulingService()
        return await service.book(payload)
    except InvalidRequestError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except NoAvailabilityError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except UpstreamError as exc:
        logger.warning(
            "Booking failed upstream status=%s start=%s end=%s",
            exc.status_code,
            payload.start_time,
            payload.end_time,
        )
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    except Exception as exc:
        logger.exception("Booking failed start=%s end=%s", payload.start_time, payload.end_time)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
