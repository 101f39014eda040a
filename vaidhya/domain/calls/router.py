"""Call router - FastAPI endpoints for appointment video/audio calls"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from ...services.call_session_service import CallSessionService, get_call_session_service
from .schemas import (
    CallDetails,
    CallEndResponse,
    CallInitializeResponse,
    CallRequest,
    CallStartResponse,
)
from .service import CallService

router = APIRouter(prefix="/calls", tags=["Calls"])


def get_call_service(
    db: Session = Depends(get_db),
    sessions: CallSessionService = Depends(get_call_session_service),
) -> CallService:
    """Dependency injection for CallService"""
    return CallService(db, sessions)


@router.post("/initialize", response_model=CallInitializeResponse)
async def initialize_call(
    data: CallRequest,
    current_user: User = Depends(get_current_user),
    service: CallService = Depends(get_call_service),
):
    """Get the channel and the caller's join token"""
    details = service.initialize(data.appointmentId, current_user)
    return CallInitializeResponse(
        message="Call initialized successfully", callDetails=CallDetails(**details)
    )


@router.post("/start", response_model=CallStartResponse)
async def start_call(
    data: CallRequest,
    current_user: User = Depends(get_current_user),
    service: CallService = Depends(get_call_service),
):
    appointment = service.start(data.appointmentId, current_user)
    return CallStartResponse(message="Call started successfully", startTime=appointment.call_start_time)


@router.post("/end", response_model=CallEndResponse)
async def end_call(
    data: CallRequest,
    current_user: User = Depends(get_current_user),
    service: CallService = Depends(get_call_service),
):
    appointment = service.end(data.appointmentId, current_user)
    return CallEndResponse(
        message="Call ended successfully",
        callDuration=appointment.call_duration,
        endTime=appointment.call_end_time,
    )
