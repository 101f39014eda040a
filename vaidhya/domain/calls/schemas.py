"""Call domain schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class CallRequest(BaseModel):
    appointmentId: str


class CallDetails(BaseModel):
    appointmentId: str
    channelName: str
    token: str
    uid: int
    appId: str
    appointmentType: Optional[str] = None
    otherParticipant: Optional[str] = None


class CallInitializeResponse(BaseModel):
    message: str
    callDetails: CallDetails


class CallStartResponse(BaseModel):
    message: str
    startTime: Optional[datetime] = None


class CallEndResponse(BaseModel):
    message: str
    callDuration: Optional[int] = None
    endTime: Optional[datetime] = None
