from typing import Literal

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from consultations.auth.dependencies import get_current_user
from consultations.core.clients import get_lifecycle
from consultations.models.user import User
from consultations.routes.appointment_routes import AppointmentActionResponse
from consultations.services.lifecycle import AppointmentLifecycle

router = APIRouter(tags=['video-call'])


class RoomResponse(BaseModel):
    success: bool = True
    appointment_id: int
    room_name: str
    room_url: str


class MeetingTokenResponse(BaseModel):
    success: bool = True
    token: str
    room_url: str
    room_name: str
    user_role: str


class CallStatusRequest(BaseModel):
    status: Literal['started', 'ended']


@router.post('/create-room/{appointment_id}', response_model=RoomResponse)
def create_room(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
):
    appointment = lifecycle.create_room(appointment_id, current_user).appointment
    return RoomResponse(
        appointment_id=appointment.id,
        room_name=appointment.video_room_name,
        room_url=appointment.video_room_url,
    )


@router.get('/meeting-token/{appointment_id}', response_model=MeetingTokenResponse)
def meeting_token(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
):
    access = lifecycle.issue_meeting_token(appointment_id, current_user)
    return MeetingTokenResponse(
        token=access.token,
        room_url=access.room_url,
        room_name=access.room_name,
        user_role=access.role,
    )


@router.put('/call-status/{appointment_id}', response_model=AppointmentActionResponse)
def call_status(
    appointment_id: int,
    data: CallStatusRequest,
    current_user: User = Depends(get_current_user),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
):
    result = lifecycle.set_call_status(appointment_id, current_user, data.status)
    return AppointmentActionResponse.from_result(result, f'Call {data.status} successfully')
