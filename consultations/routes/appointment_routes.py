from datetime import date, datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, field_validator

from consultations.auth.dependencies import get_current_user
from consultations.core.clients import get_lifecycle
from consultations.core.results import LifecycleResult
from consultations.models.user import User
from consultations.services.availability import slots_for_date
from consultations.services.lifecycle import AppointmentLifecycle

router = APIRouter(tags=['appointments'])

MAX_REVIEW_LENGTH = 2000


class ClientQuestion(BaseModel):
    question: str = ''
    answer: str = ''


class PackageSelection(BaseModel):
    name: str | None = None
    price: int | None = None
    duration: int | None = None


class CreateAppointmentRequest(BaseModel):
    appointment_date: date | None = None
    appointment_time: str | None = None
    consultation_type: str | None = None
    package: PackageSelection | str | None = None
    client_questions: list[ClientQuestion] = []

    @property
    def package_name(self) -> str | None:
        if isinstance(self.package, PackageSelection):
            return self.package.name
        return self.package


class ReviewRequest(BaseModel):
    rating: int | None = None
    review: str | None = None

    @field_validator('review')
    @classmethod
    def validate_review(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if len(normalized) > MAX_REVIEW_LENGTH:
            raise ValueError(f'Review must be {MAX_REVIEW_LENGTH} characters or fewer.')

        return normalized


class TimeSlotResponse(BaseModel):
    time: str
    label: str


class AvailableSlotsResponse(BaseModel):
    date: date
    available_slots: list[TimeSlotResponse]


class VideoCallResponse(BaseModel):
    room_name: str | None = None
    room_url: str | None = None
    is_active: bool = False
    started_at: datetime | None = None
    ended_at: datetime | None = None


class AppointmentResponse(BaseModel):
    id: int
    user_id: int
    appointment_date: date
    appointment_time: str
    consultation_type: str
    package: str
    amount: int
    duration: int
    client_questions: list[ClientQuestion] = []
    status: str
    payment_status: str
    order_id: str | None = None
    payment_id: str | None = None
    paid_at: datetime | None = None
    video_call: VideoCallResponse
    rating: int | None = None
    review: str | None = None
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_appointment(cls, appointment) -> 'AppointmentResponse':
        return cls(
            id=appointment.id,
            user_id=appointment.user_id,
            appointment_date=appointment.appointment_date,
            appointment_time=appointment.appointment_time,
            consultation_type=appointment.consultation_type,
            package=appointment.package,
            amount=appointment.amount,
            duration=appointment.duration,
            client_questions=appointment.client_questions or [],
            status=appointment.status,
            payment_status=appointment.payment_status,
            order_id=appointment.order_id,
            payment_id=appointment.payment_id,
            paid_at=appointment.paid_at,
            video_call=VideoCallResponse(
                room_name=appointment.video_room_name,
                room_url=appointment.video_room_url,
                is_active=bool(appointment.video_is_active),
                started_at=appointment.video_started_at,
                ended_at=appointment.video_ended_at,
            ),
            rating=appointment.rating,
            review=appointment.review,
            notes=appointment.notes,
            created_at=appointment.created_at,
            updated_at=appointment.updated_at,
        )


class SideEffectResponse(BaseModel):
    name: str
    ok: bool
    error: str | None = None


class AppointmentActionResponse(BaseModel):
    success: bool = True
    message: str
    appointment: AppointmentResponse
    side_effects: list[SideEffectResponse] = []

    @classmethod
    def from_result(cls, result: LifecycleResult, message: str) -> 'AppointmentActionResponse':
        return cls(
            message=message,
            appointment=AppointmentResponse.from_appointment(result.appointment),
            side_effects=[
                SideEffectResponse(name=effect.name, ok=effect.ok, error=effect.error)
                for effect in result.side_effects
            ],
        )


@router.get('/available-slots/{slot_date}', response_model=AvailableSlotsResponse)
def list_available_slots(slot_date: date):
    return AvailableSlotsResponse(
        date=slot_date,
        available_slots=[TimeSlotResponse(time=slot.time, label=slot.label) for slot in slots_for_date(slot_date)],
    )


@router.post('', response_model=AppointmentActionResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    current_user: User = Depends(get_current_user),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
):
    result = lifecycle.create(
        current_user,
        data.appointment_date,
        data.appointment_time,
        data.consultation_type,
        data.package_name,
        [question.model_dump() for question in data.client_questions],
    )
    return AppointmentActionResponse.from_result(result, 'Appointment created successfully')


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
):
    return AppointmentResponse.from_appointment(lifecycle.get(appointment_id, current_user))


@router.put('/{appointment_id}/cancel', response_model=AppointmentActionResponse)
def cancel_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
):
    result = lifecycle.cancel(appointment_id, current_user)
    return AppointmentActionResponse.from_result(result, 'Appointment cancelled successfully')


@router.post('/{appointment_id}/review', response_model=AppointmentActionResponse)
def submit_review(
    appointment_id: int,
    data: ReviewRequest,
    current_user: User = Depends(get_current_user),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
):
    result = lifecycle.submit_review(appointment_id, current_user, data.rating, data.review)
    return AppointmentActionResponse.from_result(result, 'Review submitted successfully')
