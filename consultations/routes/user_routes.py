from datetime import date, datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from consultations.auth.dependencies import require_client
from consultations.database import get_db
from consultations.models.user import User
from consultations.routes.appointment_routes import AppointmentResponse
from consultations.routes.auth_routes import UserResponse, normalize_phone
from consultations.services import queries
from consultations.services.accounts import (
    delete_account,
    export_user_data,
    update_notification_preferences,
    update_profile,
)

router = APIRouter(tags=['user'])


class PaginationResponse(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class AppointmentListResponse(BaseModel):
    count: int
    pagination: PaginationResponse
    appointments: list[AppointmentResponse]


class DashboardStatsResponse(BaseModel):
    total_appointments: int
    upcoming_appointments: int
    completed_appointments: int
    cancelled_appointments: int
    total_spent: int
    average_rating: float


class ConsultationBreakdownResponse(BaseModel):
    consultation_type: str
    count: int


class DashboardResponse(BaseModel):
    stats: DashboardStatsResponse
    next_appointment: AppointmentResponse | None = None
    recent_appointments: list[AppointmentResponse]
    consultation_breakdown: list[ConsultationBreakdownResponse]


class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    message: str
    priority: str
    appointment_id: int
    created_at: datetime


class DeleteAccountRequest(BaseModel):
    password: str


class ProfileUpdateRequest(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None

    @field_validator('first_name', 'last_name')
    @classmethod
    def validate_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if not normalized:
            raise ValueError('Name is required.')
        return normalized

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, value: str | None) -> str | None:
        return normalize_phone(value)


class NotificationPreferencesRequest(BaseModel):
    email: bool | None = None
    browser: bool | None = None


class NotificationPreferencesResponse(BaseModel):
    success: bool = True
    notifications: dict[str, bool]


class DataExportResponse(BaseModel):
    profile: UserResponse
    appointments: list[AppointmentResponse]
    exported_at: datetime
    export_version: str


def build_list_response(page_data: dict) -> AppointmentListResponse:
    appointments = [AppointmentResponse.from_appointment(item) for item in page_data['appointments']]
    return AppointmentListResponse(
        count=len(appointments),
        pagination=PaginationResponse(**page_data['pagination']),
        appointments=appointments,
    )


@router.get('/dashboard', response_model=DashboardResponse)
def dashboard(current_user: User = Depends(require_client), db: Session = Depends(get_db)):
    data = queries.user_dashboard(db, current_user.id, date.today())
    next_appointment = data['next_appointment']
    return DashboardResponse(
        stats=DashboardStatsResponse(**data['stats']),
        next_appointment=AppointmentResponse.from_appointment(next_appointment) if next_appointment else None,
        recent_appointments=[AppointmentResponse.from_appointment(item) for item in data['recent_appointments']],
        consultation_breakdown=[ConsultationBreakdownResponse(**item) for item in data['consultation_breakdown']],
    )


@router.get('/appointments', response_model=AppointmentListResponse)
def my_appointments(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    status: str | None = Query(default=None),
    current_user: User = Depends(require_client),
    db: Session = Depends(get_db),
):
    return build_list_response(
        queries.list_appointments(db, user_id=current_user.id, status=status, page=page, limit=limit)
    )


@router.get('/notifications', response_model=list[NotificationResponse])
def notifications(current_user: User = Depends(require_client), db: Session = Depends(get_db)):
    return queries.user_notifications(db, current_user.id, datetime.now())


@router.delete('/account')
def remove_account(
    data: DeleteAccountRequest,
    current_user: User = Depends(require_client),
    db: Session = Depends(get_db),
):
    cancelled = delete_account(db, current_user, data.password, datetime.now())
    return {'success': True, 'message': 'Account deleted successfully', 'cancelled_appointments': cancelled}


@router.put('/profile', response_model=UserResponse)
def edit_profile(
    data: ProfileUpdateRequest,
    current_user: User = Depends(require_client),
    db: Session = Depends(get_db),
):
    return update_profile(
        db,
        current_user,
        first_name=data.first_name,
        last_name=data.last_name,
        phone=data.phone,
    )


@router.put('/notification-preferences', response_model=NotificationPreferencesResponse)
def edit_notification_preferences(
    data: NotificationPreferencesRequest,
    current_user: User = Depends(require_client),
    db: Session = Depends(get_db),
):
    preferences = update_notification_preferences(db, current_user, email=data.email, browser=data.browser)
    return NotificationPreferencesResponse(notifications=preferences)


@router.get('/export-data', response_model=DataExportResponse)
def export_data(current_user: User = Depends(require_client), db: Session = Depends(get_db)):
    data = export_user_data(db, current_user, datetime.now())
    return DataExportResponse(
        profile=UserResponse.model_validate(data['profile']),
        appointments=[AppointmentResponse.from_appointment(item) for item in data['appointments']],
        exported_at=data['exported_at'],
        export_version=data['export_version'],
    )
