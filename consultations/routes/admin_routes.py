from datetime import date, datetime

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from consultations.auth.dependencies import require_admin
from consultations.core.clients import BridgeContainer, get_bridges, get_lifecycle
from consultations.database import get_db
from consultations.models.user import User
from consultations.routes.appointment_routes import AppointmentActionResponse
from consultations.routes.user_routes import AppointmentListResponse, build_list_response
from consultations.services import queries
from consultations.services.lifecycle import AppointmentLifecycle
from consultations.services.teardown import process_due_teardowns

router = APIRouter(tags=['admin'])


class AdminStatsResponse(BaseModel):
    total_appointments: int
    todays_appointments: int
    pending_appointments: int
    completed_appointments: int
    monthly_revenue: int


class StatusOverrideRequest(BaseModel):
    status: str


class TeardownRunResponse(BaseModel):
    deleted: list[str]
    failed: list[str]


@router.get('/dashboard-stats', response_model=AdminStatsResponse)
def dashboard_stats(_: User = Depends(require_admin), db: Session = Depends(get_db)):
    return AdminStatsResponse(**queries.admin_dashboard(db, date.today()))


@router.get('/appointments', response_model=AppointmentListResponse)
def list_all_appointments(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=200),
    status: str | None = Query(default=None),
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return build_list_response(queries.list_appointments(db, status=status, page=page, limit=limit))


@router.put('/appointments/{appointment_id}/status', response_model=AppointmentActionResponse)
def override_status(
    appointment_id: int,
    data: StatusOverrideRequest,
    current_user: User = Depends(require_admin),
    lifecycle: AppointmentLifecycle = Depends(get_lifecycle),
):
    result = lifecycle.override_status(appointment_id, current_user, data.status)
    return AppointmentActionResponse.from_result(result, f'Appointment {data.status} successfully')


@router.post('/room-teardowns/run', response_model=TeardownRunResponse)
def run_room_teardowns(
    _: User = Depends(require_admin),
    db: Session = Depends(get_db),
    bridges: BridgeContainer = Depends(get_bridges),
):
    report = process_due_teardowns(db, bridges.video, datetime.now())
    return TeardownRunResponse(deleted=report.deleted, failed=report.failed)
