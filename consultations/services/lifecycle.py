"""Appointment lifecycle controller.

Every operation is a single load-check-modify-commit against one appointment.
All preconditions (input, existence, authorization, state) are checked before
the record is touched, so a failed operation never writes. Payment, video and
notification bridges are injected, and notification failures are reported in
the returned ``LifecycleResult`` instead of failing the operation.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Callable, Iterable

from sqlalchemy.orm import Session

from consultations.auth.policy import Operation, can_act
from consultations.core import config
from consultations.core.errors import (
    Forbidden,
    InvalidInput,
    InvalidRating,
    InvalidTransition,
    MissingField,
    NotCompleted,
    NotFound,
    PaymentVerificationFailed,
    TooLate,
)
from consultations.core.results import LifecycleResult
from consultations.models.appointment import (
    PAYMENT_COMPLETED,
    PAYMENT_FAILED,
    PAYMENT_PENDING,
    PAYMENT_REFUNDED,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_CONFIRMED,
    STATUS_IN_PROGRESS,
    STATUS_PENDING,
    Appointment,
)
from consultations.models.user import User
from consultations.services.notifications import NotificationDispatcher
from consultations.services.packages import resolve_package
from consultations.services.payments import PaymentGateway, PaymentOrder
from consultations.services.teardown import schedule_teardown
from consultations.services.video import RoomConfig, VideoBridge, room_name_for

logger = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r'^([01]?\d|2[0-3]):([0-5]\d)$')
CALL_STARTED = 'started'
CALL_ENDED = 'ended'
OVERRIDE_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_COMPLETED, STATUS_CANCELLED)


@dataclass(frozen=True)
class MeetingAccess:
    token: str
    room_url: str
    room_name: str
    role: str


@dataclass(frozen=True)
class OrderResult:
    order: PaymentOrder
    appointment: Appointment


def normalize_time(value: str) -> str:
    match = TIME_PATTERN.match(value.strip())
    if not match:
        raise InvalidInput('Appointment time must be in HH:MM format.')
    return f'{int(match.group(1)):02d}:{match.group(2)}'


def _coerce_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as exc:
        raise InvalidInput('Appointment date must be an ISO date (YYYY-MM-DD).') from exc


def _normalize_questions(questions: Iterable[Any] | None) -> list[dict[str, str]]:
    normalized = []
    for item in questions or []:
        if isinstance(item, dict):
            question, answer = item.get('question'), item.get('answer')
        else:
            question, answer = getattr(item, 'question', None), getattr(item, 'answer', None)
        normalized.append({'question': str(question or ''), 'answer': str(answer or '')})
    return normalized


class AppointmentLifecycle:
    def __init__(
        self,
        db: Session,
        payments: PaymentGateway,
        video: VideoBridge,
        notifier: NotificationDispatcher,
        now: Callable[[], datetime] = datetime.now,
        *,
        cancellation_lead: timedelta = timedelta(hours=config.CANCELLATION_LEAD_HOURS),
        room_expiry: timedelta = timedelta(hours=config.ROOM_EXPIRY_HOURS),
        teardown_delay: timedelta = timedelta(minutes=config.ROOM_TEARDOWN_DELAY_MINUTES),
    ) -> None:
        self.db = db
        self.payments = payments
        self.video = video
        self.notifier = notifier
        self.now = now
        self.cancellation_lead = cancellation_lead
        self.room_expiry = room_expiry
        self.teardown_delay = teardown_delay

    def _load(self, appointment_id: int) -> Appointment:
        appointment = self.db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if appointment is None:
            raise NotFound('Appointment not found.')
        return appointment

    def _authorize(self, appointment: Appointment, user: User, operation: Operation, message: str) -> None:
        if not can_act(user.role, appointment.user_id, user.id, operation):
            logger.info('User %s denied %s on appointment %s', user.id, operation.value, appointment.id)
            raise Forbidden(message)

    def _save(self, appointment: Appointment) -> Appointment:
        self.db.add(appointment)
        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    def get(self, appointment_id: int, user: User) -> Appointment:
        appointment = self._load(appointment_id)
        self._authorize(appointment, user, Operation.VIEW, 'Not authorized to access this appointment.')
        return appointment

    def create(
        self,
        user: User,
        appointment_date: date | str | None,
        appointment_time: str | None,
        consultation_type: str | None,
        package_name: str | None,
        client_questions: Iterable[Any] | None = None,
    ) -> LifecycleResult:
        required = {
            'appointment_date': appointment_date,
            'appointment_time': appointment_time,
            'consultation_type': consultation_type.strip() if consultation_type else consultation_type,
            'package': package_name.strip() if package_name else package_name,
        }
        missing = [name for name, value in required.items() if not value]
        if missing:
            raise MissingField('Missing required fields.', details={'missing': missing})

        package = resolve_package(package_name)
        appointment = Appointment(
            user_id=user.id,
            appointment_date=_coerce_date(appointment_date),
            appointment_time=normalize_time(appointment_time),
            consultation_type=consultation_type.strip().lower(),
            package=package.name,
            amount=package.amount,
            duration=package.duration_minutes,
            client_questions=_normalize_questions(client_questions),
            status=STATUS_PENDING,
            payment_status=PAYMENT_PENDING,
            video_is_active=False,
        )
        self._save(appointment)
        logger.info('Appointment %s created by user %s (%s)', appointment.id, user.id, package.name)

        result = LifecycleResult(appointment)
        result.side_effects.append(self.notifier.send('appointment_booked', appointment, user))
        return result

    def cancel(self, appointment_id: int, user: User) -> LifecycleResult:
        appointment = self._load(appointment_id)
        self._authorize(appointment, user, Operation.CANCEL, 'Not authorized to cancel this appointment.')

        if appointment.is_terminal:
            raise InvalidTransition(f'Appointment is already {appointment.status}.')

        lead_time = appointment.scheduled_start - self.now()
        if lead_time < self.cancellation_lead and appointment.status != STATUS_PENDING:
            raise TooLate()

        appointment.status = STATUS_CANCELLED
        appointment.payment_status = PAYMENT_REFUNDED
        self._save(appointment)
        logger.info('Appointment %s cancelled by user %s', appointment.id, user.id)

        result = LifecycleResult(appointment)
        result.side_effects.append(
            self.notifier.send('appointment_cancelled', appointment, appointment.user, {'cancelled_by': 'client'})
        )
        return result

    def submit_review(self, appointment_id: int, user: User, rating: Any, review: str | None = None) -> LifecycleResult:
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise InvalidRating()

        appointment = self._load(appointment_id)
        self._authorize(appointment, user, Operation.REVIEW, 'Not authorized to review this appointment.')
        if appointment.status != STATUS_COMPLETED:
            raise NotCompleted()

        appointment.rating = rating
        appointment.review = (review or '').strip()
        self._save(appointment)
        return LifecycleResult(appointment)

    def create_payment_order(self, appointment_id: int, user: User) -> OrderResult:
        appointment = self._load(appointment_id)
        self._authorize(appointment, user, Operation.PAY, 'Not authorized.')
        if appointment.is_terminal or appointment.payment_status == PAYMENT_COMPLETED:
            raise InvalidTransition('Appointment does not accept payments.')

        order = self.payments.create_order(appointment.amount, f'appointment_{appointment.id}')
        appointment.order_id = order.order_id
        self._save(appointment)
        return OrderResult(order=order, appointment=appointment)

    def verify_payment(
        self,
        appointment_id: int,
        user: User,
        order_id: str,
        payment_id: str,
        signature: str,
    ) -> LifecycleResult:
        appointment = self._load(appointment_id)
        self._authorize(appointment, user, Operation.PAY, 'Not authorized.')

        if appointment.payment_status == PAYMENT_COMPLETED:
            return LifecycleResult(appointment)
        if appointment.is_terminal:
            raise InvalidTransition(f'Appointment is already {appointment.status}.')
        if appointment.order_id and order_id != appointment.order_id:
            raise PaymentVerificationFailed('Order does not belong to this appointment.')
        if not self.payments.verify(order_id, payment_id, signature):
            raise PaymentVerificationFailed()

        appointment.payment_status = PAYMENT_COMPLETED
        if appointment.status == STATUS_PENDING:
            appointment.status = STATUS_CONFIRMED
        appointment.order_id = order_id
        appointment.payment_id = payment_id
        appointment.paid_at = self.now()
        self._save(appointment)
        logger.info('Payment %s verified for appointment %s', payment_id, appointment.id)

        result = LifecycleResult(appointment)
        result.side_effects.append(self.notifier.send('payment_confirmation', appointment, appointment.user))
        return result

    def record_payment_failure(self, appointment_id: int, user: User) -> LifecycleResult:
        appointment = self._load(appointment_id)
        self._authorize(appointment, user, Operation.PAY, 'Not authorized.')
        if appointment.payment_status == PAYMENT_COMPLETED:
            raise InvalidTransition('Payment is already completed.')

        appointment.payment_status = PAYMENT_FAILED
        appointment.status = STATUS_CANCELLED
        self._save(appointment)
        return LifecycleResult(appointment)

    def create_room(self, appointment_id: int, user: User) -> LifecycleResult:
        appointment = self._load(appointment_id)
        self._authorize(appointment, user, Operation.CREATE_ROOM, 'Not authorized to access this appointment.')

        if appointment.video_room_name:
            return LifecycleResult(appointment)
        if appointment.is_terminal:
            raise InvalidTransition(f'Appointment is already {appointment.status}.')

        expires_at = appointment.scheduled_start + self.room_expiry
        room = self.video.create_room(room_name_for(appointment.id), expires_at, RoomConfig())

        appointment.video_room_name = room.name
        appointment.video_room_url = room.url
        appointment.video_is_active = False
        self._save(appointment)
        return LifecycleResult(appointment)

    def issue_meeting_token(self, appointment_id: int, user: User) -> MeetingAccess:
        appointment = self._load(appointment_id)
        if not appointment.video_room_name:
            raise NotFound('Video call room not found.')
        self._authorize(appointment, user, Operation.ISSUE_TOKEN, 'Not authorized.')

        elevated = user.is_admin
        token = self.video.issue_token(appointment.video_room_name, user.full_name, elevated)
        return MeetingAccess(
            token=token,
            room_url=appointment.video_room_url,
            room_name=appointment.video_room_name,
            role='admin' if elevated else 'participant',
        )

    def set_call_status(self, appointment_id: int, user: User, status: str) -> LifecycleResult:
        if status not in (CALL_STARTED, CALL_ENDED):
            raise InvalidInput("Call status must be 'started' or 'ended'.")

        appointment = self._load(appointment_id)
        self._authorize(appointment, user, Operation.CALL_STATUS, 'Not authorized.')
        if appointment.is_terminal:
            raise InvalidTransition(f'Appointment is already {appointment.status}.')

        now = self.now()
        if status == CALL_STARTED:
            if appointment.status == STATUS_IN_PROGRESS:
                return LifecycleResult(appointment)
            appointment.video_is_active = True
            appointment.video_started_at = now
            appointment.status = STATUS_IN_PROGRESS
        else:
            appointment.video_is_active = False
            appointment.video_ended_at = now
            appointment.status = STATUS_COMPLETED
            if appointment.video_room_name:
                schedule_teardown(self.db, appointment.video_room_name, appointment.id, now + self.teardown_delay)

        self._save(appointment)
        logger.info('Call %s for appointment %s', status, appointment.id)
        return LifecycleResult(appointment)

    def override_status(self, appointment_id: int, user: User, status: str) -> LifecycleResult:
        """Administrative escape hatch: set ``status`` directly, from any state.

        Confirming an appointment whose payment is still pending marks the
        payment completed without going through the payment gateway.
        """
        if status not in OVERRIDE_STATUSES:
            raise InvalidInput('Invalid status.', details={'allowed': list(OVERRIDE_STATUSES)})

        appointment = self._load(appointment_id)
        self._authorize(appointment, user, Operation.OVERRIDE_STATUS, 'Access denied. Admin privileges required.')

        appointment.status = status
        if status == STATUS_CONFIRMED and appointment.payment_status == PAYMENT_PENDING:
            appointment.payment_status = PAYMENT_COMPLETED
        self._save(appointment)
        logger.info('Admin %s set appointment %s to %s', user.id, appointment.id, status)
        return LifecycleResult(appointment)
