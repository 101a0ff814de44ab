"""Read-side queries for dashboards, listings and in-app notices."""

import math
from datetime import date, datetime, timedelta

from sqlalchemy import func
from sqlalchemy.orm import Session

from consultations.models.appointment import (
    PAYMENT_COMPLETED,
    PAYMENT_PENDING,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_CONFIRMED,
    STATUS_PENDING,
    Appointment,
)

UPCOMING_STATUSES = (STATUS_CONFIRMED, STATUS_PENDING)
REVIEW_REQUEST_WINDOW = timedelta(days=7)
PRIORITY_ORDER = {'high': 3, 'medium': 2, 'low': 1}


def list_appointments(
    db: Session,
    *,
    user_id: int | None = None,
    status: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> dict:
    query = db.query(Appointment)
    if user_id is not None:
        query = query.filter(Appointment.user_id == user_id)
    if status and status != 'all':
        query = query.filter(Appointment.status == status)

    total = query.count()
    appointments = query.order_by(
        Appointment.appointment_date.desc(),
        Appointment.appointment_time.desc(),
    ).offset((page - 1) * limit).limit(limit).all()

    return {
        'appointments': appointments,
        'pagination': {
            'page': page,
            'limit': limit,
            'total': total,
            'pages': math.ceil(total / limit) if limit else 0,
        },
    }


def _sum_amount(query) -> int:
    return int(query.with_entities(func.coalesce(func.sum(Appointment.amount), 0)).scalar() or 0)


def user_dashboard(db: Session, user_id: int, today: date) -> dict:
    owned = db.query(Appointment).filter(Appointment.user_id == user_id)
    upcoming = owned.filter(
        Appointment.appointment_date >= today,
        Appointment.status.in_(UPCOMING_STATUSES),
    )
    average_rating = owned.filter(Appointment.rating.is_not(None)).with_entities(
        func.avg(Appointment.rating)
    ).scalar()

    breakdown = owned.with_entities(
        Appointment.consultation_type,
        func.count(Appointment.id),
    ).group_by(Appointment.consultation_type).order_by(func.count(Appointment.id).desc()).all()

    return {
        'stats': {
            'total_appointments': owned.count(),
            'upcoming_appointments': upcoming.count(),
            'completed_appointments': owned.filter(Appointment.status == STATUS_COMPLETED).count(),
            'cancelled_appointments': owned.filter(Appointment.status == STATUS_CANCELLED).count(),
            'total_spent': _sum_amount(owned.filter(Appointment.payment_status == PAYMENT_COMPLETED)),
            'average_rating': round(float(average_rating or 0), 1),
        },
        'next_appointment': upcoming.order_by(
            Appointment.appointment_date.asc(),
            Appointment.appointment_time.asc(),
        ).first(),
        'recent_appointments': owned.order_by(Appointment.appointment_date.desc()).limit(5).all(),
        'consultation_breakdown': [
            {'consultation_type': consultation_type, 'count': count}
            for consultation_type, count in breakdown
        ],
    }


def admin_dashboard(db: Session, today: date) -> dict:
    month_start = today.replace(day=1)
    appointments = db.query(Appointment)
    return {
        'total_appointments': appointments.count(),
        'todays_appointments': appointments.filter(Appointment.appointment_date == today).count(),
        'pending_appointments': appointments.filter(Appointment.status == STATUS_PENDING).count(),
        'completed_appointments': appointments.filter(Appointment.status == STATUS_COMPLETED).count(),
        'monthly_revenue': _sum_amount(appointments.filter(
            Appointment.appointment_date >= month_start,
            Appointment.payment_status == PAYMENT_COMPLETED,
        )),
    }


def user_notifications(db: Session, user_id: int, now: datetime) -> list[dict]:
    notices: list[dict] = []
    owned = db.query(Appointment).filter(Appointment.user_id == user_id)

    upcoming = owned.filter(
        Appointment.status == STATUS_CONFIRMED,
        Appointment.appointment_date >= now.date(),
        Appointment.appointment_date <= (now + timedelta(days=1)).date(),
    ).order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc()).all()
    for appointment in upcoming:
        hours_until = int((appointment.scheduled_start - now).total_seconds() // 3600)
        if 0 < hours_until <= 24:
            notices.append({
                'id': f'upcoming-{appointment.id}',
                'type': 'upcoming_appointment',
                'title': 'Upcoming Appointment',
                'message': (
                    f"You have a consultation in {hours_until} hour{'s' if hours_until > 1 else ''} "
                    f'at {appointment.appointment_time}'
                ),
                'priority': 'high' if hours_until <= 1 else 'medium',
                'appointment_id': appointment.id,
                'created_at': now,
            })

    pending_payment = owned.filter(
        Appointment.status == STATUS_PENDING,
        Appointment.payment_status == PAYMENT_PENDING,
    ).all()
    for appointment in pending_payment:
        notices.append({
            'id': f'payment-{appointment.id}',
            'type': 'pending_payment',
            'title': 'Payment Required',
            'message': f'Complete payment for your appointment on {appointment.appointment_date.isoformat()}',
            'priority': 'high',
            'appointment_id': appointment.id,
            'created_at': appointment.created_at or now,
        })

    unrated = owned.filter(
        Appointment.status == STATUS_COMPLETED,
        Appointment.rating.is_(None),
        Appointment.updated_at >= now - REVIEW_REQUEST_WINDOW,
    ).all()
    for appointment in unrated:
        notices.append({
            'id': f'review-{appointment.id}',
            'type': 'review_request',
            'title': 'Share Your Feedback',
            'message': f'Please rate your consultation from {appointment.appointment_date.isoformat()}',
            'priority': 'low',
            'appointment_id': appointment.id,
            'created_at': appointment.updated_at or now,
        })

    notices.sort(key=lambda notice: (PRIORITY_ORDER[notice['priority']], notice['created_at']), reverse=True)
    return notices
