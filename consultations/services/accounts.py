import logging
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from consultations.auth.passwords import hash_password, verify_password
from consultations.core.errors import Conflict, Unauthenticated
from consultations.core.results import SideEffectResult
from consultations.models.appointment import STATUS_CANCELLED, STATUS_CONFIRMED, STATUS_PENDING, Appointment
from consultations.models.user import User
from consultations.services.notifications import NotificationDispatcher

logger = logging.getLogger(__name__)

ACCOUNT_DELETION_NOTE = 'Cancelled due to account deletion'
EXPORT_VERSION = '1.0'


def register_user(
    db: Session,
    *,
    email: str,
    password: str,
    first_name: str,
    last_name: str,
    phone: str | None = None,
    notifier: NotificationDispatcher | None = None,
    login_url: str | None = None,
) -> tuple[User, SideEffectResult | None]:
    normalized_email = email.strip().lower()
    if db.query(User).filter(User.email == normalized_email).first():
        raise Conflict('Email already registered.')
    if phone and db.query(User).filter(User.phone == phone).first():
        raise Conflict('Phone number already registered.')

    user = User(
        email=normalized_email,
        hashed_password=hash_password(password),
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        phone=phone,
        role='client',
        is_active=True,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.info('Concurrent registration for %s rejected', normalized_email)
        raise Conflict('Email already registered.') from exc
    db.refresh(user)
    logger.info('Registered user %s', user.id)

    welcome = None
    if notifier is not None:
        welcome = notifier.send('welcome', None, user, {'login_url': login_url})
    return user, welcome


def authenticate_user(db: Session, email: str, password: str) -> User:
    user = db.query(User).filter(User.email == email.strip().lower()).first()
    if user is None or not verify_password(password, user.hashed_password):
        raise Unauthenticated('Invalid credentials.')
    if not user.is_active:
        raise Unauthenticated('Account is deactivated. Please contact support.')
    return user


def delete_account(db: Session, user: User, password: str, now: datetime) -> int:
    """Soft-delete ``user``; returns how many pending appointments were cancelled.

    Appointment history is kept. The user row is anonymised and deactivated.
    """
    if not verify_password(password, user.hashed_password):
        raise Unauthenticated('Incorrect password.')

    upcoming_confirmed = db.query(Appointment).filter(
        Appointment.user_id == user.id,
        Appointment.appointment_date >= now.date(),
        Appointment.status == STATUS_CONFIRMED,
    ).count()
    if upcoming_confirmed:
        plural = 's' if upcoming_confirmed > 1 else ''
        raise Conflict(
            f'Cannot delete account with {upcoming_confirmed} upcoming confirmed appointment{plural}. '
            'Please cancel them first.'
        )

    cancelled = db.query(Appointment).filter(
        Appointment.user_id == user.id,
        Appointment.status == STATUS_PENDING,
    ).update(
        {Appointment.status: STATUS_CANCELLED, Appointment.notes: ACCOUNT_DELETION_NOTE},
        synchronize_session=False,
    )

    user.is_active = False
    user.email = f'deleted_{user.id}@deleted.com'
    user.phone = None
    user.first_name = 'Deleted'
    user.last_name = 'User'
    db.add(user)
    db.commit()
    logger.info('Deactivated user %s, cancelled %s pending appointments', user.id, cancelled)
    return cancelled


def update_profile(
    db: Session,
    user: User,
    *,
    first_name: str | None = None,
    last_name: str | None = None,
    phone: str | None = None,
) -> User:
    """Apply the provided fields; ``None`` leaves a field unchanged."""
    if phone is not None and phone != user.phone:
        taken = db.query(User).filter(User.phone == phone, User.id != user.id).first()
        if taken:
            raise Conflict('Phone number already registered.')
        user.phone = phone
    if first_name is not None:
        user.first_name = first_name.strip()
    if last_name is not None:
        user.last_name = last_name.strip()

    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info('Updated profile for user %s', user.id)
    return user


def change_password(db: Session, user: User, current_password: str, new_password: str) -> User:
    if not verify_password(current_password, user.hashed_password):
        raise Unauthenticated('Current password is incorrect.')

    user.hashed_password = hash_password(new_password)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info('Password changed for user %s', user.id)
    return user


def update_notification_preferences(
    db: Session,
    user: User,
    *,
    email: bool | None = None,
    browser: bool | None = None,
) -> dict[str, bool]:
    if email is not None:
        user.email_notifications = email
    if browser is not None:
        user.browser_notifications = browser

    db.add(user)
    db.commit()
    db.refresh(user)
    return notification_preferences(user)


def notification_preferences(user: User) -> dict[str, bool]:
    return {'email': bool(user.email_notifications), 'browser': bool(user.browser_notifications)}


def export_user_data(db: Session, user: User, now: datetime) -> dict:
    appointments = db.query(Appointment).filter(Appointment.user_id == user.id).order_by(
        Appointment.appointment_date.asc(),
        Appointment.appointment_time.asc(),
    ).all()
    return {
        'profile': user,
        'appointments': appointments,
        'exported_at': now,
        'export_version': EXPORT_VERSION,
    }
