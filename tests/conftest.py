import os
from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault('DATABASE_URL', 'sqlite://')

from consultations.auth.passwords import hash_password  # noqa: E402
from consultations.core.errors import BridgeFailure, RoomProvisioningFailed  # noqa: E402
from consultations.database import Base  # noqa: E402
from consultations.models.appointment import Appointment  # noqa: E402
from consultations.models.room_teardown import RoomTeardown  # noqa: E402
from consultations.models.user import User  # noqa: E402
from consultations.services.lifecycle import AppointmentLifecycle  # noqa: E402
from consultations.services.notifications import NotificationDispatcher  # noqa: E402
from consultations.services.payments import PaymentOrder  # noqa: E402
from consultations.services.video import RoomInfo  # noqa: E402

TEST_PASSWORD = 'secret123'
TABLES = [User.__table__, Appointment.__table__, RoomTeardown.__table__]


class FakeClock:
    def __init__(self, current: datetime) -> None:
        self.current = current

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


class FakeVideoBridge:
    def __init__(self) -> None:
        self.created = []
        self.deleted = []
        self.tokens = []
        self.fail_create = False
        self.fail_delete = False

    def create_room(self, name, expires_at, config):
        if self.fail_create:
            raise RoomProvisioningFailed()
        self.created.append((name, expires_at, config))
        return RoomInfo(name=name, url=f'https://example.daily.co/{name}')

    def delete_room(self, name):
        if self.fail_delete:
            raise BridgeFailure(f'Failed to delete room {name}.')
        self.deleted.append(name)

    def issue_token(self, room_name, display_name, elevated):
        self.tokens.append((room_name, display_name, elevated))
        return f'token-{room_name}-{"owner" if elevated else "guest"}'


class FakePaymentGateway:
    def __init__(self) -> None:
        self.verify_result = True
        self.orders = []
        self.verifications = []

    def create_order(self, amount, reference):
        order = PaymentOrder(order_id=f'order_{len(self.orders) + 1}', amount=amount * 100, currency='INR', receipt=reference)
        self.orders.append(order)
        return order

    def verify(self, order_id, payment_id, signature):
        self.verifications.append((order_id, payment_id, signature))
        return self.verify_result


class RecordingTransport:
    def __init__(self) -> None:
        self.sent = []
        self.fail = False

    def send(self, to, subject, html_content):
        if self.fail:
            raise ConnectionRefusedError('SMTP server unavailable')
        self.sent.append((to, subject, html_content))


@pytest.fixture
def db_session():
    engine = create_engine(
        'sqlite://',
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine, tables=TABLES)

    db = testing_session_local()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine, tables=list(reversed(TABLES)))


@pytest.fixture
def make_user(db_session):
    counter = {'value': 0}

    def _make_user(role: str = 'client', **overrides) -> User:
        counter['value'] += 1
        fields = {
            'email': f'user{counter["value"]}@example.com',
            'hashed_password': hash_password(TEST_PASSWORD),
            'first_name': 'Test',
            'last_name': f'User{counter["value"]}',
            'role': role,
            'is_active': True,
        }
        fields.update(overrides)
        user = User(**fields)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 12, 0))


@pytest.fixture
def video():
    return FakeVideoBridge()


@pytest.fixture
def payments():
    return FakePaymentGateway()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def notifier(transport):
    return NotificationDispatcher(transport, operator_email='operator@example.com', signature='Consultations')


@pytest.fixture
def lifecycle(db_session, payments, video, notifier, clock):
    return AppointmentLifecycle(db_session, payments, video, notifier, now=clock)


@pytest.fixture
def make_appointment(db_session):
    def _make_appointment(owner: User, start: datetime, **overrides) -> Appointment:
        fields = {
            'user_id': owner.id,
            'appointment_date': start.date(),
            'appointment_time': start.strftime('%H:%M'),
            'consultation_type': 'career',
            'package': 'basic',
            'amount': 999,
            'duration': 30,
            'client_questions': [],
            'status': 'pending',
            'payment_status': 'pending',
            'video_is_active': False,
        }
        fields.update(overrides)
        appointment = Appointment(**fields)
        db_session.add(appointment)
        db_session.commit()
        db_session.refresh(appointment)
        return appointment

    return _make_appointment
