from datetime import date

import pytest
from pydantic import ValidationError

from consultations.routes.appointment_routes import (
    CreateAppointmentRequest,
    ReviewRequest,
    list_available_slots,
)
from consultations.routes.auth_routes import LoginRequest, RegisterRequest
from consultations.routes.payment_routes import VerifyPaymentRequest
from consultations.routes.video_routes import CallStatusRequest


def test_register_request_normalizes_fields() -> None:
    request = RegisterRequest(
        first_name=' Asha ',
        last_name='Rao',
        email=' ASHA@Example.COM ',
        password='hunter22',
        phone='  ',
    )

    assert request.first_name == 'Asha'
    assert request.email == 'asha@example.com'
    assert request.phone is None


@pytest.mark.parametrize(
    'overrides',
    [
        {'password': '123'},
        {'email': 'not-an-email'},
        {'phone': '12345'},
        {'first_name': '   '},
    ],
)
def test_register_request_rejects_invalid_fields(overrides: dict) -> None:
    fields = {'first_name': 'Asha', 'last_name': 'Rao', 'email': 'asha@example.com', 'password': 'hunter22'}
    fields.update(overrides)

    with pytest.raises(ValidationError):
        RegisterRequest(**fields)


def test_login_request_normalizes_email() -> None:
    assert LoginRequest(email=' Asha@Example.com', password='x').email == 'asha@example.com'


def test_create_appointment_request_accepts_package_object_or_name() -> None:
    as_object = CreateAppointmentRequest(package={'name': 'Basic Consultation', 'price': 1})
    as_name = CreateAppointmentRequest(package='advanced')
    missing = CreateAppointmentRequest()

    assert as_object.package_name == 'Basic Consultation'
    assert as_name.package_name == 'advanced'
    assert missing.package_name is None


def test_review_request_strips_and_limits_review() -> None:
    assert ReviewRequest(rating=4, review='  Helpful  ').review == 'Helpful'

    with pytest.raises(ValidationError):
        ReviewRequest(rating=4, review='x' * 2001)


def test_verify_payment_request_requires_identifiers() -> None:
    with pytest.raises(ValidationError):
        VerifyPaymentRequest(appointment_id=1, order_id=' ', payment_id='pay_1')


def test_call_status_request_only_accepts_started_or_ended() -> None:
    assert CallStatusRequest(status='ended').status == 'ended'

    with pytest.raises(ValidationError):
        CallStatusRequest(status='paused')


def test_list_available_slots_returns_labels() -> None:
    response = list_available_slots(date(2026, 1, 5))

    assert response.available_slots[0].label == '5:00 PM - 5:30 PM'
    assert len(response.available_slots) == 6
