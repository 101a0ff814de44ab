from datetime import date, datetime
from types import SimpleNamespace

from consultations.services.notifications import NotificationDispatcher


def build_appointment(**overrides):
    fields = {
        'scheduled_start': datetime(2026, 3, 3, 17, 30),
        'appointment_date': date(2026, 3, 3),
        'appointment_time': '17:30',
        'duration': 60,
        'consultation_type': 'career',
        'package': 'premium',
        'amount': 1999,
        'client_questions': [{'question': 'Job <change>?', 'answer': ''}],
        'payment_id': 'pay_1',
        'payment_status': 'refunded',
        'paid_at': datetime(2026, 3, 1, 10, 0),
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


def build_user():
    return SimpleNamespace(first_name='Asha', full_name='Asha Rao', email='asha@example.com')


def test_booked_email_goes_to_operator_and_escapes_questions(notifier, transport) -> None:
    result = notifier.send('appointment_booked', build_appointment(), build_user())

    assert result.ok
    recipient, subject, html_content = transport.sent[0]
    assert recipient == 'operator@example.com'
    assert subject == 'New Appointment - 03 Mar 2026 at 17:30'
    assert 'Job &lt;change&gt;?' in html_content


def test_client_emails_go_to_the_user(notifier, transport) -> None:
    notifier.send('payment_confirmation', build_appointment(), build_user())
    notifier.send('appointment_cancelled', build_appointment(), build_user(), {'cancelled_by': 'client'})

    assert [sent[0] for sent in transport.sent] == ['asha@example.com', 'asha@example.com']
    assert 'refund' in transport.sent[1][2]


def test_transport_errors_are_reported_not_raised(notifier, transport) -> None:
    transport.fail = True

    result = notifier.send('payment_confirmation', build_appointment(), build_user())

    assert not result.ok
    assert result.name == 'email:payment_confirmation'


def test_unknown_template_and_missing_transport_are_skipped(transport) -> None:
    assert not NotificationDispatcher(transport).send('nope', None, build_user()).ok

    result = NotificationDispatcher(None).send('welcome', None, build_user())
    assert not result.ok
    assert result.error.startswith('skipped')


def test_operator_email_without_operator_address_is_skipped(transport) -> None:
    result = NotificationDispatcher(transport).send('appointment_booked', build_appointment(), build_user())

    assert not result.ok
    assert transport.sent == []


def test_opted_out_user_gets_no_client_email_but_operator_still_notified(notifier, transport) -> None:
    user = build_user()
    user.email_notifications = False

    payment = notifier.send('payment_confirmation', build_appointment(), user)
    booked = notifier.send('appointment_booked', build_appointment(), user)

    assert payment.error == 'skipped: recipient opted out'
    assert booked.ok
    assert [sent[0] for sent in transport.sent] == ['operator@example.com']
