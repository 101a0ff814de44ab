from datetime import datetime, timedelta

from consultations.services import queries


def test_list_appointments_sorts_by_date_then_time_descending(db_session, make_user, make_appointment) -> None:
    user = make_user()
    make_appointment(user, datetime(2026, 3, 3, 17, 0))
    make_appointment(user, datetime(2026, 3, 3, 19, 30))
    make_appointment(user, datetime(2026, 3, 5, 18, 0))
    make_appointment(make_user(), datetime(2026, 3, 9, 18, 0))

    page = queries.list_appointments(db_session, user_id=user.id, page=1, limit=2)

    assert [(item.appointment_date.day, item.appointment_time) for item in page['appointments']] == [
        (5, '18:00'),
        (3, '19:30'),
    ]
    assert page['pagination'] == {'page': 1, 'limit': 2, 'total': 3, 'pages': 2}

    second = queries.list_appointments(db_session, user_id=user.id, page=2, limit=2)
    assert [item.appointment_time for item in second['appointments']] == ['17:00']


def test_list_appointments_filters_by_status(db_session, make_user, make_appointment) -> None:
    user = make_user()
    make_appointment(user, datetime(2026, 3, 3, 17, 0), status='cancelled')
    make_appointment(user, datetime(2026, 3, 4, 17, 0))

    assert queries.list_appointments(db_session, status='cancelled')['pagination']['total'] == 1
    assert queries.list_appointments(db_session, status='all')['pagination']['total'] == 2


def test_user_dashboard_aggregates(db_session, make_user, make_appointment, clock) -> None:
    user = make_user()
    today = clock().date()
    make_appointment(user, clock() + timedelta(days=1), status='confirmed', payment_status='completed', amount=1999)
    make_appointment(user, clock() + timedelta(days=3))
    make_appointment(user, clock() - timedelta(days=5), status='completed', payment_status='completed', rating=4)
    make_appointment(user, clock() - timedelta(days=6), status='completed', payment_status='completed', rating=5)
    make_appointment(user, clock() - timedelta(days=7), status='cancelled', payment_status='refunded')

    data = queries.user_dashboard(db_session, user.id, today)

    assert data['stats'] == {
        'total_appointments': 5,
        'upcoming_appointments': 2,
        'completed_appointments': 2,
        'cancelled_appointments': 1,
        'total_spent': 1999 + 999 + 999,
        'average_rating': 4.5,
    }
    assert data['next_appointment'].appointment_date == today + timedelta(days=1)
    assert len(data['recent_appointments']) == 5
    assert data['consultation_breakdown'] == [{'consultation_type': 'career', 'count': 5}]


def test_admin_dashboard_counts_today_and_monthly_revenue(db_session, make_user, make_appointment, clock) -> None:
    user = make_user()
    make_appointment(user, clock(), status='confirmed', payment_status='completed')
    make_appointment(user, clock() + timedelta(days=1))
    make_appointment(user, clock() - timedelta(days=40), status='completed', payment_status='completed')

    stats = queries.admin_dashboard(db_session, clock().date())

    assert stats == {
        'total_appointments': 3,
        'todays_appointments': 1,
        'pending_appointments': 1,
        'completed_appointments': 1,
        'monthly_revenue': 999,
    }


def test_user_notifications_prioritise_payments_and_upcoming(db_session, make_user, make_appointment, clock) -> None:
    user = make_user()
    make_appointment(user, clock() + timedelta(hours=5), status='confirmed', payment_status='completed')
    make_appointment(user, clock() + timedelta(days=4))

    notices = queries.user_notifications(db_session, user.id, clock())

    assert [notice['type'] for notice in notices] == ['pending_payment', 'upcoming_appointment']
    assert notices[1]['message'] == 'You have a consultation in 5 hours at 17:00'
    assert notices[1]['priority'] == 'medium'


def test_record_timestamps_share_the_application_clock(db_session, make_user, make_appointment) -> None:
    user = make_user()
    before = datetime.now()
    fresh = make_appointment(user, before - timedelta(days=1), status='completed', payment_status='completed')
    make_appointment(
        user,
        before - timedelta(days=10),
        status='completed',
        payment_status='completed',
        updated_at=before - timedelta(days=8),
    )

    notices = queries.user_notifications(db_session, user.id, datetime.now())

    assert before <= fresh.created_at <= datetime.now()
    assert fresh.updated_at >= before
    assert [notice['id'] for notice in notices] == [f'review-{fresh.id}']
