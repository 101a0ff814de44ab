from sqlalchemy import create_engine, inspect, text
from sqlalchemy.pool import StaticPool

from consultations import database


def test_ensure_schema_adds_missing_user_columns_and_indexes(monkeypatch) -> None:
    engine = create_engine('sqlite://', connect_args={'check_same_thread': False}, poolclass=StaticPool)
    with engine.begin() as connection:
        connection.execute(text(
            'CREATE TABLE users (id INTEGER PRIMARY KEY, email VARCHAR NOT NULL, hashed_password VARCHAR NOT NULL, '
            'first_name VARCHAR NOT NULL, last_name VARCHAR NOT NULL, phone VARCHAR, role VARCHAR NOT NULL, '
            'is_active BOOLEAN NOT NULL, created_at DATETIME)'
        ))
        connection.execute(text(
            "INSERT INTO users (email, hashed_password, first_name, last_name, role, is_active) "
            "VALUES ('old@example.com', 'x', 'Old', 'User', 'client', 1)"
        ))
        connection.execute(text(
            'CREATE TABLE appointments (id INTEGER PRIMARY KEY, user_id INTEGER, appointment_date DATE, '
            'status VARCHAR, payment_status VARCHAR)'
        ))
    monkeypatch.setattr(database, '_schema_checked', False)

    database.ensure_schema(bind=engine)

    inspector = inspect(engine)
    columns = {column['name'] for column in inspector.get_columns('users')}
    indexes = {index['name'] for index in inspector.get_indexes('appointments')}
    with engine.connect() as connection:
        preferences = connection.execute(text('SELECT email_notifications, browser_notifications FROM users')).one()
    assert {'email_notifications', 'browser_notifications'} <= columns
    assert 'idx_appointments_status_date' in indexes
    assert tuple(preferences) == (1, 1)
