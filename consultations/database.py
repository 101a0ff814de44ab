import os
from dotenv import load_dotenv
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker


load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./consultations.db")

engine = create_engine(DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_schema_checked = False

COLUMN_MIGRATIONS = {
    'users': [
        ('email_notifications', 'ALTER TABLE users ADD COLUMN email_notifications BOOLEAN NOT NULL DEFAULT TRUE'),
        ('browser_notifications', 'ALTER TABLE users ADD COLUMN browser_notifications BOOLEAN NOT NULL DEFAULT TRUE'),
    ],
}

INDEX_STATEMENTS = {
    'appointments': [
        'CREATE INDEX IF NOT EXISTS idx_appointments_user_date ON appointments(user_id, appointment_date)',
        'CREATE INDEX IF NOT EXISTS idx_appointments_status_date ON appointments(status, appointment_date)',
        'CREATE INDEX IF NOT EXISTS idx_appointments_payment_date ON appointments(payment_status, appointment_date)',
    ],
    'room_teardowns': [
        'CREATE INDEX IF NOT EXISTS idx_room_teardowns_pending ON room_teardowns(completed_at, due_at)',
    ],
}


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_schema(bind=None) -> None:
    global _schema_checked

    if _schema_checked:
        return

    with _schema_lock:
        if _schema_checked:
            return

        target = bind or engine
        inspector = inspect(target)
        existing_tables = set(inspector.get_table_names())

        with target.begin() as connection:
            for table_name, steps in COLUMN_MIGRATIONS.items():
                if table_name not in existing_tables:
                    continue
                existing_columns = {column['name'] for column in inspector.get_columns(table_name)}
                for column_name, statement in steps:
                    if column_name not in existing_columns:
                        connection.execute(text(statement))

            for table_name, statements in INDEX_STATEMENTS.items():
                if table_name not in existing_tables:
                    continue
                for statement in statements:
                    connection.execute(text(statement))

        _schema_checked = True
