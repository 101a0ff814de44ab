"""Durable deferred deletion of video rooms.

Ending a call stores a ``RoomTeardown`` row instead of arming an in-process
timer. A periodic sweep deletes every room whose row is due; failed deletions
stay pending and are retried on the next sweep, so a restart never leaks a
room.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy.orm import Session

from consultations.core.errors import BridgeFailure
from consultations.models.room_teardown import RoomTeardown
from consultations.services.video import VideoBridge

logger = logging.getLogger(__name__)


@dataclass
class TeardownReport:
    deleted: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def schedule_teardown(db: Session, room_name: str, appointment_id: int | None, due_at: datetime) -> RoomTeardown:
    """Queue ``room_name`` for deletion; returns the existing pending row if there is one.

    Does not commit.
    """
    pending = db.query(RoomTeardown).filter(
        RoomTeardown.room_name == room_name,
        RoomTeardown.completed_at.is_(None),
    ).first()
    if pending:
        return pending

    teardown = RoomTeardown(room_name=room_name, appointment_id=appointment_id, due_at=due_at, attempts=0)
    db.add(teardown)
    return teardown


def process_due_teardowns(db: Session, video: VideoBridge, now: datetime) -> TeardownReport:
    report = TeardownReport()
    due = db.query(RoomTeardown).filter(
        RoomTeardown.completed_at.is_(None),
        RoomTeardown.due_at <= now,
    ).order_by(RoomTeardown.due_at.asc()).all()

    for teardown in due:
        teardown.attempts = (teardown.attempts or 0) + 1
        try:
            video.delete_room(teardown.room_name)
        except BridgeFailure as exc:
            teardown.last_error = str(exc.__cause__ or exc)
            report.failed.append(teardown.room_name)
            logger.warning(
                'Room teardown for %s failed (attempt %s): %s',
                teardown.room_name,
                teardown.attempts,
                teardown.last_error,
            )
            continue
        except Exception as exc:
            teardown.last_error = f'{type(exc).__name__}: {exc}'
            report.failed.append(teardown.room_name)
            logger.exception('Unexpected error tearing down room %s (attempt %s)', teardown.room_name, teardown.attempts)
            continue

        teardown.completed_at = now
        teardown.last_error = None
        report.deleted.append(teardown.room_name)

    db.commit()
    if due:
        logger.info('Room teardown sweep: %s deleted, %s failed', len(report.deleted), len(report.failed))
    return report
