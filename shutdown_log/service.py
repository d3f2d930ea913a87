"""
Read/update contract for daily logs.

Each operation takes the caller's explicit session and the store it should
talk to. When the session has no identity, operations short-circuit to an
empty result without touching the store. Store errors propagate as
`StoreFailure` so callers can tell "nothing there yet" apart from "could not
reach the store".
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from shutdown_log.auth import AuthProvider, Session, current_user
from shutdown_log.db import DbClient
from shutdown_log.sections import merge_changes
from shutdown_log.types import DailyLog, LogHistoryItem, default_log_data

logger = logging.getLogger(__name__)


def today_in(tz_name: str = "UTC") -> str:
    """Today's calendar date in `tz_name`, formatted YYYY-MM-DD."""
    try:
        tz = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown time zone: {tz_name}") from exc
    return datetime.now(tz).date().isoformat()


def get_or_create_today_log(
    session: Session,
    *,
    auth: AuthProvider,
    db: DbClient,
    tz_name: str = "UTC",
    today: Optional[date] = None,
) -> Optional[DailyLog]:
    user = current_user(session, auth)
    if not user:
        return None

    day = today.isoformat() if today else today_in(tz_name)
    existing = db.find_log(user.id, day)
    if existing:
        return existing

    log = db.create_log(user.id, day, default_log_data(day))
    logger.info("Created log %s for user %s on %s", log.id, user.id, day)
    return log


def update_log(
    session: Session,
    log_id: str,
    log_data: dict,
    *,
    auth: AuthProvider,
    db: DbClient,
    expected_revision: Optional[int] = None,
) -> Optional[DailyLog]:
    """
    Replace the whole payload of a log. The payload is stored as given; the
    caller merges its change into the last-known payload first.
    """
    if not current_user(session, auth):
        return None
    updated = db.update_log_data(
        log_id, log_data, expected_revision=expected_revision
    )
    if updated:
        logger.info("Updated log %s to revision %d", log_id, updated.revision)
    return updated


def apply_changes(
    session: Session,
    log_id: str,
    changes: dict,
    *,
    auth: AuthProvider,
    db: DbClient,
    expected_revision: Optional[int] = None,
) -> Optional[DailyLog]:
    """Merge top-level payload fields into the stored payload and save it."""
    log = get_log_by_id(session, log_id, auth=auth, db=db)
    if not log:
        return None
    revision = log.revision if expected_revision is None else expected_revision
    return update_log(
        session,
        log_id,
        merge_changes(log.log_data, changes),
        auth=auth,
        db=db,
        expected_revision=revision,
    )


def list_history(
    session: Session, *, auth: AuthProvider, db: DbClient
) -> list[LogHistoryItem]:
    user = current_user(session, auth)
    if not user:
        return []
    return db.list_log_summaries(user.id)


def get_log_by_id(
    session: Session, log_id: str, *, auth: AuthProvider, db: DbClient
) -> Optional[DailyLog]:
    """Plain lookup; ownership is enforced by the caller's access policy."""
    if not current_user(session, auth):
        return None
    return db.get_log(log_id)
