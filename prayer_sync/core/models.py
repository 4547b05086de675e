"""
Core DB models: task schedule (next_run persistence) and the key/value store
shared between processes (widget cache record lives here).
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import Column, String, DateTime, Text, JSON, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert

from prayer_sync.core.db import Base, session_scope


def _utc_now() -> datetime:
    """UTC now as naive datetime for DateTime(timezone=False) columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TaskSchedule(Base):
    """Per-task schedule: next_run_at and last_run_at so scheduling survives restarts."""
    __tablename__ = "task_schedules"

    component_name = Column(String(255), primary_key=True)
    schedule_type = Column(String(64), nullable=False)  # daily, hourly, interval_seconds
    schedule_config = Column(JSON, nullable=True)  # e.g. {"time": "00:05"}, {"interval_seconds": 1800}
    next_run_at = Column(DateTime(timezone=False), nullable=True)  # null = run immediately
    last_run_at = Column(DateTime(timezone=False), nullable=True)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=False), default=_utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=False), default=_utc_now, onupdate=_utc_now, nullable=False)


class KeyValueEntry(Base):
    """One serialized value under a fixed key. Last writer wins."""
    __tablename__ = "key_value_entries"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=False), default=_utc_now, onupdate=_utc_now, nullable=False)


def get_all_task_schedules() -> List[Dict[str, Any]]:
    """Return all TaskSchedule rows as list of dicts (for API). Datetimes are naive UTC."""
    with session_scope() as session:
        rows = list(session.execute(select(TaskSchedule)).scalars().all())
    return [
        {
            "component_name": r.component_name,
            "schedule_type": r.schedule_type,
            "schedule_config": r.schedule_config,
            "next_run_at": r.next_run_at,
            "last_run_at": r.last_run_at,
            "last_error": r.last_error,
        }
        for r in rows
    ]


def put_value(key: str, value: str) -> None:
    """Insert or overwrite the value stored under key in one statement (last writer wins)."""
    now = _utc_now()
    stmt = sqlite_insert(KeyValueEntry).values(key=key, value=value, updated_at=now)
    stmt = stmt.on_conflict_do_update(
        index_elements=[KeyValueEntry.key],
        set_={"value": stmt.excluded.value, "updated_at": stmt.excluded.updated_at},
    )
    with session_scope() as session:
        session.execute(stmt)


def get_value(key: str) -> Optional[str]:
    with session_scope() as session:
        row = session.get(KeyValueEntry, key)
        return row.value if row else None
