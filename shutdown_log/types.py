"""
Shapes of the daily log and its structured payload.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional

CLEANUP_FLAGS = (
    "cleared_desktop",
    "closed_files_tabs",
    "updated_calendar",
    "desk_reset",
)

STRING_LIST_FIELDS = (
    "accomplished",
    "in_progress",
    "tomorrow_priorities",
    "loose_thoughts",
)


def _string(value: Any) -> str:
    return value if isinstance(value, str) else ""


def string_list(value: Any) -> list[str]:
    """Keep the string entries of a stored list; anything else reads as empty."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _pair_list(value: Any) -> list[dict]:
    if not isinstance(value, list):
        return []
    return [
        {"item": _string(pair.get("item")), "needs": _string(pair.get("needs"))}
        for pair in value
        if isinstance(pair, dict)
    ]


@dataclass
class BlockerItem:
    item: str
    needs: str


@dataclass
class DecisionNeededItem:
    item: str
    needs: str


@dataclass
class CleanupStatus:
    cleared_desktop: bool = False
    closed_files_tabs: bool = False
    updated_calendar: bool = False
    desk_reset: bool = False


@dataclass
class LogData:
    """The reflection payload stored as `log_data` on every daily log."""

    date: str
    accomplished: list[str] = field(default_factory=list)
    in_progress: list[str] = field(default_factory=list)
    not_done_reasoning: dict[str, str] = field(default_factory=dict)
    blockers: list[BlockerItem] = field(default_factory=list)
    decisions_needed: list[DecisionNeededItem] = field(default_factory=list)
    tomorrow_priorities: list[str] = field(default_factory=list)
    loose_thoughts: list[str] = field(default_factory=list)
    cleanup: CleanupStatus = field(default_factory=CleanupStatus)
    shutdown_ritual: str = ""

    def as_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> "LogData":
        """
        Build a payload from stored JSON. Payloads are stored as given, so any
        missing or wrong-typed field falls back to its creation default.
        """
        if not isinstance(data, dict):
            data = {}
        cleanup = data.get("cleanup")
        if not isinstance(cleanup, dict):
            cleanup = {}
        reasoning = data.get("not_done_reasoning")
        if not isinstance(reasoning, dict):
            reasoning = {}
        return cls(
            date=_string(data.get("date")),
            accomplished=string_list(data.get("accomplished")),
            in_progress=string_list(data.get("in_progress")),
            not_done_reasoning={
                k: v
                for k, v in reasoning.items()
                if isinstance(k, str) and isinstance(v, str)
            },
            blockers=[
                BlockerItem(**pair) for pair in _pair_list(data.get("blockers"))
            ],
            decisions_needed=[
                DecisionNeededItem(**pair)
                for pair in _pair_list(data.get("decisions_needed"))
            ],
            tomorrow_priorities=string_list(data.get("tomorrow_priorities")),
            loose_thoughts=string_list(data.get("loose_thoughts")),
            cleanup=CleanupStatus(
                **{flag: cleanup.get(flag) is True for flag in CLEANUP_FLAGS}
            ),
            shutdown_ritual=_string(data.get("shutdown_ritual")),
        )


def default_log_data(date: str) -> dict:
    """Payload every new daily log starts from."""
    return LogData(date=date).as_dict()


@dataclass
class DailyLog:
    id: str
    user_id: str
    date: str
    log_data: dict
    revision: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def payload(self) -> LogData:
        return LogData.from_dict(self.log_data)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "date": self.date,
            "log_data": self.log_data,
            "revision": self.revision,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class LogHistoryItem:
    """Summary projection used by the history listing."""

    id: str
    date: str
    accomplished: list[str]
    in_progress: list[str]

    @classmethod
    def from_log(cls, log: DailyLog) -> "LogHistoryItem":
        return cls.from_row(log.id, log.date, log.log_data)

    @classmethod
    def from_row(cls, log_id: str, date: str, log_data: Any) -> "LogHistoryItem":
        data = log_data if isinstance(log_data, dict) else {}
        return cls(
            id=log_id,
            date=date,
            accomplished=string_list(data.get("accomplished")),
            in_progress=string_list(data.get("in_progress")),
        )

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "date": self.date,
            "log_data": {
                "accomplished": self.accomplished,
                "in_progress": self.in_progress,
            },
        }
