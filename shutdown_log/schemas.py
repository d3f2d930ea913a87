"""
Pydantic schemas for the shutdown log API.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class DailyLogResponse(BaseModel):
    id: str
    user_id: str
    date: str
    # Stored payloads are returned as-is, even if their shape drifted.
    log_data: dict
    revision: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class HistoryLogData(BaseModel):
    accomplished: list[str]
    in_progress: list[str]


class LogHistoryItemResponse(BaseModel):
    id: str
    date: str
    log_data: HistoryLogData


class ListLogsResponse(BaseModel):
    logs: list[LogHistoryItemResponse]


class IdentityResponse(BaseModel):
    id: str
    email: str


class ReplaceLogRequest(BaseModel):
    log_data: dict
    revision: Optional[int] = None


class PatchLogRequest(BaseModel):
    changes: dict
    revision: Optional[int] = None


class TagRequest(BaseModel):
    text: str = Field(..., max_length=1024)


class ReasonRequest(BaseModel):
    item: str
    reason: str = Field(..., max_length=4096)


class PairRequest(BaseModel):
    item: str = Field(..., max_length=1024)
    needs: str = Field(..., max_length=1024)


class ShutdownRitualRequest(BaseModel):
    text: str = Field(..., max_length=4096)


class HealthResponse(BaseModel):
    status: Literal["ok"]
