"""
HTTP routes for the shutdown log API.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from shutdown_log import sections, service
from shutdown_log.auth import Identity
from shutdown_log.config import get_settings
from shutdown_log.dependencies import Caller, get_caller, require_user
from shutdown_log.errors import NotAuthenticated, NotFound
from shutdown_log.schemas import (
    DailyLogResponse,
    HealthResponse,
    IdentityResponse,
    ListLogsResponse,
    LogHistoryItemResponse,
    PairRequest,
    PatchLogRequest,
    ReasonRequest,
    ReplaceLogRequest,
    ShutdownRitualRequest,
    TagRequest,
)
from shutdown_log.types import CLEANUP_FLAGS, STRING_LIST_FIELDS, DailyLog

logger = logging.getLogger(__name__)

router = APIRouter()

PAIR_FIELDS = {"blockers": "blockers", "decisions": "decisions_needed"}


def _to_response(log: DailyLog) -> DailyLogResponse:
    return DailyLogResponse(**log.as_dict())


def _reject(log_id: str, exc: Exception, status_code: int = 422) -> HTTPException:
    logger.info("Rejected edit to log %s: %s", log_id, exc)
    return HTTPException(status_code=status_code, detail=str(exc))


def _load_owned_log(log_id: str, caller: Caller) -> DailyLog:
    """
    Fetch a log the caller owns. Logs belonging to someone else are reported
    as missing so their ids cannot be discovered.
    """
    log = service.get_log_by_id(
        caller.session, log_id, auth=caller.auth, db=caller.db
    )
    if not log or log.user_id != caller.user.id:
        raise NotFound(log_id)
    return log


def _current_fields(log: DailyLog) -> dict:
    """The stored payload with wrong-typed fields read back as their defaults."""
    return log.payload().as_dict()


def _save_changes(
    log: DailyLog, changes: dict, caller: Caller, revision: Optional[int] = None
) -> DailyLogResponse:
    updated = service.apply_changes(
        caller.session,
        log.id,
        changes,
        auth=caller.auth,
        db=caller.db,
        expected_revision=log.revision if revision is None else revision,
    )
    if not updated:
        raise NotFound(log.id)
    return _to_response(updated)


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")


@router.get("/me", response_model=IdentityResponse)
def me(user: Identity = Depends(require_user)):
    return IdentityResponse(id=user.id, email=user.email)


@router.get("/logs/today", response_model=DailyLogResponse)
def today_log(
    tz: Optional[str] = Query(None, description="IANA time zone for 'today'"),
    caller: Caller = Depends(get_caller),
):
    try:
        log = service.get_or_create_today_log(
            caller.session,
            auth=caller.auth,
            db=caller.db,
            tz_name=tz or get_settings().timezone,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    if not log:
        raise NotAuthenticated()
    return _to_response(log)


@router.get("/logs", response_model=ListLogsResponse)
def list_logs(caller: Caller = Depends(get_caller)):
    items = service.list_history(caller.session, auth=caller.auth, db=caller.db)
    return ListLogsResponse(
        logs=[LogHistoryItemResponse(**item.as_dict()) for item in items]
    )


@router.get("/logs/{log_id}", response_model=DailyLogResponse)
def get_log(log_id: str, caller: Caller = Depends(get_caller)):
    return _to_response(_load_owned_log(log_id, caller))


@router.put("/logs/{log_id}", response_model=DailyLogResponse)
def replace_log(
    log_id: str,
    payload: ReplaceLogRequest,
    caller: Caller = Depends(get_caller),
):
    _load_owned_log(log_id, caller)
    updated = service.update_log(
        caller.session,
        log_id,
        payload.log_data,
        auth=caller.auth,
        db=caller.db,
        expected_revision=payload.revision,
    )
    if not updated:
        raise NotFound(log_id)
    return _to_response(updated)


@router.patch("/logs/{log_id}", response_model=DailyLogResponse)
def patch_log(
    log_id: str,
    payload: PatchLogRequest,
    caller: Caller = Depends(get_caller),
):
    log = _load_owned_log(log_id, caller)
    return _save_changes(log, payload.changes, caller, payload.revision)


@router.post("/logs/{log_id}/items/{field}", response_model=DailyLogResponse)
def add_item(
    log_id: str,
    field: str,
    payload: TagRequest,
    caller: Caller = Depends(get_caller),
):
    if field not in STRING_LIST_FIELDS:
        raise HTTPException(status_code=404, detail=f"Unknown list: {field}")
    log = _load_owned_log(log_id, caller)
    items = sections.add_tag(_current_fields(log)[field], payload.text)
    return _save_changes(log, {field: items}, caller)


@router.delete("/logs/{log_id}/items/{field}", response_model=DailyLogResponse)
def remove_item(
    log_id: str,
    field: str,
    text: str = Query(...),
    caller: Caller = Depends(get_caller),
):
    if field not in STRING_LIST_FIELDS:
        raise HTTPException(status_code=404, detail=f"Unknown list: {field}")
    log = _load_owned_log(log_id, caller)
    items = sections.remove_tag(_current_fields(log)[field], text)
    return _save_changes(log, {field: items}, caller)


@router.put("/logs/{log_id}/reasons", response_model=DailyLogResponse)
def set_reason(
    log_id: str,
    payload: ReasonRequest,
    caller: Caller = Depends(get_caller),
):
    log = _load_owned_log(log_id, caller)
    try:
        changes = sections.set_reason(
            _current_fields(log), payload.item, payload.reason
        )
    except ValueError as exc:
        raise _reject(log_id, exc)
    return _save_changes(log, changes, caller)


@router.delete("/logs/{log_id}/reasons", response_model=DailyLogResponse)
def remove_in_progress_item(
    log_id: str,
    item: str = Query(...),
    caller: Caller = Depends(get_caller),
):
    log = _load_owned_log(log_id, caller)
    changes = sections.remove_in_progress_item(_current_fields(log), item)
    return _save_changes(log, changes, caller)


@router.post("/logs/{log_id}/{kind}", response_model=DailyLogResponse)
def add_pair(
    log_id: str,
    kind: str,
    payload: PairRequest,
    caller: Caller = Depends(get_caller),
):
    field = PAIR_FIELDS.get(kind)
    if not field:
        raise HTTPException(status_code=404, detail=f"Unknown list: {kind}")
    log = _load_owned_log(log_id, caller)
    try:
        pairs = sections.add_pair(
            _current_fields(log)[field], payload.item, payload.needs
        )
    except ValueError as exc:
        raise _reject(log_id, exc)
    return _save_changes(log, {field: pairs}, caller)


@router.delete("/logs/{log_id}/{kind}/{index}", response_model=DailyLogResponse)
def remove_pair(
    log_id: str,
    kind: str,
    index: int,
    caller: Caller = Depends(get_caller),
):
    field = PAIR_FIELDS.get(kind)
    if not field:
        raise HTTPException(status_code=404, detail=f"Unknown list: {kind}")
    log = _load_owned_log(log_id, caller)
    try:
        pairs = sections.remove_pair(_current_fields(log)[field], index)
    except IndexError:
        raise _reject(log_id, IndexError(f"no entry at position {index}"), 404)
    return _save_changes(log, {field: pairs}, caller)


@router.post("/logs/{log_id}/cleanup/{flag}/toggle", response_model=DailyLogResponse)
def toggle_cleanup(
    log_id: str,
    flag: str,
    caller: Caller = Depends(get_caller),
):
    if flag not in CLEANUP_FLAGS:
        raise HTTPException(status_code=404, detail=f"Unknown cleanup task: {flag}")
    log = _load_owned_log(log_id, caller)
    cleanup = sections.toggle_cleanup(_current_fields(log)["cleanup"], flag)
    return _save_changes(log, {"cleanup": cleanup}, caller)


@router.put("/logs/{log_id}/shutdown-ritual", response_model=DailyLogResponse)
def set_shutdown_ritual(
    log_id: str,
    payload: ShutdownRitualRequest,
    caller: Caller = Depends(get_caller),
):
    log = _load_owned_log(log_id, caller)
    return _save_changes(log, {"shutdown_ritual": payload.text}, caller)
