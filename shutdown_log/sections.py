"""
Edit actions behind each section of the daily log form.

Every function returns new values and leaves its inputs untouched, so the
caller can merge the result into the last-known payload before saving.
"""

from __future__ import annotations

import copy

from shutdown_log.types import CLEANUP_FLAGS


def add_tag(tags: list[str], text: str) -> list[str]:
    """Append `text` (trimmed) unless it is blank or already present."""
    tag = (text or "").strip()
    if not tag or tag in tags:
        return list(tags)
    return [*tags, tag]


def remove_tag(tags: list[str], text: str) -> list[str]:
    return [tag for tag in tags if tag != text]


def set_reason(log_data: dict, item: str, reason: str) -> dict:
    """Record why an in-progress item is not done yet."""
    reason = (reason or "").strip()
    if not item or not reason:
        raise ValueError("item and reason are required")
    if item not in (log_data.get("in_progress") or []):
        raise ValueError(f"{item!r} is not in progress")
    reasoning = dict(log_data.get("not_done_reasoning") or {})
    reasoning[item] = reason
    return {"not_done_reasoning": reasoning}


def remove_in_progress_item(log_data: dict, item: str) -> dict:
    """
    Remove an in-progress item together with its reasoning entry.

    Removing the item through `remove_tag` instead leaves the reasoning in
    place; only this action cleans it up.
    """
    reasoning = dict(log_data.get("not_done_reasoning") or {})
    reasoning.pop(item, None)
    return {
        "in_progress": remove_tag(list(log_data.get("in_progress") or []), item),
        "not_done_reasoning": reasoning,
    }


def add_pair(pairs: list[dict], item: str, needs: str) -> list[dict]:
    """Append an `{item, needs}` entry (blockers and decisions share this shape)."""
    item = (item or "").strip()
    needs = (needs or "").strip()
    if not item or not needs:
        raise ValueError("item and needs are required")
    return [*copy.deepcopy(pairs), {"item": item, "needs": needs}]


def remove_pair(pairs: list[dict], index: int) -> list[dict]:
    if index < 0 or index >= len(pairs):
        raise IndexError(index)
    remaining = copy.deepcopy(pairs)
    del remaining[index]
    return remaining


def toggle_cleanup(cleanup: dict, flag: str) -> dict:
    if flag not in CLEANUP_FLAGS:
        raise KeyError(flag)
    status = {name: bool((cleanup or {}).get(name, False)) for name in CLEANUP_FLAGS}
    status[flag] = not status[flag]
    return status


def merge_changes(log_data: dict, changes: dict) -> dict:
    """Shallow merge: each top-level field in `changes` replaces the stored one."""
    merged = copy.deepcopy(log_data)
    merged.update(copy.deepcopy(changes))
    return merged
