"""Event list model — pure edits over a story's ordered event documents.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Map core (no I/O, no state).
#
# The event list is the single source of truth for a story.  Its order is
# the narrative and geographic sequence, and every event carries a
# back-reference ``transition.sourceEventId`` to the event before it:
#
#     events[0].transition.sourceEventId    is None
#     events[i].transition.sourceEventId == events[i-1].eventId   (i > 0)
#
# Every function here takes the current list and returns a NEW list,
# never mutating its input, and keeps that chain intact:
#
#   insert_after  — new empty event after ``index``; the follower is
#                   repointed to the new event.
#   delete_at     — the follower is repointed to the new predecessor.
#   reorder       — move one event, then relink EVERY event from its new
#                   neighbour (a move changes several predecessors).
#   update_field  — deep-clone-then-set at a field path, with date
#                   coupling for point events.
#
# Malformed field paths are repaired, not rejected: a non-dict met while
# descending is replaced by ``{}``.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import copy
import re
from collections.abc import Sequence
from typing import Any

from storymap.models.event import (
    CLOSING_EVENT_ID,
    DEFAULT_MAP_STYLE,
    DEFAULT_TRANSITION_TYPE,
    DEFAULT_TRANSPORT_TYPE,
    OPENING_EVENT_ID,
    EventType,
)

EventList = list[dict[str, Any]]
FieldPath = Sequence[str] | str

_EVENT_ID_RE = re.compile(r"^E(\d+)$")


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def _empty_content() -> dict[str, Any]:
    return {
        "textHtml": "",
        "media": [],
        "imageComparison": {
            "enabled": False,
            "caption": "",
            "urlOld": "",
            "urlNew": "",
        },
    }


def generate_next_event_id(events: Sequence[dict[str, Any]]) -> str:
    """Return ``E`` + (max numeric suffix of ``E\\d+`` ids, or 0) + 1, padded to 3."""
    highest = 0
    for event in events:
        event_id = event.get("eventId") if isinstance(event, dict) else None
        match = _EVENT_ID_RE.match(event_id) if isinstance(event_id, str) else None
        if match:
            highest = max(highest, int(match.group(1)))
    return f"E{highest + 1:03d}"


def create_empty_event(event_id: str = "E001", source_event_id: str | None = None) -> dict[str, Any]:
    """A blank point event with no location, linked to ``source_event_id``."""
    return {
        "eventId": event_id,
        "eventType": EventType.EVENT.value,
        "title": "",
        "timeline": {"dateStart": "", "dateEnd": ""},
        "location": {
            "name": "",
            # No default pin: a marker appears only after picking or searching.
            "coordinates": {"lat": None, "lng": None},
            "mapView": {
                "zoom": 10,
                "pitch": 0,
                "bearing": 0,
                "mapStyle": DEFAULT_MAP_STYLE,
            },
        },
        "transition": {
            "type": DEFAULT_TRANSITION_TYPE,
            "durationSeconds": 3,
            "sourceEventId": source_event_id,
            "lineStyleKey": "",
            "transportType": DEFAULT_TRANSPORT_TYPE.value,
        },
        "content": _empty_content(),
    }


def create_opening_event() -> dict[str, Any]:
    return {
        "eventId": OPENING_EVENT_ID,
        "eventType": EventType.OPENING.value,
        "title": "Opening",
        "content": _empty_content(),
    }


def create_closing_event() -> dict[str, Any]:
    return {
        "eventId": CLOSING_EVENT_ID,
        "eventType": EventType.CLOSING.value,
        "title": "Closing",
        "content": _empty_content(),
    }


def ensure_special_events(events: Sequence[dict[str, Any]]) -> EventList:
    """Return the list with exactly one Opening first and one Closing last.

    Existing Opening/Closing cards are kept (the first of each); missing
    ones are created.  Regular events keep their relative order.
    """
    opening = next((e for e in events if e.get("eventType") == EventType.OPENING.value), None)
    closing = next((e for e in events if e.get("eventType") == EventType.CLOSING.value), None)
    regular = [
        e for e in events
        if e.get("eventType") not in (EventType.OPENING.value, EventType.CLOSING.value)
    ]
    return [
        opening if opening is not None else create_opening_event(),
        *regular,
        closing if closing is not None else create_closing_event(),
    ]


# ---------------------------------------------------------------------------
# Transition links
# ---------------------------------------------------------------------------


def source_event_id(event: dict[str, Any]) -> str | None:
    transition = event.get("transition")
    if isinstance(transition, dict):
        return transition.get("sourceEventId")
    return None


def _with_source(event: dict[str, Any], source_id: str | None) -> dict[str, Any]:
    """Copy of ``event`` whose ``transition.sourceEventId`` is ``source_id``."""
    transition = event.get("transition")
    updated = dict(event)
    updated["transition"] = {
        **(transition if isinstance(transition, dict) else {}),
        "sourceEventId": source_id,
    }
    return updated


def relink_transitions(events: Sequence[dict[str, Any]]) -> EventList:
    """Recompute every ``sourceEventId`` from the event's current predecessor."""
    relinked: EventList = []
    for index, event in enumerate(events):
        previous_id = events[index - 1].get("eventId") if index > 0 else None
        relinked.append(_with_source(event, previous_id))
    return relinked


def links_consistent(events: Sequence[dict[str, Any]]) -> bool:
    """True when every event points at its predecessor (and the first at ``None``)."""
    return all(
        source_event_id(event) == (events[index - 1].get("eventId") if index > 0 else None)
        for index, event in enumerate(events)
    )


# ---------------------------------------------------------------------------
# Structural edits
# ---------------------------------------------------------------------------


def insert_after(events: Sequence[dict[str, Any]], index: int) -> EventList:
    """Insert a new empty event right after ``index``.

    An empty list yields a single new event.  ``index`` is clamped to
    ``[-1, len - 1]``; ``-1`` inserts at the front.
    """
    if not events:
        return [create_empty_event(generate_next_event_id([]), None)]

    index = max(-1, min(index, len(events) - 1))
    previous_id = events[index].get("eventId") if index >= 0 else None
    new_id = generate_next_event_id(events)

    updated: EventList = list(events)
    updated.insert(index + 1, create_empty_event(new_id, previous_id))

    follower = index + 2
    if follower < len(updated):
        updated[follower] = _with_source(updated[follower], new_id)
    return updated


def insert_at_end(events: Sequence[dict[str, Any]]) -> EventList:
    return insert_after(events, len(events) - 1)


def delete_at(events: Sequence[dict[str, Any]], index: int) -> EventList:
    """Remove the event at ``index`` and repoint its follower.  Out of range is a no-op."""
    if index < 0 or index >= len(events):
        return list(events)

    updated: EventList = list(events)
    del updated[index]
    if index < len(updated):
        previous_id = updated[index - 1].get("eventId") if index > 0 else None
        updated[index] = _with_source(updated[index], previous_id)
    return updated


def reorder(
    events: Sequence[dict[str, Any]],
    from_index: int | None,
    to_index: int | None,
) -> EventList:
    """Move one event, then relink every event from its new neighbour.

    No-op when either index is ``None``, they are equal, or either is out
    of range.  Because the whole chain is recomputed, events other than
    the moved one can get a new ``sourceEventId``.
    """
    if (
        from_index is None
        or to_index is None
        or from_index == to_index
        or not 0 <= from_index < len(events)
        or not 0 <= to_index < len(events)
    ):
        return list(events)

    updated: EventList = list(events)
    moved = updated.pop(from_index)
    updated.insert(to_index, moved)
    return relink_transitions(updated)


# ---------------------------------------------------------------------------
# Field edits
# ---------------------------------------------------------------------------


def _split_path(path: FieldPath) -> list[str]:
    if isinstance(path, str):
        return [part for part in path.split(".") if part]
    return list(path)


def deep_set(document: dict[str, Any], path: FieldPath, value: Any) -> dict[str, Any]:
    """Return a deep copy of ``document`` with ``value`` set at ``path``.

    Missing or non-dict intermediates are replaced by ``{}`` before
    descending.  An empty path returns an unchanged copy.
    """
    keys = _split_path(path)
    clone = copy.deepcopy(document)
    if not keys:
        return clone

    cursor = clone
    for key in keys[:-1]:
        if not isinstance(cursor.get(key), dict):
            cursor[key] = {}
        cursor = cursor[key]
    cursor[keys[-1]] = copy.deepcopy(value)
    return clone


def update_field(
    events: Sequence[dict[str, Any]],
    index: int,
    path: FieldPath,
    value: Any,
) -> EventList:
    """Set ``value`` at ``path`` on the event at ``index``.

    Point-event coupling: setting ``timeline.dateStart`` on any non-Period
    event mirrors it into ``dateEnd``; switching ``eventType`` to ``Event``
    collapses ``dateEnd`` onto an existing ``dateStart``.
    """
    if index < 0 or index >= len(events):
        return list(events)

    keys = _split_path(path)
    clone = deep_set(events[index], keys, value)

    if keys == ["timeline", "dateStart"] and clone.get("eventType") != EventType.PERIOD.value:
        clone["timeline"]["dateEnd"] = copy.deepcopy(value)

    if keys == ["eventType"] and value == EventType.EVENT.value:
        if not isinstance(clone.get("timeline"), dict):
            clone["timeline"] = {}
        if clone["timeline"].get("dateStart"):
            clone["timeline"]["dateEnd"] = clone["timeline"]["dateStart"]

    updated: EventList = list(events)
    updated[index] = clone
    return updated
