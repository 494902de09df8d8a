import os
from datetime import datetime
from typing import Any, Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

SCHEDULE_POLL_SEC = float(os.getenv("SIGNAGE_SCHEDULE_POLL_SEC", "30"))
DISPLAY_TIMEZONE = (os.getenv("SIGNAGE_DISPLAY_TIMEZONE", "") or "").strip()
try:
    _DISPLAY_TZ = ZoneInfo(DISPLAY_TIMEZONE) if DISPLAY_TIMEZONE else None
except ZoneInfoNotFoundError:
    _DISPLAY_TZ = None


def display_now() -> datetime:
    """Wall-clock time the schedule is evaluated against."""
    if _DISPLAY_TZ is None:
        return datetime.now()
    return datetime.now(_DISPLAY_TZ)


def weekday_number(moment: datetime) -> int:
    # 0 = Sunday .. 6 = Saturday; datetime.weekday() starts at Monday.
    return (moment.weekday() + 1) % 7


def clock_hhmm(moment: datetime) -> str:
    return f"{moment.hour:02d}:{moment.minute:02d}"


def populate_assignments(
    assignments: Iterable[dict[str, Any]],
    playlists: Iterable[dict[str, Any]],
    media_items: Iterable[dict[str, Any]],
) -> list[dict[str, Any]]:
    """
    Replace each assignment's playlist reference with the media it plays.

    Assignments pointing at a missing playlist are dropped; media ids that no
    longer resolve are skipped. Both lists keep their original order.
    """
    playlists_by_id = {p["id"]: p for p in playlists}
    media_by_id = {m["id"]: m for m in media_items}

    populated: list[dict[str, Any]] = []
    for assignment in assignments:
        playlist = playlists_by_id.get(assignment.get("playlist_id"))
        if playlist is None:
            continue
        media = [
            media_by_id[media_id]
            for media_id in playlist.get("media_item_ids") or []
            if media_id in media_by_id
        ]
        entry = {key: value for key, value in assignment.items() if key != "playlist_id"}
        entry["media"] = media
        populated.append(entry)
    return populated


def is_assignment_active(assignment: dict[str, Any], moment: datetime) -> bool:
    if weekday_number(moment) not in (assignment.get("day_of_week") or []):
        return False
    current = clock_hhmm(moment)
    # HH:MM strings compare chronologically; the end minute itself is outside the window.
    return assignment["start_time"] <= current < assignment["end_time"]


def resolve_active_sequence(
    screen: dict[str, Any],
    playlists: Iterable[dict[str, Any]],
    media_items: Iterable[dict[str, Any]],
    now: datetime,
) -> list[dict[str, Any]]:
    """Media due on ``screen`` at ``now``; the first matching assignment in list order wins."""
    populated = populate_assignments(screen.get("assignments") or [], playlists, media_items)
    for assignment in populated:
        if is_assignment_active(assignment, now):
            return list(assignment["media"])
    return []


def sequence_ids(items: Iterable[dict[str, Any]]) -> tuple[str, ...]:
    return tuple(item["id"] for item in items)
