from datetime import datetime

from signboard.services.schedule import (
    is_assignment_active,
    populate_assignments,
    resolve_active_sequence,
    sequence_ids,
    weekday_number,
)

# 2024-01-01 was a Monday.
MONDAY_NOON = datetime(2024, 1, 1, 12, 0)
TUESDAY_NOON = datetime(2024, 1, 2, 12, 0)

MEDIA = [
    {"id": "m1", "type": "image", "url": "https://cdn.test/1.png", "duration": 4},
    {"id": "m2", "type": "image", "url": "https://cdn.test/2.png", "duration": 4},
    {"id": "m3", "type": "video", "url": "https://cdn.test/3.mp4", "duration": None},
]
PLAYLISTS = [
    {"id": "p1", "media_item_ids": ["m1", "m2", "m3"]},
    {"id": "p2", "media_item_ids": ["m3"]},
    {"id": "empty", "media_item_ids": []},
]


def _assignment(playlist_id="p1", days=(1,), start="09:00", end="17:00"):
    return {"playlist_id": playlist_id, "day_of_week": list(days), "start_time": start, "end_time": end}


def _screen(*assignments):
    return {"id": "s1", "name": "Lobby", "assignments": list(assignments)}


def test_weekday_number_starts_on_sunday():
    assert weekday_number(datetime(2024, 1, 7)) == 0
    assert weekday_number(MONDAY_NOON) == 1
    assert weekday_number(datetime(2024, 1, 6)) == 6


def test_window_is_half_open():
    assignment = _assignment(start="09:00", end="17:00")
    assert is_assignment_active(assignment, datetime(2024, 1, 1, 9, 0))
    assert is_assignment_active(assignment, datetime(2024, 1, 1, 16, 59, 59))
    assert not is_assignment_active(assignment, datetime(2024, 1, 1, 17, 0))
    assert not is_assignment_active(assignment, datetime(2024, 1, 1, 8, 59))


def test_other_weekday_resolves_to_nothing():
    screen = _screen(_assignment(days=[1]))
    assert resolve_active_sequence(screen, PLAYLISTS, MEDIA, TUESDAY_NOON) == []


def test_matching_assignment_expands_playlist_in_order():
    screen = _screen(_assignment())
    assert sequence_ids(resolve_active_sequence(screen, PLAYLISTS, MEDIA, MONDAY_NOON)) == ("m1", "m2", "m3")


def test_deleted_media_is_dropped_keeping_order():
    screen = _screen(_assignment())
    remaining = [m for m in MEDIA if m["id"] != "m2"]
    assert sequence_ids(resolve_active_sequence(screen, PLAYLISTS, remaining, MONDAY_NOON)) == ("m1", "m3")


def test_first_matching_assignment_wins():
    screen = _screen(
        _assignment(playlist_id="p2", start="08:00", end="20:00"),
        _assignment(playlist_id="p1", start="11:00", end="13:00"),
    )
    assert sequence_ids(resolve_active_sequence(screen, PLAYLISTS, MEDIA, MONDAY_NOON)) == ("m3",)


def test_missing_playlist_contributes_nothing():
    screen = _screen(_assignment(playlist_id="gone"), _assignment(playlist_id="p2"))
    populated = populate_assignments(screen["assignments"], PLAYLISTS, MEDIA)
    assert len(populated) == 1
    assert "playlist_id" not in populated[0]
    assert sequence_ids(resolve_active_sequence(screen, PLAYLISTS, MEDIA, MONDAY_NOON)) == ("m3",)


def test_empty_playlist_is_no_content():
    screen = _screen(_assignment(playlist_id="empty"), _assignment(playlist_id="p1"))
    assert resolve_active_sequence(screen, PLAYLISTS, MEDIA, MONDAY_NOON) == []


def test_screen_without_assignments():
    assert resolve_active_sequence({"id": "s1", "assignments": []}, PLAYLISTS, MEDIA, MONDAY_NOON) == []
