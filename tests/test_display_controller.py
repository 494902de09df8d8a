import asyncio
from datetime import datetime

from signboard.services.display import DisplayController

MONDAY_NOON = datetime(2024, 1, 1, 12, 0)


def _seed(store, user_id="user-a"):
    media_ids = [
        store.create(
            "media_items",
            {"title": title, "type": "image", "url": f"https://cdn.test/{title}.png", "duration": 4, "user_id": user_id},
        )
        for title in ("one", "two", "three")
    ]
    playlist_id = store.create("playlists", {"name": "Day", "media_item_ids": media_ids, "user_id": user_id})
    screen_id = store.create(
        "screens",
        {
            "name": "Lobby",
            "assignments": [
                {"playlist_id": playlist_id, "day_of_week": [1], "start_time": "09:00", "end_time": "17:00"}
            ],
            "user_id": user_id,
        },
    )
    return screen_id, playlist_id, media_ids


async def _settle(rounds=6, delay=0.02):
    # First snapshots are read on worker threads, so give them real time.
    for _ in range(rounds):
        await asyncio.sleep(delay)


def _run(store, scenario):
    async def wrapper():
        store.attach_loop()
        return await scenario()

    try:
        return asyncio.run(wrapper())
    finally:
        store.close()


def test_waits_for_every_query_before_playing(store, timers):
    screen_id, _, media_ids = _seed(store)
    frames = []

    async def scenario():
        controller = DisplayController(store, screen_id, frames.append, now=lambda: MONDAY_NOON, call_later=timers.call_later)
        controller.start()
        assert controller.state == "loading"
        await _settle()
        state = controller.state
        controller.close()
        return state

    assert _run(store, scenario) == "playing"
    # Screen arrived first, with playlists and media still in flight.
    assert frames[0]["state"] == "loading"
    assert frames[0]["name"] == "Lobby"
    assert frames[0]["item"] is None
    assert frames[-1]["state"] == "playing"
    assert frames[-1]["item"]["id"] == media_ids[0]
    assert frames[-1]["length"] == 3


def test_unknown_screen_is_not_found(store, timers):
    async def scenario():
        controller = DisplayController(store, "missing", now=lambda: MONDAY_NOON, call_later=timers.call_later)
        controller.start()
        await _settle()
        frame = controller.frame()
        controller.close()
        return frame

    frame = _run(store, scenario)
    assert frame["state"] == "not_found"
    assert frame["item"] is None


def test_live_edits_reach_the_sequence(store, timers):
    screen_id, playlist_id, media_ids = _seed(store)

    async def scenario():
        controller = DisplayController(store, screen_id, now=lambda: MONDAY_NOON, call_later=timers.call_later)
        controller.start()
        await _settle()
        timers.fire_next()
        timers.fire_next()
        assert controller.sequencer.index == 1

        # Renaming the playlist leaves the ids alone, so playback carries on.
        store.merge_update("playlists", playlist_id, {"name": "Daytime"})
        await _settle()
        assert controller.sequencer.index == 1

        store.delete("media_items", media_ids[1])
        await _settle()
        ids = [item["id"] for item in controller.sequencer.items]
        index = controller.sequencer.index

        store.delete("screens", screen_id)
        await _settle()
        state = controller.state
        controller.close()
        return ids, index, state

    ids, index, state = _run(store, scenario)
    assert ids == [media_ids[0], media_ids[2]]
    assert index == 0
    assert state == "not_found"


def test_poll_tick_catches_schedule_boundary(store, timers):
    screen_id, _, _ = _seed(store)
    clock = {"now": datetime(2024, 1, 1, 16, 59)}

    async def scenario():
        controller = DisplayController(
            store, screen_id, now=lambda: clock["now"], poll_sec=0.01, call_later=timers.call_later
        )
        controller.start()
        await _settle()
        before = controller.state
        clock["now"] = datetime(2024, 1, 1, 17, 0)
        await asyncio.sleep(0.05)
        after = controller.state
        controller.close()
        return before, after

    assert _run(store, scenario) == ("playing", "empty")


def test_no_frames_after_close(store, timers):
    screen_id, playlist_id, _ = _seed(store)
    frames = []

    async def scenario():
        controller = DisplayController(store, screen_id, frames.append, now=lambda: MONDAY_NOON, call_later=timers.call_later)
        controller.start()
        await _settle()
        controller.close()
        seen = len(frames)
        store.merge_update("playlists", playlist_id, {"media_item_ids": []})
        await _settle()
        return seen

    seen = _run(store, scenario)
    assert len(frames) == seen
    assert timers.pending == []


def test_owner_change_switches_content(store, timers):
    screen_id, _, _ = _seed(store, "user-a")
    _, other_playlist_id, other_media_ids = _seed(store, "user-b")

    async def scenario():
        controller = DisplayController(store, screen_id, now=lambda: MONDAY_NOON, call_later=timers.call_later)
        controller.start()
        await _settle()
        previous_subs = list(controller._owner_subs)

        store.merge_update(
            "screens",
            screen_id,
            {
                "user_id": "user-b",
                "assignments": [
                    {"playlist_id": other_playlist_id, "day_of_week": [1], "start_time": "09:00", "end_time": "17:00"}
                ],
            },
        )
        await _settle()
        ids = [item["id"] for item in controller.sequencer.items]
        state = controller.state
        controller.close()
        return previous_subs, ids, state

    previous_subs, ids, state = _run(store, scenario)
    assert len(previous_subs) == 2
    assert not any(subscription.active for subscription in previous_subs)
    assert ids == other_media_ids
    assert state == "playing"
