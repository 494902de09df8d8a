from signboard.services.playback import DEFAULT_IMAGE_DURATION_SEC, FADE_DURATION_SEC, PlaybackSequencer


def _images(*ids, duration=4):
    return [{"id": media_id, "type": "image", "url": f"https://cdn.test/{media_id}.png", "duration": duration} for media_id in ids]


def _sequencer(timers, changes=None):
    return PlaybackSequencer(
        on_change=(lambda seq: changes.append((seq.index, seq.fading))) if changes is not None else None,
        call_later=timers.call_later,
    )


def test_three_images_cycle_with_fade(timers):
    changes = []
    sequencer = _sequencer(timers, changes)
    assert sequencer.load(_images("a", "b", "c"))
    assert sequencer.current_item["id"] == "a"

    visited = []
    for _ in range(3):
        assert timers.fire_next() == 4
        assert sequencer.fading
        assert timers.fire_next() == FADE_DURATION_SEC
        assert not sequencer.fading
        visited.append(sequencer.current_item["id"])

    assert visited == ["b", "c", "a"]
    assert changes[:3] == [(0, False), (0, True), (1, False)]


def test_unchanged_sequence_keeps_position(timers):
    sequencer = _sequencer(timers)
    sequencer.load(_images("a", "b", "c"))
    timers.fire_next()
    timers.fire_next()
    assert sequencer.index == 1

    assert not sequencer.load(_images("a", "b", "c"))
    assert sequencer.index == 1
    assert len(timers.pending) == 1


def test_changed_sequence_resets_to_first_item(timers):
    sequencer = _sequencer(timers)
    sequencer.load(_images("a", "b", "c"))
    timers.fire_next()
    timers.fire_next()

    assert sequencer.load(_images("c", "b", "a"))
    assert sequencer.index == 0
    assert sequencer.current_item["id"] == "c"
    assert len(timers.pending) == 1


def test_image_without_duration_uses_default(timers):
    sequencer = _sequencer(timers)
    sequencer.load(_images("a", "b", duration=None))
    assert timers.pending[0].delay == DEFAULT_IMAGE_DURATION_SEC


def test_single_item_arms_no_timer(timers):
    sequencer = _sequencer(timers)
    sequencer.load(_images("only"))
    assert timers.pending == []
    sequencer.advance_now()
    assert timers.pending == []
    assert sequencer.index == 0


def test_video_waits_for_end_event(timers):
    sequencer = _sequencer(timers)
    sequencer.load([{"id": "v", "type": "video", "url": "https://cdn.test/v.mp4"}] + _images("b"))
    assert timers.pending == []

    sequencer.advance_now()
    assert sequencer.fading
    timers.fire_next()
    assert sequencer.current_item["id"] == "b"


def test_media_error_advances_like_end(timers):
    sequencer = _sequencer(timers)
    sequencer.load([{"id": "broken", "type": "video", "url": "https://cdn.test/404.mp4"}] + _images("b", "c"))
    sequencer.on_media_error()
    timers.fire_next()
    assert sequencer.current_item["id"] == "b"


def test_close_cancels_pending_timers(timers):
    sequencer = _sequencer(timers)
    sequencer.load(_images("a", "b"))
    sequencer.close()
    assert timers.pending == []
    assert not sequencer.load(_images("x", "y"))


def test_empty_sequence_has_no_current_item(timers):
    sequencer = _sequencer(timers)
    sequencer.load(_images("a", "b"))
    sequencer.load([])
    assert sequencer.current_item is None
    assert timers.pending == []
