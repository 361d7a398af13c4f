"""
Tests for the auto-adjustment reducer and its Qt driver.
"""
import unittest

import pytest

from core.auto_adjust import (
    AdjustInputs,
    AdjustState,
    ApplyInterval,
    AutoAdjustController,
    DurationsResolved,
    InputsChanged,
    Origin,
    ProbeFailed,
    PublishNotice,
    RequestDurations,
    reduce,
)
from core.duration import MINIMUM_NOTICE
from fakes import FakeProbe, image, song, video


NOTICE_2S = "Slide speed automatically adjusted to 2s to match song length."


# ---- Reducer ---------------------------------------------------------------

class TestReducer(unittest.TestCase):
    def setUp(self):
        self.inputs = AdjustInputs(image_count=10, video_ids=(), audio_id="song", interval=5)

    def test_user_change_requests_durations(self):
        state, effects = reduce(AdjustState(), InputsChanged(self.inputs, Origin.USER))
        self.assertEqual(state.generation, 1)
        self.assertEqual(state.pending, 1)
        self.assertEqual(effects, (RequestDurations(1, "song", ()),))

    def test_resolved_durations_apply_new_interval(self):
        state, _ = reduce(AdjustState(), InputsChanged(self.inputs))
        state, effects = reduce(state, DurationsResolved(1, 20.0, ()))
        self.assertEqual(effects, (ApplyInterval(2), PublishNotice(NOTICE_2S)))
        self.assertIsNone(state.pending)
        self.assertEqual(state.notice, NOTICE_2S)

    def test_unchanged_interval_only_publishes_notice(self):
        state, _ = reduce(AdjustState(), InputsChanged(self.inputs))
        state, effects = reduce(state, DurationsResolved(1, 120.0, ()))
        self.assertEqual(effects, (PublishNotice(None),))

    def test_auto_origin_records_without_recomputing(self):
        state, _ = reduce(AdjustState(), InputsChanged(self.inputs))
        state, _ = reduce(state, DurationsResolved(1, 20.0, ()))
        echoed = AdjustInputs(image_count=10, video_ids=(), audio_id="song", interval=2)
        new_state, effects = reduce(state, InputsChanged(echoed, Origin.AUTO))
        self.assertEqual(effects, ())
        self.assertEqual(new_state.generation, state.generation)
        self.assertEqual(new_state.inputs.interval, 2)
        self.assertEqual(new_state.notice, NOTICE_2S)

    def test_stale_result_is_discarded(self):
        state, _ = reduce(AdjustState(), InputsChanged(self.inputs))
        newer = AdjustInputs(image_count=4, video_ids=(), audio_id="song", interval=5)
        state, _ = reduce(state, InputsChanged(newer))
        self.assertEqual(state.pending, 2)

        stale_state, effects = reduce(state, DurationsResolved(1, 20.0, ()))
        self.assertEqual(effects, ())
        self.assertEqual(stale_state, state)

        stale_state, effects = reduce(state, ProbeFailed(1, "boom"))
        self.assertEqual(effects, ())
        self.assertEqual(stale_state, state)

    def test_probe_failure_keeps_interval_and_notice(self):
        state = AdjustState(notice="old notice")
        state, _ = reduce(state, InputsChanged(self.inputs))
        state, effects = reduce(state, ProbeFailed(1, "timeout"))
        self.assertEqual(effects, ())
        self.assertIsNone(state.pending)
        self.assertEqual(state.notice, "old notice")

    def test_no_audio_clears_notice(self):
        state = AdjustState(notice=NOTICE_2S, pending=3, generation=3)
        inputs = AdjustInputs(image_count=10, video_ids=(), audio_id=None, interval=2)
        state, effects = reduce(state, InputsChanged(inputs))
        self.assertEqual(effects, (PublishNotice(None),))
        self.assertIsNone(state.pending)
        self.assertIsNone(state.notice)

    def test_no_images_clears_notice(self):
        inputs = AdjustInputs(image_count=0, video_ids=("v",), audio_id="song", interval=5)
        _, effects = reduce(AdjustState(notice="x"), InputsChanged(inputs))
        self.assertEqual(effects, (PublishNotice(None),))

    def test_video_durations_are_requested(self):
        inputs = AdjustInputs(image_count=5, video_ids=("v1",), audio_id="song", interval=5)
        state, effects = reduce(AdjustState(), InputsChanged(inputs))
        self.assertEqual(effects, (RequestDurations(1, "song", ("v1",)),))
        state, effects = reduce(state, DurationsResolved(1, 20.0, (25.0,)))
        self.assertEqual(effects, (ApplyInterval(1), PublishNotice(MINIMUM_NOTICE)))


# ---- Controller ------------------------------------------------------------

@pytest.fixture
def probe():
    return FakeProbe()


@pytest.fixture
def controller(qtbot, probe):
    return AutoAdjustController(probe, timeout_seconds=5)


def _record(controller):
    intervals, notices = [], []
    controller.interval_adjusted.connect(intervals.append)
    controller.notice_changed.connect(notices.append)
    return intervals, notices


def test_probes_song_and_applies_interval(controller, probe):
    intervals, notices = _record(controller)
    media = [image(f"{i}.png") for i in range(10)]
    audio = song()

    controller.update(media, audio, 5)
    assert probe.names() == ["song.mp3"]
    assert controller.is_busy

    probe.jobs[0].finished.emit(20.0)
    assert intervals == [2]
    assert notices == [NOTICE_2S]
    assert controller.notice == NOTICE_2S
    assert not controller.is_busy


def test_own_correction_does_not_retrigger(controller, probe):
    media = [image(f"{i}.png") for i in range(10)]
    audio = song()
    intervals = []

    def write_back(value):
        intervals.append(value)
        controller.update(media, audio, value, Origin.AUTO)

    controller.interval_adjusted.connect(write_back)
    controller.update(media, audio, 5)
    probe.jobs[0].finished.emit(20.0)

    assert intervals == [2]
    assert len(probe.jobs) == 1
    assert controller.state.inputs.interval == 2
    assert controller.notice == NOTICE_2S


def test_known_durations_skip_probing(controller, probe):
    intervals, _ = _record(controller)
    media = [image(f"{i}.png") for i in range(5)] + [video(duration=25.0)]
    controller.update(media, song(duration=20.0), 5)
    assert probe.jobs == []
    assert intervals == [1]


def test_reorder_does_not_reprobe(controller, probe):
    clip = video()
    media = [image(f"{i}.png") for i in range(5)] + [clip]
    audio = song()
    controller.update(media, audio, 5)
    assert sorted(probe.names()) == ["clip.mp4", "song.mp3"]
    for job in list(probe.jobs):
        job.finished.emit(25.0 if job.blob.name == "clip.mp4" else 60.0)

    reordered = [media[3]] + media[:3] + media[4:]
    controller.update(reordered, audio, 5)
    assert len(probe.jobs) == 2
    assert not controller.is_busy
    assert controller.known_duration(clip.id) == 25.0


def test_newest_inputs_win_over_slow_probe(controller, probe):
    intervals, _ = _record(controller)
    first_song, second_song = song("first.mp3"), song("second.mp3")
    media = [image(f"{i}.png") for i in range(10)]

    controller.update(media, first_song, 5)
    controller.update(media, second_song, 5)
    first_job, second_job = probe.jobs

    second_job.finished.emit(20.0)
    assert intervals == [2]

    # The first song's probe arrives late; it must not change anything
    first_job.finished.emit(200.0)
    assert intervals == [2]
    assert controller.notice == NOTICE_2S


def test_result_applies_to_latest_media(controller, probe):
    intervals, _ = _record(controller)
    audio = song()
    controller.update([image(f"{i}.png") for i in range(10)], audio, 5)
    controller.update([image(f"{i}.png") for i in range(20)], audio, 5)
    assert len(probe.jobs) == 1  # Same song, same in-flight probe

    probe.jobs[0].finished.emit(20.0)
    assert intervals == [1]


def test_probe_failure_keeps_interval(controller, probe):
    intervals, notices = _record(controller)
    controller.update([image()], song(), 5)
    probe.jobs[0].failed.emit("unreadable")
    assert intervals == []
    assert notices == []
    assert not controller.is_busy


def test_timeout_aborts_probe(qtbot, probe):
    controller = AutoAdjustController(probe, timeout_seconds=0.05)
    intervals, _ = _record(controller)
    controller.update([image()], song(), 5)

    qtbot.waitUntil(lambda: not controller.is_busy, timeout=2000)
    assert probe.jobs[0].aborted
    assert intervals == []


def test_removing_audio_clears_notice(controller, probe):
    _, notices = _record(controller)
    media = [image(f"{i}.png") for i in range(10)]
    controller.update(media, song(), 5)
    probe.jobs[0].finished.emit(20.0)

    controller.update(media, None, 2)
    assert notices == [NOTICE_2S, None]
    assert controller.notice is None


def test_dropped_media_is_forgotten(controller, probe):
    media = [image(f"{i}.png") for i in range(5)]
    for i in range(50):
        controller.update(media, song(f"s{i}.mp3"), 5)
        if i % 2:
            probe.jobs[-1].finished.emit(120.0)

    # Only the current song is held; unresolved earlier probes were aborted
    assert len(probe.jobs) == 50
    assert list(controller._blobs) == [controller.state.inputs.audio_id]
    assert len(controller._durations) == 1
    assert controller._jobs == {}
    assert all(job.aborted for job in probe.jobs[0:50:2])

    controller.update(media, None, 5)
    assert controller._blobs == {}
    assert controller._durations == {}
    assert controller._jobs == {}
