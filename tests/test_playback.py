"""
Tests for the playback state machine (core.playback).
"""
import os
import time
from datetime import datetime

import pytest
from PyQt6.QtCore import QEvent, QPoint, Qt
from PyQt6.QtGui import QContextMenuEvent, QKeyEvent
from PyQt6.QtWidgets import QApplication, QWidget

from core.playback import (
    ADVANCE_POLICIES,
    EndedSignalAdvance,
    InputGuard,
    PlaybackSession,
    TimerAdvance,
    VolumeFade,
    format_clock,
)
from models.media import MediaKind
from models.settings import PlaybackSettings
from fakes import FakeAudioSink, FakeVideoSink, image, song, video


class GuardedWidget(QWidget):
    def __init__(self):
        super().__init__()
        self.context_menus = 0

    def contextMenuEvent(self, event):
        self.context_menus += 1


@pytest.fixture
def sinks():
    return FakeAudioSink(), FakeVideoSink()


@pytest.fixture
def make_session(qtbot, sinks):
    created = []
    target = GuardedWidget()
    qtbot.addWidget(target)

    def factory(media, interval=5, audio="default", **settings):
        audio_sink, video_sink = sinks
        session = PlaybackSession(
            media,
            song() if audio == "default" else audio,
            PlaybackSettings(interval_seconds=interval, **settings),
            audio_sink,
            video_sink,
            guard_target=target,
        )
        created.append(session)
        return session

    factory.target = target
    yield factory
    for session in created:
        session.close()


def test_policy_table_maps_kinds():
    assert ADVANCE_POLICIES[MediaKind.IMAGE] is TimerAdvance
    assert ADVANCE_POLICIES[MediaKind.VIDEO] is EndedSignalAdvance


def test_start_enters_first_slide_and_plays_song(make_session, sinks):
    audio_sink, _ = sinks
    session = make_session([image("a.png"), image("b.png")])
    entered = []
    session.slide_changed.connect(entered.append)

    session.start()
    assert session.is_open
    assert session.current_index == 0
    assert entered == [0]
    assert audio_sink.volumes[-1] == 1.0
    assert ("seek", 0) in audio_sink.calls
    assert audio_sink.calls[-1] == "play"
    assert session.armed_mechanisms() == 1


@pytest.mark.parametrize("count", [1, 2, 3, 7])
def test_advancing_from_last_slide_wraps_to_first(make_session, count):
    session = make_session([image(f"{i}.png") for i in range(count)])
    session.start()
    for _ in range(count):
        session.advance()
    assert session.current_index == 0


def test_single_slide_arms_nothing(make_session):
    session = make_session([image()])
    session.start()
    assert session.armed_mechanisms() == 0
    assert session.fade is None


def test_single_video_plays_without_advancing(make_session, sinks):
    _, video_sink = sinks
    session = make_session([video()])
    session.start()
    assert len(video_sink.played) == 1
    video_sink.end()
    assert session.current_index == 0
    assert session.armed_mechanisms() == 0


def test_at_most_one_mechanism_armed(make_session, sinks):
    _, video_sink = sinks
    session = make_session([image("a.png"), video(), image("b.png"), image("c.png")])
    session.start()
    for _ in range(12):
        assert session.armed_mechanisms() == 1
        if session.current_item.is_video:
            video_sink.end()
        else:
            session.advance()
    session.close()
    assert session.armed_mechanisms() == 0


def test_video_slide_advances_on_ended(make_session, sinks):
    _, video_sink = sinks
    session = make_session([image("a.png"), video(), image("b.png")])
    session.start()
    session.advance()
    assert session.current_index == 1
    assert video_sink.played == [session.path_for(1)]

    video_sink.end()
    assert session.current_index == 2


def test_late_ended_signal_is_ignored(make_session, sinks):
    _, video_sink = sinks
    session = make_session([image("a.png"), video(), image("b.png")])
    session.start()
    session.advance()
    session.advance()  # Leave the video before it ends
    assert session.current_index == 2

    video_sink.end()
    assert session.current_index == 2


def test_image_timer_advances(qtbot, make_session):
    session = make_session([image("a.png"), image("b.png")], interval=1)
    session.start()
    qtbot.waitUntil(lambda: session.current_index == 1, timeout=3000)


def test_last_slide_fades_song_out(make_session, sinks):
    audio_sink, _ = sinks
    session = make_session([image("a.png"), image("b.png"), image("c.png")], interval=4)
    session.start()
    session.advance()
    assert session.fade is None

    session.advance()
    fade = session.fade
    assert fade is not None
    assert fade.total_ticks * fade.tick_ms == 4000

    before = len(audio_sink.volumes)
    for _ in range(fade.total_ticks):
        fade._tick()
    samples = audio_sink.volumes[before:]
    assert len(samples) == 80
    assert all(later <= earlier for earlier, later in zip(samples, samples[1:]))
    assert samples[-1] == 0.0
    assert not fade.is_active


def test_loop_restart_resets_volume_and_cancels_fade(make_session, sinks):
    audio_sink, _ = sinks
    session = make_session([image("a.png"), image("b.png")], interval=2)
    session.start()
    session.advance()
    fade = session.fade
    for _ in range(10):
        fade._tick()
    assert audio_sink.volume() < 1.0

    session.advance()
    assert session.current_index == 0
    assert session.fade is None
    assert not fade.is_active
    assert audio_sink.volume() == 1.0
    assert audio_sink.calls[-2:] == [("seek", 0), "play"]


def test_rejected_audio_does_not_stop_slideshow(make_session):
    audio_sink = FakeAudioSink(reject=True)
    session = PlaybackSession([image("a.png"), image("b.png")], song(), PlaybackSettings(),
                              audio_sink, FakeVideoSink(), guard_target=make_session.target)
    session.start()
    try:
        assert session.is_open
        assert session.armed_mechanisms() == 1
    finally:
        session.close()


def test_captions_follow_setting(make_session):
    media = [image("a.png", caption="A beach"), image("b.png")]
    session = make_session(media, captions_enabled=True)
    captions = []
    session.caption_changed.connect(captions.append)
    session.start()
    session.advance()
    assert captions == ["A beach", None]


def test_captions_hidden_when_disabled(make_session):
    session = make_session([image("a.png", caption="A beach")], captions_enabled=False)
    captions = []
    session.caption_changed.connect(captions.append)
    session.start()
    assert captions == [None]


def test_session_uses_snapshot_of_media_and_settings(make_session):
    media = [image("a.png"), image("b.png")]
    settings = PlaybackSettings(interval_seconds=5)
    session = PlaybackSession(media, song(), settings, FakeAudioSink(), FakeVideoSink(),
                              guard_target=make_session.target)
    media.append(image("c.png"))
    settings.interval_seconds = 1
    assert len(session.media) == 2
    assert session.settings.interval_seconds == 5


def test_close_releases_everything(make_session, sinks):
    audio_sink, video_sink = sinks
    session = make_session([image("a.png"), image("b.png")], interval=1)
    closed = []
    session.closed.connect(lambda: closed.append(True))
    session.start()
    session.advance()
    temp_paths = [session.path_for(0), session.path_for(1)]
    assert all(os.path.exists(p) for p in temp_paths)

    session.close()
    session.close()
    assert closed == [True]
    assert not session.is_open
    assert session.armed_mechanisms() == 0
    assert session.fade is None
    assert not any(os.path.exists(p) for p in temp_paths)
    assert "stop" in audio_sink.calls
    assert video_sink.callback is None


def test_video_player_lets_go_before_temp_file_is_removed(make_session, sinks):
    _, video_sink = sinks
    session = make_session([video(duration=4.0), image("a.png")])
    session.start()
    clip_path = session.path_for(0)
    assert video_sink.played == [clip_path]

    session.close()
    assert video_sink.released_with == [[clip_path]]
    assert not os.path.exists(clip_path)


def test_context_manager_closes(make_session):
    with make_session([image("a.png"), image("b.png")]) as session:
        assert session.is_open
    assert not session.is_open


def test_escape_closes_and_context_menu_is_swallowed(make_session):
    target = make_session.target
    session = make_session([image("a.png"), image("b.png")])
    session.start()

    menu_event = QContextMenuEvent(QContextMenuEvent.Reason.Mouse, QPoint(1, 1))
    QApplication.sendEvent(target, menu_event)
    assert target.context_menus == 0

    escape = QKeyEvent(QEvent.Type.KeyPress, Qt.Key.Key_Escape, Qt.KeyboardModifier.NoModifier)
    QApplication.sendEvent(target, escape)
    assert not session.is_open

    # Guard removed: events reach the widget again
    QApplication.sendEvent(target, QContextMenuEvent(QContextMenuEvent.Reason.Mouse, QPoint(1, 1)))
    assert target.context_menus == 1


def test_input_guard_passes_other_keys(qtbot):
    target = GuardedWidget()
    qtbot.addWidget(target)
    escapes = []
    guard = InputGuard(lambda: escapes.append(True))
    guard.install(target)
    key = QKeyEvent(QEvent.Type.KeyPress, Qt.Key.Key_A, Qt.KeyboardModifier.NoModifier)
    assert guard.eventFilter(target, key) is False
    guard.remove()
    assert not guard.is_installed
    assert escapes == []


def test_clock_ticks_when_enabled(qtbot, make_session):
    session = make_session([image()], show_clock=True)
    ticks = []
    session.clock_tick.connect(ticks.append)
    session.start()
    assert len(ticks) == 1
    qtbot.waitUntil(lambda: len(ticks) >= 2, timeout=3000)


def test_clock_silent_when_disabled(make_session):
    session = make_session([image()], show_clock=False)
    ticks = []
    session.clock_tick.connect(ticks.append)
    session.start()
    assert ticks == []


def test_format_clock():
    text = format_clock(datetime(2024, 3, 5, 14, 7, 9))
    assert text == "Tuesday, March 5\n14:07:09"


def test_volume_fade_reaches_silence_on_time(qtbot):
    sink = FakeAudioSink()
    fade = VolumeFade(sink, 1000)
    started = time.monotonic()
    fade.start()
    qtbot.waitUntil(lambda: not fade.is_active, timeout=5000)
    elapsed = time.monotonic() - started
    assert sink.volume() == 0.0
    assert 0.9 <= elapsed < 3.0


def test_empty_slideshow_cannot_start(make_session):
    session = make_session([])
    with pytest.raises(ValueError):
        session.start()
