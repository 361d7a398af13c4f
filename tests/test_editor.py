"""
Tests for the slideshow editor (core.editor).
"""
import time

import pytest

from core.auto_adjust import Origin
from core.captioner import CaptionStatus
from core.editor import SlideshowEditor
from models.project import Project
from models.settings import PlaybackSettings, TransitionStyle
from fakes import FakeAudioSink, FakeCaptioner, FakeProbe, FakeVideoSink, image, song, video


NOTICE_2S = "Slide speed automatically adjusted to 2s to match song length."


@pytest.fixture
def probe():
    return FakeProbe()


@pytest.fixture
def captioner():
    return FakeCaptioner()


@pytest.fixture
def editor(qtbot, probe, captioner):
    editor = SlideshowEditor(probe, captioner, probe_timeout=5)
    editor.messages = []
    editor.message.connect(editor.messages.append)
    yield editor
    editor.shutdown()


def _images(count):
    return [f"photo{i}.png" for i in range(count)]


def _probe_song(probe, seconds):
    job = next(j for j in probe.jobs if j.blob.name.endswith(".mp3"))
    job.finished.emit(seconds)


def test_import_adds_media(editor):
    changes = []
    editor.media_changed.connect(lambda: changes.append(True))
    editor.import_files(_images(3))
    assert len(editor.media) == 3
    assert len(changes) == 3


def test_song_shortens_interval(editor, probe):
    notices = []
    editor.notice_changed.connect(notices.append)
    editor.import_files(_images(10))
    assert editor.select_audio("/music/song.mp3")
    _probe_song(probe, 20.0)

    assert editor.settings.interval_seconds == 2
    assert editor.notice == NOTICE_2S
    assert notices == [NOTICE_2S]
    # The automatic write did not start another probe
    assert probe.names() == ["song.mp3"]


def test_user_interval_change_recomputes(editor, probe):
    editor.import_files(_images(10))
    editor.select_audio("song.mp3")
    _probe_song(probe, 20.0)

    # Picking a longer interval again is corrected from the cached duration
    editor.set_interval(10)
    assert editor.settings.interval_seconds == 2
    assert len(probe.jobs) == 1


def test_reorder_keeps_identity_without_reprobing(editor, probe):
    editor.import_files(_images(4) + ["clip.mp4"])
    probe.jobs[0].finished.emit(12.0)
    editor.select_audio("song.mp3")
    _probe_song(probe, 120.0)
    ids_before = editor.media.ids()
    jobs_before = len(probe.jobs)

    assert editor.move_media(3, 0)
    ids_after = editor.media.ids()
    assert ids_after[0] == ids_before[3]
    assert sorted(ids_after) == sorted(ids_before)
    assert len(probe.jobs) == jobs_before
    assert not editor.adjuster.is_busy


def test_remove_media(editor):
    editor.import_files(_images(2))
    first = editor.media[0]
    assert editor.remove_media(first.id)
    assert not editor.remove_media(first.id)
    assert len(editor.media) == 1


def test_non_audio_file_is_rejected(editor):
    assert not editor.select_audio("cover.jpg")
    assert editor.audio is None
    assert editor.messages == ['"cover.jpg" is not a supported audio file.']


def test_clearing_audio_clears_notice(editor, probe):
    editor.import_files(_images(10))
    editor.select_audio("song.mp3")
    _probe_song(probe, 20.0)
    editor.clear_audio()
    assert editor.audio is None
    assert editor.notice is None


def test_ready_to_play(editor):
    assert not editor.is_ready_to_play
    editor.import_files(_images(1))
    assert not editor.is_ready_to_play
    editor.select_audio("song.mp3")
    assert editor.is_ready_to_play


def test_create_session_requires_media_and_song(editor):
    with pytest.raises(ValueError):
        editor.create_session(FakeAudioSink(), FakeVideoSink())


def test_create_session_snapshots_settings(editor):
    editor.load_project(Project(media=[image("a.png"), image("b.png")], audio=song(duration=300.0)))
    session = editor.create_session(FakeAudioSink(), FakeVideoSink())
    editor.set_interval(15)
    assert session.settings.interval_seconds == 5
    assert len(session.media) == 2


def test_settings_setters_emit_once(editor):
    changes = []
    editor.settings_changed.connect(lambda: changes.append(True))
    editor.set_transition_style(TransitionStyle.FADE)
    editor.set_transition_style("fade")
    editor.set_show_clock(False)
    editor.set_show_clock(False)
    assert len(changes) == 2
    assert editor.settings.transition_style is TransitionStyle.FADE
    assert not editor.settings.show_clock


def test_interval_never_below_one(editor):
    editor.set_interval(0, Origin.USER)
    assert editor.settings.interval_seconds == 1


def test_load_and_new(editor):
    media = [image("a.png"), video(duration=10.0)]
    project = Project(id="slideshow-1", name="Beach", media=media, audio=song(duration=300.0),
                      settings=PlaybackSettings(interval_seconds=15, show_clock=False))
    editor.load_project(project)
    assert editor.active_project_id == "slideshow-1"
    assert editor.active_name == "Beach"
    assert editor.media.ids() == [m.id for m in media]
    assert editor.settings.interval_seconds == 15

    # Editing after load does not touch the loaded project's settings
    editor.set_interval(10)
    assert project.settings.interval_seconds == 15

    editor.new_slideshow()
    assert editor.active_project_id is None
    assert editor.active_name == "New Slideshow"
    assert len(editor.media) == 0
    assert editor.audio is None
    assert editor.settings == PlaybackSettings()


def test_to_project_and_mark_saved(editor):
    editor.import_files(_images(2))
    project = editor.to_project("Party")
    assert project.id is None
    assert project.name == "Party"
    assert [m.id for m in project.media] == editor.media.ids()

    project.id = "slideshow-9"
    editor.mark_saved(project)
    assert editor.active_project_id == "slideshow-9"
    assert editor.to_project().name == "Party"


def test_captions_generated_for_images(qtbot, editor, captioner):
    editor.load_project(Project(media=[image("a.png"), video(duration=5.0), image("b.png")]))
    editor.set_captions_enabled(True)
    qtbot.waitUntil(lambda: editor.caption_status is CaptionStatus.DONE, timeout=5000)

    images = [m for m in editor.media if m.is_image]
    assert [m.caption for m in images] == ["A picture called a.png", "A picture called b.png"]
    assert sorted(captioner.seen) == ["a.png", "b.png"]


def test_caption_failure_keeps_partial_results(qtbot, probe):
    editor = SlideshowEditor(probe, FakeCaptioner(fail_on="b.png"), probe_timeout=5)
    messages = []
    editor.message.connect(messages.append)
    try:
        editor.import_files(["a.png", "b.png", "c.png"])
        editor.set_captions_enabled(True)
        qtbot.waitUntil(lambda: editor.caption_status is CaptionStatus.ERROR, timeout=5000)

        assert [m.caption for m in editor.media] == ["A picture called a.png", None, None]
        assert messages == ["Smart captions unavailable: quota exceeded"]
    finally:
        editor.shutdown()


def test_captions_off_by_default(editor, captioner):
    editor.import_files(_images(2))
    assert editor.caption_status is CaptionStatus.IDLE
    assert captioner.seen == []


def test_new_slideshow_does_not_wait_for_caption_request(qtbot, probe):
    captioner = FakeCaptioner(delay=1.5)
    editor = SlideshowEditor(probe, captioner, probe_timeout=5)
    try:
        editor.load_project(Project(media=[image("a.png"), image("b.png")]))
        editor.set_captions_enabled(True)
        qtbot.waitUntil(lambda: captioner.seen == ["a.png"], timeout=2000)

        started = time.monotonic()
        editor.new_slideshow()
        assert time.monotonic() - started < 0.5
        assert editor.caption_status is CaptionStatus.IDLE
        assert len(editor.media) == 0

        # The cancelled pass finishes its current request and stops there
        qtbot.waitUntil(lambda: not editor._retired_threads, timeout=5000)
        assert captioner.seen == ["a.png"]
    finally:
        editor.shutdown()
