"""
Media Probe - Asynchronous duration lookup from container metadata.

Runs ffprobe through QProcess so the probe never blocks the event loop and
never needs a worker thread. Only the container header is read; nothing is
decoded.

No timeout is imposed here: a probe whose process never exits never
resolves. Callers that need a deadline call ProbeJob.abort() themselves.
"""
import contextlib
import logging
import math
from typing import Optional, Sequence

from PyQt6.QtCore import QObject, QProcess, QTimer, pyqtSignal

from models.media import MediaBlob
from runtime_config import get_config


logger = logging.getLogger(__name__)

FFPROBE_ARGS = [
    "-v", "error",
    "-show_entries", "format=duration",
    "-of", "default=noprint_wrappers=1:nokey=1",
]


def parse_duration(output: str) -> float:
    """Parse ffprobe's duration output.

    Raises:
        ValueError: if the output is not a finite, non-negative number.
    """
    text = output.strip().splitlines()[0].strip() if output.strip() else ""
    duration = float(text)
    if math.isnan(duration) or math.isinf(duration) or duration < 0:
        raise ValueError(f"invalid duration {text!r}")
    return duration


class ProbeJob(QObject):
    """One running probe.

    Emits exactly one of ``finished(seconds)`` or ``failed(reason)``, unless
    aborted first (then neither). The blob's temporary handle is held only
    while the process runs.
    """

    finished = pyqtSignal(float)
    failed = pyqtSignal(str)

    def __init__(self, blob: MediaBlob, program: str, base_args: Sequence[str] = (), parent=None):
        super().__init__(parent)
        self.blob = blob
        self.program = program
        self.base_args = list(base_args)
        self.source_path: Optional[str] = None
        self._handles = contextlib.ExitStack()
        self._process: Optional[QProcess] = None
        self._done = False

    @property
    def is_done(self) -> bool:
        return self._done

    def start(self):
        """Acquire the blob handle and launch ffprobe."""
        if self._done or self._process is not None:
            return
        try:
            self.source_path = self._handles.enter_context(self.blob.materialize())
        except OSError as e:
            self._fail(f"could not open {self.blob.name}: {e}")
            return

        self._process = QProcess(self)
        self._process.finished.connect(self._on_finished)
        self._process.errorOccurred.connect(self._on_error)
        self._process.start(self.program, self.base_args + FFPROBE_ARGS + [self.source_path])

    def abort(self):
        """Stop the probe without resolving it and release its handle."""
        if self._done:
            return
        self._done = True
        if self._process is not None:
            self._process.blockSignals(True)
            if self._process.state() != QProcess.ProcessState.NotRunning:
                self._process.kill()
                self._process.waitForFinished(1000)
        self._release()

    def _on_finished(self, exit_code: int, exit_status):
        if self._done:
            return
        output = bytes(self._process.readAllStandardOutput()).decode("utf-8", errors="replace")
        if exit_status != QProcess.ExitStatus.NormalExit or exit_code != 0:
            errors = bytes(self._process.readAllStandardError()).decode("utf-8", errors="replace")
            self._fail(f"ffprobe exited with {exit_code}: {errors.strip()}")
            return
        try:
            duration = parse_duration(output)
        except (ValueError, IndexError):
            self._fail(f"unreadable duration for {self.blob.name}: {output.strip()!r}")
            return
        self._done = True
        self._release()
        self.finished.emit(duration)

    def _on_error(self, error):
        # Crashes arrive through finished() as well; only start failures end here.
        if error == QProcess.ProcessError.FailedToStart:
            self._fail(f"could not start {self.program}")

    def _fail(self, reason: str):
        if self._done:
            return
        self._done = True
        self._release()
        logger.warning("Probe failed for %s: %s", self.blob.name, reason)
        self.failed.emit(reason)

    def _release(self):
        self._handles.close()


class MediaProbe:
    """Factory for ProbeJobs sharing one ffprobe command line."""

    def __init__(self, program: Optional[str] = None, base_args: Sequence[str] = ()):
        self.program = program or get_config().ffprobe_path
        self.base_args = list(base_args)

    def probe(self, blob: MediaBlob, parent=None) -> ProbeJob:
        job = ProbeJob(blob, self.program, self.base_args, parent)
        # Started on the next loop turn so callers can connect signals first
        QTimer.singleShot(0, job.start)
        return job

