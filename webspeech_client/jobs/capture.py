"""
Recording duration limits.

CaptureTimer counts recording seconds and fires a single auto-stop when the
limit is reached. RecordingController pairs it with a Recorder so a stopped
recording is delivered and a cancelled one is thrown away.
"""

from typing import Callable, Optional

from ..config import ClientConfig
from ..interfaces import Recorder
from .logger import JobLogger, create_logger
from .models import RecordedAudio, RecordingSession
from .scheduler import AsyncioScheduler
from .ticker import Ticker


class CaptureTimer:
    """Bounds a recording to ``max_seconds``."""

    def __init__(self, scheduler=None):
        self._ticker = Ticker(scheduler or AsyncioScheduler())
        self.session: Optional[RecordingSession] = None
        self._on_tick: Optional[Callable[[int], None]] = None
        self._on_auto_stop: Optional[Callable[[], None]] = None

    @property
    def running(self) -> bool:
        return self.session is not None

    def start(
        self,
        max_seconds: int,
        on_tick: Optional[Callable[[int], None]] = None,
        on_auto_stop: Optional[Callable[[], None]] = None
    ) -> RecordingSession:
        self.session = RecordingSession(max_seconds=max_seconds)
        self._on_tick = on_tick
        self._on_auto_stop = on_auto_stop
        self._ticker.start(self._handle_tick)
        return self.session

    def _handle_tick(self, elapsed: int):
        session = self.session
        if session is None:
            return
        session.elapsed_seconds = elapsed
        if self._on_tick:
            self._on_tick(elapsed)
        if elapsed >= session.max_seconds and not session.auto_stopped:
            session.auto_stopped = True
            self._ticker.stop()
            if self._on_auto_stop:
                self._on_auto_stop()
            # The callback normally calls stop(); release if it did not
            if self.session is session:
                self._release()

    def stop(self) -> Optional[RecordingSession]:
        """Release the ticker; returns the finished session, if any."""
        session = self.session
        self._release()
        return session

    def cancel(self):
        self._release()

    def _release(self):
        self._ticker.stop()
        self.session = None
        self._on_tick = None
        self._on_auto_stop = None


class RecordingController:
    """
    Drives a Recorder under a CaptureTimer.

    Example:
        controller = RecordingController(
            SoundDeviceRecorder(),
            on_tick=lambda s: print(f"Recorded {s}s"),
            on_complete=upload,
        )
        controller.start()
        ...
        controller.stop()
    """

    def __init__(
        self,
        recorder: Recorder,
        scheduler=None,
        config: Optional[ClientConfig] = None,
        on_tick: Optional[Callable[[int], None]] = None,
        on_complete: Optional[Callable[[RecordedAudio], None]] = None,
        logger: Optional[JobLogger] = None
    ):
        self.recorder = recorder
        self.config = config or ClientConfig()
        self.timer = CaptureTimer(scheduler)
        self.on_tick = on_tick
        self.on_complete = on_complete
        self.logger = logger or create_logger("recording")

    def is_recording(self) -> bool:
        return self.timer.running

    def start(self, max_seconds: Optional[int] = None):
        """
        Start recording.

        Raises:
            RuntimeError: If a recording is already in progress
            Exception: Whatever the recorder raises when the device cannot open
        """
        if self.timer.running:
            raise RuntimeError("Recording already in progress")

        limit = max_seconds or self.config.recording_max_seconds
        self.recorder.start()
        self.timer.start(limit, on_tick=self.on_tick, on_auto_stop=self._auto_stop)
        self.logger.info("Recording started", metadata={'max_seconds': limit})

    def _auto_stop(self):
        self.logger.info("Recording limit reached, stopping")
        self.stop()

    def stop(self) -> Optional[RecordedAudio]:
        """
        Stop recording and deliver the captured audio.

        Returns:
            The recording, or None if nothing was recording
        """
        session = self.timer.stop()
        if session is None:
            return None

        audio = self.recorder.stop()
        self.logger.info(
            "Recording stopped",
            metadata={
                'elapsed': session.elapsed_seconds,
                'auto_stopped': session.auto_stopped,
                'duration': audio.duration_seconds if audio else 0,
            }
        )
        if audio is not None and self.on_complete:
            self.on_complete(audio)
        return audio

    def cancel(self):
        """Stop recording and discard whatever was captured."""
        if not self.timer.running:
            return
        self.timer.cancel()
        self.recorder.abort()
        self.logger.info("Recording cancelled")

    def dispose(self):
        self.cancel()
        self.on_tick = None
        self.on_complete = None
