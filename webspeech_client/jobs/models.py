"""
Data models for the job orchestration layer.

Results, events and session records exchanged between the runners, pollers,
the reconciler and the presentation layer. None of them are persisted.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple, Optional, Union

from ..errors import ErrorKind


class JobKind(str, Enum):
    """Kind of server-executed job."""
    TTS = "tts"    # Text to speech
    STS = "sts"    # Speech to speech


class PollState(str, Enum):
    """Lifecycle of a poll session."""
    IDLE = "idle"
    POLLING = "polling"
    TERMINAL = "terminal"      # Awaited condition observed
    EXHAUSTED = "exhausted"    # Attempt budget spent
    CANCELLED = "cancelled"    # stop_polling() called


@dataclass
class ApiResult:
    """
    Uniform server response.

    Every endpoint answers with ``{code, data, msg}``; ``code == 0`` is success.
    """
    code: int
    data: Any = None
    msg: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.code == 0

    @classmethod
    def from_payload(cls, payload: Any) -> 'ApiResult':
        """
        Build a result from decoded JSON.

        Some endpoints return their payload bare (a voice list, a model map);
        those are treated as successful results carrying the payload as data.
        """
        if isinstance(payload, dict) and 'code' in payload:
            try:
                code = int(payload['code'])
            except (TypeError, ValueError):
                code = -1
            msg = payload.get('msg')
            return cls(code=code, data=payload.get('data'), msg=str(msg) if msg is not None else None)
        return cls(code=0, data=payload)


@dataclass(frozen=True)
class JobError:
    """Why a job did not produce a result."""
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class Pending:
    """Job accepted and still running; elapsed seconds since issuance."""
    elapsed: int


@dataclass(frozen=True)
class Notice:
    """Non-terminal information, e.g. an invalid speed replaced by the default."""
    message: str


@dataclass(frozen=True)
class Ok:
    """Job finished successfully, with the server's message if it sent one."""
    data: Any
    message: Optional[str] = None


@dataclass(frozen=True)
class Err:
    """Job ended without a result."""
    error: JobError

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind

    @property
    def message(self) -> str:
        return self.error.message


JobEvent = Union[Pending, Notice, Ok, Err]


@dataclass
class TtsParams:
    """Parameters for a text-to-speech job."""
    text: str
    voice: str
    language: str = "en"
    speed: Any = 1.0
    model: str = ""


@dataclass
class StsParams:
    """Parameters for a speech-to-speech job. The source audio is the uploaded artifact."""
    voice: str


class StsStatus(NamedTuple):
    """Readiness of the server's speech-to-speech backend."""
    running: bool
    message: Optional[str]


@dataclass
class PollSession:
    """
    Book-keeping for one poll sequence.

    ``max_attempts`` of None means the sequence never exhausts.
    """
    interval: float
    max_attempts: Optional[int] = None
    attempts: int = 0
    state: PollState = PollState.IDLE
    started_at: float = field(default_factory=time.time)

    @property
    def active(self) -> bool:
        return self.state == PollState.POLLING

    def budget_spent(self) -> bool:
        return self.max_attempts is not None and self.attempts >= self.max_attempts


@dataclass
class RecordingSession:
    """A bounded recording in progress."""
    max_seconds: int
    elapsed_seconds: int = 0
    auto_stopped: bool = False


@dataclass
class RecordedAudio:
    """A finished recording encoded as WAV."""
    wav_bytes: bytes
    duration_seconds: float
    sample_rate: int = 16000
    file_name: str = "record.wav"


@dataclass(frozen=True)
class ModelStatus:
    """Display entry for one model in the registry."""
    name: str
    running: bool

    @property
    def label(self) -> str:
        return "on" if self.running else "off"

    def format_display_name(self) -> str:
        return f"{self.name}/{'Running' if self.running else 'Stopped'}"


# Server-assigned name of an uploaded audio file
UploadedArtifactRef = str
