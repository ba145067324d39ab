"""
Job orchestration for WebSpeech.

This package drives long-running, server-executed speech jobs from a single
event loop. At most one job of each kind is in flight, progress is reported
with a local heartbeat, remote status is polled within fixed budgets and the
cached model state always follows what the server confirms.

Key Components:
- SpeechJobManager: High-level API used by front ends
- TtsJobRunner / StsJobRunner: Single-flight job runners
- BoundedPoller: Interval polling with an attempt budget
- ModelStateReconciler: Server-confirmed model on/off cache
- CaptureTimer / RecordingController: Bounded recordings
- JobLogger: Structured logging

Example Usage:
    from webspeech_client.jobs import SpeechJobManager, TtsParams

    manager = SpeechJobManager(client)
    await manager.initialize()
    event = await manager.generate_tts(TtsParams(text="Hello", voice="speaker.wav"))
"""

# Import key components for easy access
from .models import (
    ApiResult,
    Err,
    JobError,
    JobEvent,
    JobKind,
    ModelStatus,
    Notice,
    Ok,
    Pending,
    PollSession,
    PollState,
    RecordedAudio,
    RecordingSession,
    StsParams,
    StsStatus,
    TtsParams,
    UploadedArtifactRef,
)

from .logger import JobLogger, create_logger, setup_logging
from .scheduler import AsyncioScheduler, VirtualScheduler
from .ticker import Ticker
from .poller import BoundedPoller
from .runner import SingleFlightJobRunner, TtsJobRunner, StsJobRunner, callbacks
from .reconciler import ModelStateReconciler
from .capture import CaptureTimer, RecordingController
from .manager import SpeechJobManager

__all__ = [
    # Data models
    'ApiResult',
    'Err',
    'JobError',
    'JobEvent',
    'JobKind',
    'ModelStatus',
    'Notice',
    'Ok',
    'Pending',
    'PollSession',
    'PollState',
    'RecordedAudio',
    'RecordingSession',
    'StsParams',
    'StsStatus',
    'TtsParams',
    'UploadedArtifactRef',

    # Core components
    'JobLogger',
    'create_logger',
    'setup_logging',
    'AsyncioScheduler',
    'VirtualScheduler',
    'Ticker',
    'BoundedPoller',
    'SingleFlightJobRunner',
    'TtsJobRunner',
    'StsJobRunner',
    'callbacks',
    'ModelStateReconciler',
    'CaptureTimer',
    'RecordingController',

    # Facade
    'SpeechJobManager',
]
