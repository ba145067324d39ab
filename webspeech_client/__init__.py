"""
WebSpeech client.

Drives text-to-speech, speech-to-speech and model lifecycle jobs on a
WebSpeech server from a single asyncio event loop.
"""

__version__ = "1.0.0"

from .config import ClientConfig, SUPPORTED_LANGUAGES, ALLOWED_AUDIO_TYPES
from .errors import ErrorKind, ErrorCode, TransportError, RemoteFailure, UploadError
from .validators import (
    ValidationResult,
    validate_text,
    validate_voice,
    validate_speed,
    validate_uploaded_audio,
    validate_language,
    validate_model,
    validate_audio_file,
    validate_subtitle_file,
)
from .jobs import (
    SpeechJobManager,
    TtsJobRunner,
    StsJobRunner,
    BoundedPoller,
    ModelStateReconciler,
    RecordingController,
    TtsParams,
    StsParams,
    Pending,
    Notice,
    Ok,
    Err,
    callbacks,
)
from .api_client import ApiClient
from .upload import UploadService
from .recorder import SoundDeviceRecorder

__all__ = [
    '__version__',
    'ClientConfig',
    'SUPPORTED_LANGUAGES',
    'ALLOWED_AUDIO_TYPES',
    'ErrorKind',
    'ErrorCode',
    'TransportError',
    'RemoteFailure',
    'UploadError',
    'ValidationResult',
    'validate_text',
    'validate_voice',
    'validate_speed',
    'validate_uploaded_audio',
    'validate_language',
    'validate_model',
    'validate_audio_file',
    'validate_subtitle_file',
    'SpeechJobManager',
    'TtsJobRunner',
    'StsJobRunner',
    'BoundedPoller',
    'ModelStateReconciler',
    'RecordingController',
    'TtsParams',
    'StsParams',
    'Pending',
    'Notice',
    'Ok',
    'Err',
    'callbacks',
    'ApiClient',
    'UploadService',
    'SoundDeviceRecorder',
]
