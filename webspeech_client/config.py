"""Client configuration for WebSpeech.

This module provides the connection, timing and limit settings shared by the
job runners, pollers, recorder and HTTP client.
"""

import os
from dataclasses import dataclass

# Languages accepted by the synthesis endpoint
SUPPORTED_LANGUAGES = [
    'zh-cn', 'en', 'ja', 'ko', 'es', 'de', 'fr', 'it',
    'tr', 'ru', 'pt', 'pl', 'nl', 'ar', 'hu', 'cs',
]

ALLOWED_AUDIO_TYPES = ('.wav', '.mp3', '.flac')
ALLOWED_SUBTITLE_TYPES = ('.srt',)


@dataclass
class ClientConfig:
    """Configuration for a WebSpeech client session.

    Attributes:
        base_url: Server root URL (default: http://127.0.0.1:9988)
        connect_timeout: Seconds to wait for a connection (default: 10)
        read_timeout: Seconds to wait for a response; synthesis is slow (default: 600)
        speed_min: Lowest accepted speech speed (default: 0.1)
        speed_max: Highest accepted speech speed (default: 2.0)
        speed_default: Speed used when the requested one is invalid (default: 1.0)
        recording_max_seconds: Recording auto-stops after this many seconds (default: 20)
        sts_status_interval: Seconds between STS readiness checks (default: 5)
        sts_status_max_attempts: STS readiness checks before giving up (default: 60)
        model_refresh_interval: Seconds between model registry refreshes (default: 30)
        upload_max_bytes: Largest accepted upload (default: 100 MiB)
        upload_save_dir: Server-side directory for uploads (default: tmp)
        enable_sts: Whether the server runs the speech-to-speech backend (default: False)
        log_level: Logging level name (default: INFO)
    """
    base_url: str = "http://127.0.0.1:9988"
    connect_timeout: float = 10.0
    read_timeout: float = 600.0
    speed_min: float = 0.1
    speed_max: float = 2.0
    speed_default: float = 1.0
    recording_max_seconds: int = 20
    sts_status_interval: float = 5.0
    sts_status_max_attempts: int = 60
    model_refresh_interval: float = 30.0
    upload_max_bytes: int = 100 * 1024 * 1024
    upload_save_dir: str = "tmp"
    enable_sts: bool = False
    log_level: str = "INFO"

    def __post_init__(self):
        """Normalize values after dataclass init."""
        self.base_url = self.base_url.rstrip('/')
        self.log_level = self.log_level.upper()

    @classmethod
    def from_env(cls):
        """Load configuration from environment variables.

        Environment variables:
            WEBSPEECH_BASE_URL: Server root URL
            WEBSPEECH_CONNECT_TIMEOUT: Connect timeout in seconds (float)
            WEBSPEECH_READ_TIMEOUT: Read timeout in seconds (float)
            WEBSPEECH_RECORDING_MAX_SECONDS: Recording limit (integer)
            WEBSPEECH_STS_STATUS_INTERVAL: STS readiness poll interval (float)
            WEBSPEECH_STS_STATUS_MAX_ATTEMPTS: STS readiness poll budget (integer)
            WEBSPEECH_MODEL_REFRESH_INTERVAL: Model refresh interval (float)
            WEBSPEECH_UPLOAD_SAVE_DIR: Server-side upload directory
            WEBSPEECH_ENABLE_STS: Poll STS readiness on startup ('true'/'false')
            WEBSPEECH_LOG_LEVEL: Logging level name

        Returns:
            ClientConfig instance with values from environment
        """
        return cls(
            base_url=os.getenv('WEBSPEECH_BASE_URL', 'http://127.0.0.1:9988'),
            connect_timeout=float(os.getenv('WEBSPEECH_CONNECT_TIMEOUT', '10')),
            read_timeout=float(os.getenv('WEBSPEECH_READ_TIMEOUT', '600')),
            recording_max_seconds=int(os.getenv('WEBSPEECH_RECORDING_MAX_SECONDS', '20')),
            sts_status_interval=float(os.getenv('WEBSPEECH_STS_STATUS_INTERVAL', '5')),
            sts_status_max_attempts=int(os.getenv('WEBSPEECH_STS_STATUS_MAX_ATTEMPTS', '60')),
            model_refresh_interval=float(os.getenv('WEBSPEECH_MODEL_REFRESH_INTERVAL', '30')),
            upload_save_dir=os.getenv('WEBSPEECH_UPLOAD_SAVE_DIR', 'tmp'),
            enable_sts=os.getenv('WEBSPEECH_ENABLE_STS', 'false').lower() in ('true', '1'),
            log_level=os.getenv('WEBSPEECH_LOG_LEVEL', 'INFO'),
        )
