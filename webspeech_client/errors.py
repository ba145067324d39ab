"""Error kinds, validation codes and user-facing messages."""

from enum import Enum


class ErrorKind(str, Enum):
    """How a job or poll ended when it did not succeed."""
    VALIDATION = "validation"            # Rejected locally, never sent
    BUSY = "busy"                        # Same-kind job already in flight
    REMOTE_FAILURE = "remote_failure"    # Server answered with non-zero code
    TRANSPORT_FAILURE = "transport_failure"  # Call could not complete
    CANCELLED = "cancelled"              # Response arrived after cancel()
    POLL_EXHAUSTED = "poll_exhausted"    # Attempt budget spent, not surfaced


class ErrorCode(str, Enum):
    """Validation failure codes."""
    EMPTY_INPUT = "EMPTY_INPUT"
    NO_MEANINGFUL_CONTENT = "NO_MEANINGFUL_CONTENT"
    NOT_A_NUMBER = "NOT_A_NUMBER"
    OUT_OF_RANGE = "OUT_OF_RANGE"
    MISSING_PRECONDITION = "MISSING_PRECONDITION"
    UNSUPPORTED_LANGUAGE = "UNSUPPORTED_LANGUAGE"
    MODEL_NOT_RUNNING = "MODEL_NOT_RUNNING"
    INVALID_FILE_TYPE = "INVALID_FILE_TYPE"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"


ERROR_MESSAGES = {
    ErrorCode.EMPTY_INPUT: "A value is required.",
    ErrorCode.NO_MEANINGFUL_CONTENT: "Text contains only special characters.",
    ErrorCode.NOT_A_NUMBER: "Speed must be a number.",
    ErrorCode.OUT_OF_RANGE: "Value is out of range.",
    ErrorCode.MISSING_PRECONDITION: "A required upload is missing.",
    ErrorCode.UNSUPPORTED_LANGUAGE: "Invalid language selection.",
    ErrorCode.MODEL_NOT_RUNNING: "The model has not been launched yet, please launch it and use it.",
    ErrorCode.INVALID_FILE_TYPE: "Invalid file type.",
    ErrorCode.FILE_TOO_LARGE: "File too large.",
}

# Job-level messages shown when a runner rejects a submission
MSG_VOICE_REQUIRED = "You must select a voice to use"
MSG_TEXT_REQUIRED = "You must enter the text to be synthesized"
MSG_AUDIO_REQUIRED = "You must upload the wav/mp3 audio file for conversion"
MSG_SPEED_RANGE = "speed between 0.1 and 2.0, 1 is normal speed"
MSG_ALREADY_PROCESSING = "Already processing a request"
MSG_STS_NOT_RUNNING = (
    "The sts model has not been launched yet, please download it "
    "and set .env ENABLE_STS=0 to ENABLE_STS=1"
)


class TransportError(Exception):
    """Raised by a transport when a request could not complete."""


class RemoteFailure(Exception):
    """Raised where a non-zero result code has to interrupt control flow."""

    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code


class UploadError(Exception):
    """Raised when an audio upload is rejected locally or by the server."""
