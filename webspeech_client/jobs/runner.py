"""
Single-flight runners for server-executed speech jobs.

A runner validates a submission, refuses it while another job of the same
kind is in flight, issues exactly one remote call and reports progress with a
local one-second heartbeat until the call resolves. Results are delivered as
tagged events (Pending, Notice, Ok, Err) through a single listener.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..config import ClientConfig
from ..interfaces import Transport
from ..errors import (
    ErrorKind,
    RemoteFailure,
    MSG_ALREADY_PROCESSING,
    MSG_AUDIO_REQUIRED,
    MSG_SPEED_RANGE,
    MSG_TEXT_REQUIRED,
    MSG_VOICE_REQUIRED,
)
from ..validators import (
    validate_language,
    validate_model,
    validate_speed,
    validate_text,
    validate_uploaded_audio,
    validate_voice,
)
from .logger import JobLogger, create_logger
from .models import (
    ApiResult,
    Err,
    JobError,
    JobEvent,
    JobKind,
    Notice,
    Ok,
    Pending,
    StsParams,
    StsStatus,
    TtsParams,
    UploadedArtifactRef,
)
from .poller import BoundedPoller
from .scheduler import AsyncioScheduler
from .ticker import Ticker

Listener = Callable[[JobEvent], None]


def callbacks(
    on_progress: Optional[Callable[[int], None]] = None,
    on_complete: Optional[Callable[[Any], None]] = None,
    on_error: Optional[Callable[[str], None]] = None,
    on_notice: Optional[Callable[[str], None]] = None
) -> Listener:
    """
    Adapt the classic progress/complete/error callbacks to a listener.

    Example:
        await runner.generate(params, callbacks(
            on_progress=lambda s: print(f"{s}s"),
            on_complete=lambda data: print(data["name"]),
            on_error=print,
        ))
    """
    def listener(event: JobEvent):
        if isinstance(event, Pending):
            if on_progress:
                on_progress(event.elapsed)
        elif isinstance(event, Ok):
            if on_complete:
                on_complete(event.data)
        elif isinstance(event, Err):
            if on_error:
                on_error(event.message)
        elif isinstance(event, Notice):
            if on_notice:
                on_notice(event.message)

    return listener


def _ignore(_event: JobEvent):
    pass


@dataclass
class _Submission:
    """A validated submission: either an error message or a request payload."""
    payload: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None
    notices: List[str] = field(default_factory=list)


class SingleFlightJobRunner:
    """
    Runs one job of a given kind at a time.

    Subclasses provide ``kind``, ``_prepare()`` (validation and payload) and
    ``_submit()`` (the remote call).
    """

    kind: JobKind
    failure_message = "Job failed"

    def __init__(
        self,
        transport: Transport,
        scheduler=None,
        config: Optional[ClientConfig] = None,
        logger: Optional[JobLogger] = None
    ):
        """
        Initialize runner.

        Args:
            transport: Transport used for the remote call
            scheduler: Time source for the progress ticker (None for the event loop)
            config: Client configuration (None for defaults)
            logger: Logger (None to create one for this job kind)
        """
        self.transport = transport
        self.config = config or ClientConfig()
        self._scheduler = scheduler or AsyncioScheduler()
        self._ticker = Ticker(self._scheduler)
        self.logger = logger or create_logger(f"job.{self.kind.value}")

        self.processing = False
        # Bumped on every accepted job and on cancel(); responses from older epochs are stale
        self.epoch = 0

    @property
    def elapsed(self) -> int:
        return self._ticker.elapsed

    def is_active(self) -> bool:
        return self.processing

    def _prepare(self, params) -> _Submission:
        raise NotImplementedError

    async def _submit(self, payload: Dict[str, Any]) -> ApiResult:
        raise NotImplementedError

    async def generate(self, params, listener: Optional[Listener] = None) -> JobEvent:
        """
        Validate and run one job.

        Args:
            params: TtsParams or StsParams
            listener: Receives Pending/Notice events and exactly one Ok or Err

        Returns:
            The terminal event. Err(CANCELLED) when the job was cancelled
            while its request was in flight; that event is not delivered to
            the listener.
        """
        emit = listener or _ignore

        submission = self._prepare(params)
        if submission.error:
            self.logger.info("Submission rejected", metadata={'reason': submission.error})
            outcome = Err(JobError(ErrorKind.VALIDATION, submission.error))
            emit(outcome)
            return outcome

        if self.processing:
            self.logger.warning("Submission rejected while busy", metadata={'epoch': self.epoch})
            outcome = Err(JobError(ErrorKind.BUSY, MSG_ALREADY_PROCESSING))
            emit(outcome)
            return outcome

        for message in submission.notices:
            emit(Notice(message))

        self.epoch += 1
        epoch = self.epoch
        self.processing = True
        self._ticker.start(lambda elapsed: emit(Pending(elapsed)))
        self.logger.info(f"{self.kind.value.upper()} job started", metadata={'epoch': epoch})

        try:
            try:
                result = await self._submit(submission.payload)
            except Exception as e:
                self.logger.log_error_with_context(e, f"{self.kind.value} request")
                outcome = Err(JobError(ErrorKind.TRANSPORT_FAILURE, f"Error: {e}"))
            else:
                if result.ok:
                    outcome = Ok(result.data, result.msg)
                else:
                    outcome = Err(JobError(
                        ErrorKind.REMOTE_FAILURE,
                        result.msg or self.failure_message
                    ))

            if epoch != self.epoch:
                self.logger.info("Discarding response of cancelled job", metadata={'epoch': epoch})
                return Err(JobError(ErrorKind.CANCELLED, "Job was cancelled"))

            self._ticker.stop()
            self.logger.info(
                f"{self.kind.value.upper()} job finished",
                metadata={'epoch': epoch, 'outcome': type(outcome).__name__}
            )
            emit(outcome)
            return outcome

        finally:
            if epoch == self.epoch:
                self._ticker.stop()
                self.processing = False

    def cancel(self):
        """
        Forget the in-flight job locally.

        The server keeps working on the request; its response, if it arrives,
        is discarded.
        """
        if self.processing:
            self.logger.info("Job cancelled", metadata={'epoch': self.epoch})
        self.epoch += 1
        self._ticker.stop()
        self.processing = False

    def dispose(self):
        self.cancel()


class TtsJobRunner(SingleFlightJobRunner):
    """Text-to-speech runner."""

    kind = JobKind.TTS
    failure_message = "TTS generation failed"

    def __init__(
        self,
        transport: Transport,
        scheduler=None,
        config: Optional[ClientConfig] = None,
        logger: Optional[JobLogger] = None,
        model_gate: Optional[Callable[[str], bool]] = None
    ):
        """
        Args:
            model_gate: Returns whether a named model is running; when given,
                submissions naming a stopped model are rejected
        """
        super().__init__(transport, scheduler=scheduler, config=config, logger=logger)
        self.model_gate = model_gate

    def _prepare(self, params: TtsParams) -> _Submission:
        if not validate_text(params.text).valid:
            return _Submission(error=MSG_TEXT_REQUIRED)

        if not validate_voice(params.voice).valid:
            return _Submission(error=MSG_VOICE_REQUIRED)

        notices = []
        speed = validate_speed(
            params.speed,
            minimum=self.config.speed_min,
            maximum=self.config.speed_max,
            default=self.config.speed_default
        )
        if not speed.valid:
            self.logger.warning(
                "Invalid speed replaced with default",
                metadata={'requested': params.speed, 'used': speed.value}
            )
            notices.append(MSG_SPEED_RANGE)

        language = params.language
        if language:
            checked = validate_language(language)
            if not checked.valid:
                return _Submission(error=checked.message)
            language = checked.value

        model = validate_model(params.model, self.model_gate)
        if not model.valid:
            return _Submission(error=model.message)

        return _Submission(
            payload={
                'text': params.text,
                'voice': params.voice,
                'language': language,
                'speed': speed.value,
                'model': model.value,
            },
            notices=notices
        )

    async def _submit(self, payload: Dict[str, Any]) -> ApiResult:
        return await self.transport.generate_tts(**payload)


class StsJobRunner(SingleFlightJobRunner):
    """
    Speech-to-speech runner.

    Converts the previously uploaded audio file into the selected voice and
    watches the server's STS backend until it reports running.
    """

    kind = JobKind.STS
    failure_message = "STS conversion failed"

    def __init__(
        self,
        transport: Transport,
        scheduler=None,
        config: Optional[ClientConfig] = None,
        logger: Optional[JobLogger] = None
    ):
        super().__init__(transport, scheduler=scheduler, config=config, logger=logger)
        self.uploaded_audio: Optional[UploadedArtifactRef] = None
        self.status_poller = BoundedPoller(self._scheduler, name="sts-status")

    def set_uploaded_audio(self, ref: UploadedArtifactRef):
        self.uploaded_audio = ref
        self.logger.debug("Source audio set", metadata={'name': ref})

    def get_uploaded_audio(self) -> Optional[UploadedArtifactRef]:
        return self.uploaded_audio

    def clear_uploaded_audio(self):
        self.uploaded_audio = None

    def _prepare(self, params: StsParams) -> _Submission:
        if not validate_voice(params.voice).valid:
            return _Submission(error=MSG_VOICE_REQUIRED)

        if not validate_uploaded_audio(self.uploaded_audio).valid:
            return _Submission(error=MSG_AUDIO_REQUIRED)

        return _Submission(payload={'voice': params.voice, 'name': self.uploaded_audio})

    async def _submit(self, payload: Dict[str, Any]) -> ApiResult:
        return await self.transport.generate_sts(**payload)

    async def check_status(self) -> StsStatus:
        """Ask the server whether its STS backend is running."""
        result = await self.transport.get_sts_status()
        if not result.ok:
            raise RemoteFailure(result.code, result.msg or "STS status check failed")
        return StsStatus(running=result.msg != 'stop', message=result.msg)

    def start_status_check(self, on_status: Optional[Callable[[bool, Optional[str]], None]] = None):
        """
        Poll STS readiness until it reports running or the budget runs out.

        Args:
            on_status: Called as on_status(is_running, message) after every check
        """
        def deliver(status: StsStatus):
            if on_status:
                on_status(status.running, status.message)

        return self.status_poller.start_polling(
            self.check_status,
            interval=self.config.sts_status_interval,
            max_attempts=self.config.sts_status_max_attempts,
            on_status=deliver,
            is_terminal=lambda status: status.running
        )

    def stop_status_check(self):
        self.status_poller.stop_polling()

    def cancel(self):
        super().cancel()
        self.stop_status_check()

    def dispose(self):
        self.cancel()
        self.clear_uploaded_audio()
