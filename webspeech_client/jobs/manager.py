"""
High-level job management API.

Provides a single entry point that front ends use to drive speech jobs,
model toggles and uploads against one server.
"""

from typing import Callable, List, Optional

from ..config import ClientConfig
from ..errors import MSG_STS_NOT_RUNNING, TransportError
from ..interfaces import Transport
from ..upload import UploadService
from .logger import JobLogger, create_logger
from .models import JobEvent, ModelStatus, StsParams, TtsParams, UploadedArtifactRef
from .reconciler import ModelStateReconciler
from .runner import Listener, StsJobRunner, TtsJobRunner
from .scheduler import AsyncioScheduler


class SpeechJobManager:
    """
    High-level API for speech jobs.

    Owns one runner per job kind, the model reconciler and the upload
    service, all sharing one transport, configuration and scheduler.

    Example:
        manager = SpeechJobManager(ApiClient(config), config)
        await manager.initialize()

        event = await manager.generate_tts(
            TtsParams(text="Hello", voice="speaker.wav"),
            listener=print
        )
    """

    def __init__(
        self,
        transport: Transport,
        config: Optional[ClientConfig] = None,
        scheduler=None,
        on_models: Optional[Callable[[List[ModelStatus]], None]] = None,
        on_toggle: Optional[Callable[[str, bool, Optional[str]], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
        on_sts_status: Optional[Callable[[bool, Optional[str]], None]] = None,
        on_update: Optional[Callable[[str], None]] = None,
        logger: Optional[JobLogger] = None
    ):
        """
        Initialize manager.

        Args:
            transport: Transport shared by every component
            config: Client configuration (None for defaults)
            scheduler: Time source (None for the event loop)
            on_models: Receives model display entries after every refresh
            on_toggle: Called as on_toggle(name, running, message) after a toggle
            on_error: Receives messages for model and initialization failures
            on_sts_status: Called as on_sts_status(is_running, message) per readiness check
            on_update: Receives the server's update notice, if any
            logger: Logger (None to create one)
        """
        self.transport = transport
        self.config = config or ClientConfig()
        self.scheduler = scheduler or AsyncioScheduler()
        self.on_error = on_error
        self.on_sts_status = on_sts_status
        self.on_update = on_update
        self.logger = logger or create_logger("manager")

        self.reconciler = ModelStateReconciler(
            transport,
            scheduler=self.scheduler,
            config=self.config,
            on_change=on_models,
            on_toggle=on_toggle,
            on_error=on_error
        )
        self.tts = TtsJobRunner(
            transport,
            scheduler=self.scheduler,
            config=self.config,
            model_gate=self.reconciler.is_running
        )
        self.sts = StsJobRunner(transport, scheduler=self.scheduler, config=self.config)
        self.uploads = UploadService(transport, config=self.config)

        self.voices: List[str] = []
        self.update_notice: Optional[str] = None

    async def initialize(self, auto_refresh: bool = True):
        """
        Load what the front end needs to start.

        Args:
            auto_refresh: Keep the model registry refreshed in the background
                after the initial fetch
        """
        await self.load_voices()

        await self.reconciler.refresh()
        if auto_refresh:
            self.reconciler.start_auto_refresh(immediate=False)

        await self.check_update()

        if self.config.enable_sts:
            self.start_sts_status_check()

    async def load_voices(self) -> List[str]:
        """Fetch the list of reference voices; failures keep the previous list."""
        try:
            result = await self.transport.get_voice_list()
        except TransportError as e:
            self.logger.error(f"Failed to load voice list: {e}")
            self._report_error(f"Failed to load voice list: {e}")
            return self.voices

        if not result.ok:
            self.logger.warning("Voice list rejected", metadata={'code': result.code, 'msg': result.msg})
            self._report_error(result.msg or "Failed to load voice list")
            return self.voices

        data = result.data or []
        self.voices = [str(voice) for voice in data] if isinstance(data, (list, tuple)) else []
        self.logger.debug("Voice list loaded", metadata={'count': len(self.voices)})
        return self.voices

    async def check_update(self) -> Optional[str]:
        """Ask the server for an update notice. Failures are only logged."""
        try:
            result = await self.transport.check_update()
        except TransportError as e:
            self.logger.warning(f"Update check failed: {e}")
            return None

        if result.ok and result.msg:
            self.update_notice = result.msg
            if self.on_update:
                self.on_update(result.msg)
        return self.update_notice

    def start_sts_status_check(self):
        def deliver(is_running: bool, message: Optional[str]):
            if self.on_sts_status:
                self.on_sts_status(is_running, message if is_running else MSG_STS_NOT_RUNNING)

        return self.sts.start_status_check(deliver)

    async def generate_tts(self, params: TtsParams, listener: Optional[Listener] = None) -> JobEvent:
        return await self.tts.generate(params, listener)

    async def generate_sts(self, params: StsParams, listener: Optional[Listener] = None) -> JobEvent:
        return await self.sts.generate(params, listener)

    async def upload_file(self, path: str) -> UploadedArtifactRef:
        """
        Upload a local audio file and make it the STS source.

        Raises:
            FileNotFoundError: If the file does not exist
            UploadError: If the upload is rejected
        """
        ref = await self.uploads.upload_file(path)
        self.sts.set_uploaded_audio(ref)
        return ref

    async def upload_recording(self, audio) -> UploadedArtifactRef:
        """Upload a RecordedAudio and make it the STS source."""
        ref = await self.uploads.upload_recording(audio)
        self.sts.set_uploaded_audio(ref)
        return ref

    async def upload_voice(self, source) -> str:
        """
        Upload a file path or RecordedAudio as a new reference voice.

        The server-assigned name is put at the front of ``voices``. The STS
        source is left untouched.

        Raises:
            FileNotFoundError: If a path is given and the file does not exist
            UploadError: If the upload is rejected
        """
        name = await self.uploads.upload_voice(source)
        self.voices = [name] + [voice for voice in self.voices if voice != name]
        self.logger.info("Reference voice added", metadata={'name': name})
        return name

    async def toggle_model(self, name: str) -> Optional[bool]:
        return await self.reconciler.toggle(name)

    def result_url(self, name: str) -> Optional[str]:
        """Download URL of a generated file, when the transport can build one."""
        build = getattr(self.transport, 'result_url', None)
        return build(name) if build else None

    def _report_error(self, message: str):
        if self.on_error:
            self.on_error(message)

    def dispose(self):
        """Cancel in-flight jobs and stop every background poll."""
        self.tts.dispose()
        self.sts.dispose()
        self.reconciler.dispose()
        self.logger.debug("Manager disposed")
