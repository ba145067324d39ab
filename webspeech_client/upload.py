"""
Audio uploads.

Uploaded files are referenced by the name the server assigns them.
Speech-to-speech sources go to the temporary upload directory and are what
the STS runner submits; reference voices go to the voice directory and join
the voice list.
"""

import os
from typing import Optional, Tuple, Union

from .config import ClientConfig
from .errors import TransportError, UploadError
from .interfaces import Transport
from .jobs.logger import JobLogger, create_logger
from .jobs.models import ApiResult, RecordedAudio, UploadedArtifactRef
from .validators import ValidationResult, validate_audio_file


class UploadService:
    """
    Validates and uploads audio files.

    Example:
        service = UploadService(client)
        ref = await service.upload_file("speech.wav")
        sts_runner.set_uploaded_audio(ref)
    """

    def __init__(
        self,
        transport: Transport,
        config: Optional[ClientConfig] = None,
        logger: Optional[JobLogger] = None
    ):
        self.transport = transport
        self.config = config or ClientConfig()
        self.logger = logger or create_logger("upload")

    def validate(self, path: str) -> ValidationResult:
        """Check type and size of a local file before uploading it."""
        size = os.path.getsize(path) if os.path.isfile(path) else None
        return validate_audio_file(
            os.path.basename(path),
            size=size,
            max_bytes=self.config.upload_max_bytes
        )

    async def upload_file(self, path: str) -> UploadedArtifactRef:
        """
        Upload a local audio file as speech-to-speech source.

        Returns:
            Server-assigned file name

        Raises:
            FileNotFoundError: If the file does not exist
            UploadError: If the file is rejected locally or by the server
        """
        file_name, content = self._read_checked(path)
        return await self._upload(file_name, content, self.config.upload_save_dir)

    async def upload_recording(self, audio: RecordedAudio) -> UploadedArtifactRef:
        """Upload a finished microphone recording as speech-to-speech source."""
        file_name, content = self._recording_content(audio)
        return await self._upload(file_name, content, self.config.upload_save_dir)

    async def upload_voice(self, source: Union[str, RecordedAudio]) -> UploadedArtifactRef:
        """
        Upload a reference voice.

        Voices go to the server's voice directory rather than the temporary
        one, so the returned name is usable as ``voice`` in later jobs.

        Args:
            source: Path of a local audio file, or a finished recording

        Raises:
            FileNotFoundError: If a path is given and the file does not exist
            UploadError: If the audio is rejected locally or by the server
        """
        if isinstance(source, RecordedAudio):
            file_name, content = self._recording_content(source)
        else:
            file_name, content = self._read_checked(source)
        return await self._upload(file_name, content, "")

    def _read_checked(self, path: str) -> Tuple[str, bytes]:
        if not os.path.isfile(path):
            raise FileNotFoundError(f"Audio file not found: {path}")

        checked = self.validate(path)
        if not checked.valid:
            raise UploadError(checked.message)

        with open(path, 'rb') as f:
            return os.path.basename(path), f.read()

    @staticmethod
    def _recording_content(audio: RecordedAudio) -> Tuple[str, bytes]:
        if not audio.wav_bytes:
            raise UploadError("Recording is empty")
        return audio.file_name, audio.wav_bytes

    async def _upload(self, file_name: str, content: bytes, save_dir: str) -> UploadedArtifactRef:
        self.logger.info(
            "Uploading audio",
            metadata={'file': file_name, 'bytes': len(content), 'save_dir': save_dir}
        )
        try:
            result: ApiResult = await self.transport.upload_audio(file_name, content, save_dir=save_dir)
        except TransportError as e:
            self.logger.error(f"Upload failed: {e}", metadata={'file': file_name})
            raise UploadError(f"Upload failed: {e}") from e

        if not result.ok or not result.data:
            message = result.msg or "Upload failed"
            self.logger.warning(
                "Upload rejected",
                metadata={'file': file_name, 'code': result.code, 'msg': result.msg}
            )
            raise UploadError(message)

        ref = str(result.data)
        self.logger.info("Upload complete", metadata={'file': file_name, 'name': ref})
        return ref
