"""Protocol interfaces consumed by the orchestration layer."""

from __future__ import annotations

from typing import Optional, Protocol

from .jobs.models import ApiResult, RecordedAudio


class Transport(Protocol):
    """
    Request/response access to the speech server.

    Every call returns an ApiResult and raises TransportError when the request
    itself could not complete.
    """

    async def get_voice_list(self) -> ApiResult: ...

    async def check_update(self) -> ApiResult: ...

    async def upload_audio(self, file_name: str, content: bytes, save_dir: str = "") -> ApiResult: ...

    async def get_model_status(self) -> ApiResult: ...

    async def toggle_model(self, name: str, status_new: str) -> ApiResult: ...

    async def generate_tts(
        self,
        text: str,
        voice: str,
        language: str,
        speed: float,
        model: str = "",
    ) -> ApiResult: ...

    async def generate_sts(self, voice: str, name: str) -> ApiResult: ...

    async def get_sts_status(self) -> ApiResult: ...


class Recorder(Protocol):
    def start(self) -> None: ...

    def stop(self) -> Optional[RecordedAudio]: ...

    def abort(self) -> None: ...
