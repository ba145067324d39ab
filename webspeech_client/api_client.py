"""
HTTP client for the WebSpeech server.

Blocking ``requests`` calls are pushed to the event loop's default executor so
the orchestration layer never blocks while a synthesis request is outstanding.
"""

import asyncio
import functools
import os
from typing import Any, Dict, Optional

import requests

from . import __version__
from .config import ClientConfig
from .errors import TransportError
from .jobs.logger import create_logger
from .jobs.models import ApiResult


def _get_default_headers() -> Dict[str, str]:
    return {
        'User-Agent': f'webspeech-client/{__version__}',
        'Accept': 'application/json',
    }


def _format_request_error(e: Exception, response: Optional[requests.Response] = None) -> str:
    """
    Describe a failed request.

    Includes status code and first 300 chars of body if available.
    """
    if response is not None:
        body_preview = response.text[:300] if response.text else ''
        return f"HTTP {response.status_code}: {body_preview}"
    return str(e)[:300]


class ApiClient:
    """
    Client for the speech server's HTTP endpoints.

    Example:
        client = ApiClient(ClientConfig.from_env())
        result = await client.generate_tts("Hello", "voice.wav", "en", 1.0)
        if result.ok:
            print(client.result_url(result.data["name"]))
    """

    def __init__(self, config: Optional[ClientConfig] = None, session: Optional[requests.Session] = None):
        self.config = config or ClientConfig()
        self.session = session or requests.Session()
        self.session.headers.update(_get_default_headers())
        self.logger = create_logger("transport")

    def _request(self, method: str, path: str, **kwargs) -> ApiResult:
        """Make a blocking request and decode the result envelope."""
        url = f"{self.config.base_url}{path}"
        kwargs.setdefault('timeout', (self.config.connect_timeout, self.config.read_timeout))

        try:
            response = self.session.request(method, url, **kwargs)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            description = _format_request_error(e, getattr(e, 'response', None))
            self.logger.warning(
                "Request failed",
                metadata={'method': method, 'path': path, 'error': description}
            )
            raise TransportError(description) from e

        try:
            payload = response.json()
        except ValueError as e:
            raise TransportError(
                f"Invalid JSON response from {path}: {_format_request_error(e, response)}"
            ) from e

        return ApiResult.from_payload(payload)

    async def _call(self, method: str, path: str, **kwargs) -> ApiResult:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            functools.partial(self._request, method, path, **kwargs)
        )

    async def _get(self, path: str) -> ApiResult:
        return await self._call('GET', path)

    async def _post(self, path: str, data: Dict[str, Any]) -> ApiResult:
        return await self._call('POST', path, data=data)

    async def get_voice_list(self) -> ApiResult:
        return await self._get('/init')

    async def check_update(self) -> ApiResult:
        return await self._get('/checkupdate')

    async def upload_audio(self, file_name: str, content: bytes, save_dir: str = "") -> ApiResult:
        """
        Upload an audio file.

        Args:
            file_name: Name reported to the server
            content: Raw file bytes
            save_dir: Server-side directory (optional)

        Returns:
            ApiResult whose data is the server-assigned file name
        """
        data = {'save_dir': save_dir} if save_dir else {}
        files = {'audio': (os.path.basename(file_name), content)}
        return await self._call('POST', '/upload', data=data, files=files)

    async def get_model_status(self) -> ApiResult:
        return await self._get('/isstart')

    async def toggle_model(self, name: str, status_new: str) -> ApiResult:
        return await self._post('/onoroff', {'name': name, 'status_new': status_new})

    async def generate_tts(
        self,
        text: str,
        voice: str,
        language: str,
        speed: float,
        model: str = "",
    ) -> ApiResult:
        return await self._post('/tts', {
            'text': text,
            'voice': voice,
            'language': language,
            'speed': speed or 1.0,
            'model': model or '',
        })

    async def generate_sts(self, voice: str, name: str) -> ApiResult:
        return await self._post('/sts', {'voice': voice, 'name': name})

    async def get_sts_status(self) -> ApiResult:
        return await self._get('/stsstatus')

    def result_url(self, name: str) -> str:
        """URL of a generated audio file."""
        return f"{self.config.base_url}/static/ttslist/{name}"

    def close(self):
        self.session.close()
