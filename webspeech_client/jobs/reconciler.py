"""
Local cache of model running-state, kept in line with the server.

The registry is written in exactly two places: a wholesale replace after a
successful fetch and a single-key update after a confirmed toggle.
"""

from typing import Any, Callable, Dict, List, Optional

from ..config import ClientConfig
from ..errors import RemoteFailure, TransportError
from ..interfaces import Transport
from .logger import JobLogger, create_logger
from .models import ApiResult, ModelStatus
from .poller import BoundedPoller
from .scheduler import AsyncioScheduler

DEFAULT_MODEL = "default"


def _coerce_running(value: Any) -> bool:
    """Server states arrive as booleans or as 'on'/'off'."""
    if isinstance(value, str):
        return value.strip().lower() in ('on', 'true', '1', 'running')
    return bool(value)


class ModelStateReconciler:
    """
    Caches the name -> running map of server-side models.

    Example:
        reconciler = ModelStateReconciler(client, on_change=render_models)
        await reconciler.refresh()
        reconciler.start_auto_refresh()
        await reconciler.toggle("my-model")
    """

    def __init__(
        self,
        transport: Transport,
        scheduler=None,
        config: Optional[ClientConfig] = None,
        on_change: Optional[Callable[[List[ModelStatus]], None]] = None,
        on_toggle: Optional[Callable[[str, bool, Optional[str]], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
        logger: Optional[JobLogger] = None
    ):
        """
        Initialize reconciler.

        Args:
            transport: Transport used for registry fetches and toggles
            scheduler: Time source for the periodic refresh
            config: Client configuration (None for defaults)
            on_change: Receives the display entries after every successful refresh
            on_toggle: Called as on_toggle(name, running, message) after a confirmed toggle
            on_error: Receives a message when a fetch or toggle fails
            logger: Logger (None to create one)
        """
        self.transport = transport
        self.config = config or ClientConfig()
        self.on_change = on_change
        self.on_toggle = on_toggle
        self.on_error = on_error
        self.logger = logger or create_logger("models")

        self._models: Dict[str, bool] = {}
        self._refresh_poller = BoundedPoller(scheduler or AsyncioScheduler(), name="model-refresh")

    def models(self) -> Dict[str, bool]:
        """Copy of the cached registry."""
        return dict(self._models)

    def statuses(self) -> List[ModelStatus]:
        return [ModelStatus(name=name, running=running) for name, running in self._models.items()]

    def is_running(self, name: Optional[str]) -> bool:
        """The default model is always running; unknown models are not."""
        if not name or name == DEFAULT_MODEL:
            return True
        return self._models.get(name, False)

    async def fetch(self) -> Dict[str, bool]:
        """Fetch the registry from the server without touching the cache."""
        result = await self.transport.get_model_status()
        if not result.ok:
            raise RemoteFailure(result.code, result.msg or "Failed to load models")
        data = result.data or {}
        if not isinstance(data, dict):
            raise RemoteFailure(result.code, f"Unexpected model list: {data!r}"[:300])
        return {str(name): _coerce_running(state) for name, state in data.items()}

    async def refresh(self) -> bool:
        """
        Replace the cached registry with the server's.

        Returns:
            True if the registry was replaced
        """
        try:
            models = await self.fetch()
        except (TransportError, RemoteFailure) as e:
            self.logger.error(f"Failed to load models: {e}")
            self._report_error(f"Failed to load models: {e}")
            return False

        self._models = models
        self.logger.debug("Model registry refreshed", metadata={'count': len(models)})
        if self.on_change:
            self.on_change(self.statuses())
        return True

    async def toggle(self, name: str) -> Optional[bool]:
        """
        Flip a model on or off.

        The state the server confirms is stored, which may differ from the one
        requested if the model was toggled elsewhere in the meantime.

        Args:
            name: Model name

        Returns:
            Confirmed running state, or None if the toggle failed
        """
        requested = not self._models.get(name, False)
        status_new = 'on' if requested else 'off'
        self.logger.info("Toggling model", metadata={'name': name, 'status_new': status_new})

        try:
            result = await self.transport.toggle_model(name, status_new)
        except TransportError as e:
            self.logger.error(f"Failed to toggle model {name}: {e}")
            self._report_error(f"Failed to toggle model: {e}")
            return None

        if not result.ok:
            self.logger.warning(
                "Toggle rejected",
                metadata={'name': name, 'code': result.code, 'msg': result.msg}
            )
            self._report_error(result.msg or "Error")
            return None

        confirmed = self._confirmed_state(result, name, requested)
        self._models[name] = confirmed
        if confirmed != requested:
            self.logger.info(
                "Server confirmed a different state than requested",
                metadata={'name': name, 'requested': requested, 'confirmed': confirmed}
            )
        if self.on_toggle:
            self.on_toggle(name, confirmed, result.msg)
        return confirmed

    @staticmethod
    def _confirmed_state(result: ApiResult, name: str, requested: bool) -> bool:
        data = result.data
        if isinstance(data, dict):
            for key in ('status', name):
                if key in data:
                    return _coerce_running(data[key])
        elif isinstance(data, (bool, str)) and data != "":
            return _coerce_running(data)
        # Server confirmed without echoing a state
        return requested

    def start_auto_refresh(self, interval: Optional[float] = None, immediate: bool = True):
        """
        Refresh the registry every ``interval`` seconds until stopped.

        The first refresh runs at once unless ``immediate`` is False, for
        callers that have just refreshed themselves.
        """
        return self._refresh_poller.start_polling(
            self.refresh,
            interval=interval or self.config.model_refresh_interval,
            max_attempts=None,
            delay_first=not immediate
        )

    def stop_auto_refresh(self):
        self._refresh_poller.stop_polling()

    def _report_error(self, message: str):
        if self.on_error:
            self.on_error(message)

    def dispose(self):
        self.stop_auto_refresh()
        self._models = {}
