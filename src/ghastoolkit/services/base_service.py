"""Base service class for the orchestration layer."""

from typing import Any, Callable

from ghastoolkit.models.config import ToolkitConfig
from ghastoolkit.utils.logging import get_logger

logger = get_logger()

ProgressCallback = Callable[[str, dict[str, Any]], None]


class BaseService:
    """Base class for all services.

    Services orchestrate adapters without printing anything themselves;
    they report through an optional progress callback.
    """

    def __init__(
        self,
        config: ToolkitConfig,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """
        Initialize base service.

        Args:
            config: Toolkit configuration
            progress_callback: Optional callback for progress updates
                               Signature: (event_name: str, data: dict)
        """
        self.config = config
        self.progress_callback = progress_callback
        self.service_name = self.__class__.__name__

        logger.debug(
            "service_initialized",
            service=self.service_name,
            has_progress_callback=progress_callback is not None,
        )

    def _emit_progress(self, event: str, **kwargs: Any) -> None:
        """
        Emit a progress event.

        A failing callback is logged and otherwise ignored.

        Args:
            event: Event name (e.g. "scan_started")
            **kwargs: Additional event data
        """
        if self.progress_callback:
            data = {"service": self.service_name, **kwargs}
            try:
                self.progress_callback(event, data)
            except Exception as e:
                logger.warning(
                    "progress_callback_error",
                    service=self.service_name,
                    event_name=event,
                    error=str(e),
                )

        logger.debug(
            "progress_event",
            service=self.service_name,
            event_name=event,
            data=kwargs,
        )
