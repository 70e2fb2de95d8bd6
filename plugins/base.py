"""Base plugin class for the kernel's remote-service adapters."""

from abc import ABC
from typing import Any, Callable, TypeVar

from pydantic import ValidationError as PayloadValidationError

from core.errors import RemoteError

T = TypeVar("T")


class Plugin(ABC):
    """Base class for plugins registered in the kernel."""

    def __init__(self) -> None:
        self._kernel: Any | None = None

    @property
    def kernel(self) -> Any:
        """Return kernel instance or raise if not configured."""
        if self._kernel is None:
            raise RuntimeError(
                f"Plugin '{self.__class__.__name__}' accessed kernel before registration."
            )
        return self._kernel

    @kernel.setter
    def kernel(self, kernel_instance: Any) -> None:
        self._kernel = kernel_instance

    @property
    def http(self) -> Any:
        """Return kernel HTTP client."""
        if not hasattr(self.kernel, "http"):
            raise RuntimeError("Kernel does not expose an 'http' client.")
        return self.kernel.http

    @staticmethod
    def parse(factory: Callable[[Any], T], payload: Any, what: str) -> T:
        """Validate a response payload, reporting schema drift as ``RemoteError``."""
        try:
            return factory(payload)
        except PayloadValidationError as exc:
            raise RemoteError(f"Unexpected {what} payload: {exc.error_count()} invalid field(s)") from exc
