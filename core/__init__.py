"""Core package exports with lazy imports."""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = [
    "Kernel",
    "create_default_kernel",
    "HttpClient",
    "JobAPI",
    "ProgressPoller",
    "SequentialProgressAggregator",
    "JobTrigger",
    "CancellationController",
    "DashboardAggregator",
    "BookmarkStore",
    "JobTrackingService",
]

_EXPORTS: dict[str, str] = {
    "Kernel": ".kernel",
    "create_default_kernel": ".kernel",
    "HttpClient": ".http_client",
    "JobAPI": ".job_api",
    "ProgressPoller": ".poller",
    "SequentialProgressAggregator": ".sequential",
    "JobTrigger": ".trigger",
    "CancellationController": ".cancellation",
    "DashboardAggregator": ".dashboard",
    "BookmarkStore": ".bookmarks",
    "JobTrackingService": ".tracking",
}


def __getattr__(name: str) -> Any:
    module_name = _EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
    return getattr(import_module(module_name, __name__), name)
