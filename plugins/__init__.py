"""Plugin package exports."""

from .base import Plugin
from .jobs import JobsPlugin
from .nav import NavPlugin

__all__ = [
    "JobsPlugin",
    "NavPlugin",
    "Plugin",
]
