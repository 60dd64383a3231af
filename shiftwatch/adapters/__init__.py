"""External service adapters."""

from shiftwatch.adapters.base import BaseDirectoryClient, DirectoryProfile
from shiftwatch.adapters.slack_directory import SlackDirectoryClient

__all__ = ["BaseDirectoryClient", "DirectoryProfile", "SlackDirectoryClient"]
