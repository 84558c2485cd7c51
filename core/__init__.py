"""Shared file loading and command execution utilities."""

from .command_runner import (
    CommandError,
    CommandResult,
    CommandRunner,
    RecordingCommandRunner,
    SubprocessCommandRunner,
)
from .config_loader import (
    ConfigLoader,
    FILE_LOADERS,
    load_config_file,
    merge_mappings,
    normalize_string_list,
)

__all__ = [
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "RecordingCommandRunner",
    "SubprocessCommandRunner",
    "ConfigLoader",
    "FILE_LOADERS",
    "load_config_file",
    "merge_mappings",
    "normalize_string_list",
]
