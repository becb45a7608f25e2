"""Exception types raised by shortcutsync."""


class ShortcutSyncError(Exception):
    """Base class for every error raised by this package."""


class FormatError(ShortcutSyncError):
    """Input bytes do not follow the expected file format."""


class VdfFormatError(FormatError):
    """Binary VDF stream is malformed (unknown type byte, truncation, bad text)."""

    def __init__(self, message: str, offset: int = -1):
        if offset >= 0:
            message = f"{message} (offset {offset})"
        super().__init__(message)
        self.offset = offset


class LookupFailure(ShortcutSyncError):
    """A single lookup step could not run; callers treat it as 'no match'."""


class ShortcutsIOError(ShortcutSyncError):
    """Reading or writing shortcuts.vdf failed at the OS level."""

    def __init__(self, path: str, cause: OSError):
        super().__init__(f"I/O error on {path}: {cause}")
        self.path = path
        self.cause = cause


class ConfigurationError(ShortcutSyncError):
    """Steam installation or user could not be resolved."""
