"""Exception hierarchy for the export/import engine.

Format, parse and version problems are fatal and surface before any file
is touched. Integrity problems are collected by the validator rather than
raised one at a time. Merge problems happen mid-import and trigger a
rollback when a backup exists.
"""


class PortabilityError(Exception):
    """Base exception for export/import errors."""


class FormatError(PortabilityError):
    """Raised when an archive is unreadable or has no manifest."""


class ParseError(FormatError):
    """Raised when the archive manifest is not well-formed."""


class IntegrityError(PortabilityError):
    """Raised when the manifest references a file absent from the archive."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"File listed in manifest not found in package: {path}")


class VersionError(PortabilityError):
    """Raised when the manifest schema version is not supported."""


class MergeError(PortabilityError):
    """Raised when a config file cannot be parsed or merged during apply."""
