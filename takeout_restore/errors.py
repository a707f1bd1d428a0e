"""Error types raised while restoring capture dates into an image."""
from __future__ import annotations


class RestoreError(Exception):
    """Base class for every failure the restore pipeline reports per image."""

    kind = "error"


class FormatError(RestoreError):
    """The image container is structurally invalid (truncated, bad signature, bad checksum)."""

    kind = "format"


class MissingField(RestoreError):
    """The sidecar record lacks a date sub-record or its date value."""

    kind = "missing_field"

    def __init__(self, path: str, message: str | None = None):
        self.path = path
        super().__init__(message or f"Sidecar field missing: {path}")


class MalformedTimestamp(RestoreError):
    """A sidecar date value could not be parsed."""

    kind = "malformed_timestamp"

    def __init__(self, value, message: str | None = None):
        self.value = value
        super().__init__(message or f"Unparseable timestamp: {value!r}")


class UnsupportedDirectoryLayout(RestoreError):
    """An existing EXIF block cannot be patched safely."""

    kind = "unsupported_layout"


class UnsupportedContainer(RestoreError):
    """The container kind is not one the injector handles."""

    kind = "unsupported_container"
