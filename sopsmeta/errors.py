"""
Exception types raised by sopsmeta.

Every error is synchronous and local: an operation that raises has made
no change to the object it was called on.
"""

from __future__ import annotations


class SopsMetaError(Exception):
    """Base class for all sopsmeta errors."""


class InvalidArgument(SopsMetaError, ValueError):
    """A caller passed a missing or malformed value (recipient, key, pattern)."""


class MalformedEnvelopeError(SopsMetaError, ValueError):
    """The ``sops`` section is a mapping, but its contents have the wrong shape."""


class MalformedDocumentError(SopsMetaError, ValueError):
    """A decoded document is not a top-level mapping."""


class UnsupportedFormatError(SopsMetaError):
    """No format handler is registered for a filename."""
