# Path: shelfscan/core/errors.py
# Purpose: Define the exception taxonomy shared across the core layer.
# Layer: core.
# Details: Search paths degrade on these errors; only StoreInitializationError is treated as fatal.

from __future__ import annotations


class ShelfscanError(Exception):
    """Base class for all shelfscan errors."""


class InvalidRecord(ShelfscanError, ValueError):
    """Raised when a record violates its data model constraints."""


class EmbeddingUnavailable(ShelfscanError):
    """The vision backend could not produce a usable feature embedding.

    Callers treat this as "no signal" for the affected sub-search rather than
    propagating it to the user.
    """


class StoreError(ShelfscanError):
    """A document store or index operation failed at the I/O level."""


class StoreInitializationError(StoreError):
    """The store schema or one of its indexes could not be created."""


class CaptureUnavailable(ShelfscanError):
    """The camera or capture session cannot run (permissions, missing device, ...)."""
