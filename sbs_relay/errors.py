"""
Error taxonomy.

Field-level decode problems never raise; they are recorded on the
SBS1Record instead. Everything here is for conditions the process cannot
recover from locally: the CLI logs them and exits with a non-zero status.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base class for all sbs_relay errors."""


class FatalError(RelayError):
    """Unrecoverable condition; the owning process must shut down."""


class ConfigError(FatalError):
    """Configuration file missing, unreadable, or invalid."""


class TransportError(FatalError):
    """Feed or broker connection failed, or a read/publish/subscribe failed."""


class StorageError(FatalError):
    """An output file could not be opened, written, or finalized."""


class PayloadError(RelayError):
    """A received batch payload could not be decompressed or decoded.

    Not fatal: the consumer logs and drops the payload.
    """
