"""Core error types."""

from __future__ import annotations


class ProfileInputError(ValueError):
    """A required profile field is missing."""


class SummaryError(RuntimeError):
    """The profile summarizer returned unusable output."""


class ProvisioningError(RuntimeError):
    """The hosting platform could not create the room."""


class MissingCapabilityError(ProvisioningError):
    """The bot lacks the channel-management permission in the guild."""
