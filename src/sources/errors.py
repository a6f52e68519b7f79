"""Errors raised at the remote data boundaries."""

from __future__ import annotations


class LocationFetchError(RuntimeError):
    """The location list could not be fetched; retrying later may succeed."""

    retryable = True

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class InteractionStateError(RuntimeError):
    """The interaction-state service returned an unusable response."""
