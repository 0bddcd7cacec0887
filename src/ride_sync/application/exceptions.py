from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class ValidationError(AppError):
    """Rejected locally, before any network call."""


class DeliveryError(AppError):
    """An HTTP collaborator call failed or returned an unusable body."""
