from __future__ import annotations

from typing import Mapping


class DraftError(Exception):
    """Base class for listing draft rule violations."""


class UnknownFieldError(DraftError, KeyError):
    pass


class DraftValidationError(DraftError):
    def __init__(self, errors: Mapping[str, str]):
        self.errors = dict(errors)
        super().__init__("; ".join(self.errors.values()) or "draft is invalid")


class VariantLimitReached(DraftError):
    pass


class VariantNotFound(DraftError, LookupError):
    pass


class VariantConfirmationRequired(DraftError):
    """Raised when disabling a non-empty variant list without clear_all."""


class QuoteSettingsNotApplicable(DraftError):
    pass


class QuoteFieldLimitReached(DraftError):
    pass


class UploadError(Exception):
    """Image upload failed; message is user-displayable."""

    def __init__(self, message: str, *, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class StorageError(Exception):
    pass


class StorageQuotaExceeded(StorageError):
    pass
