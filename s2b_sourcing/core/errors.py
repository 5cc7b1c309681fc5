"""Exception types raised by the sourcing pipeline."""

from __future__ import annotations


class SourcingError(Exception):
    """Base class for sourcing pipeline errors."""


class NotFoundError(SourcingError):
    """A required field could not be extracted from the page."""

    def __init__(self, field_name: str, url: str = "") -> None:
        self.field_name = field_name
        self.url = url
        super().__init__(f"Required field '{field_name}' not found" + (f" at {url}" if url else ""))


class UnsupportedSourceError(SourcingError):
    """No vendor adapter matches the URL."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Unsupported source: {url}")


class LoginRequiredError(SourcingError):
    """The shared browser session was redirected to a login page."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(
            f"Login required at {url}. Sign in with the sourcing browser and try again."
        )


class DocumentError(SourcingError):
    """The document-query collaborator could not perform an operation."""


class ImageFetchError(SourcingError):
    """An image could not be downloaded or decoded."""


class EnrichmentError(SourcingError):
    """The enrichment service failed or returned an empty result."""


class InsufficientCreditsError(EnrichmentError):
    """The enrichment account has run out of credits."""

    def __init__(self, message: str = "", balance: float | None = None) -> None:
        self.balance = balance
        super().__init__(message or "Insufficient credits for enrichment")


class CertificationValidationError(SourcingError):
    """A certification number failed validation at the authority."""

    def __init__(
        self,
        message: str,
        code: int | None = None,
        status_text: str = "",
        cert_number: str = "",
    ) -> None:
        self.code = code
        self.status_text = status_text or message
        self.cert_number = cert_number
        super().__init__(message)
