# backend/kynos/core/errors.py
from __future__ import annotations


class KynosError(Exception):
    """Base for failures that are reported to the caller as {"error": message}."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict:
        return {"error": self.message}


class CatalogLoadError(KynosError):
    """Ticker list is missing or malformed. Fatal at startup."""


class CompanyNotFound(KynosError):
    status_code = 400

    def __init__(self, company_name: str):
        super().__init__(
            f'Company "{company_name}" not found in S&P 500 list. '
            "Please check the company name and try again."
        )
        self.company_name = company_name


class Unprocessable(KynosError):
    status_code = 400

    def __init__(self, message: str = "Unable to process the request"):
        super().__init__(message)


class UpstreamError(KynosError):
    """Market data or intent resolver failed (transport, HTTP status or payload shape)."""

    def __init__(self, message: str):
        super().__init__(f"Failed to process request: {message}")
        self.upstream_message = message
