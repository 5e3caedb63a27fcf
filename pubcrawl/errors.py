"""Typed failures raised by the crawl pipeline."""
from __future__ import annotations

from typing import Optional


class CrawlError(Exception):
    kind = "crawl_error"
    default_message = "Something went wrong while building the crawl. Please try again."

    def __init__(self, message: str, user_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.user_message = user_message or self.default_message


class InvalidInputError(CrawlError):
    kind = "invalid_input"
    default_message = "Please check the entered values."


class RoutingUnavailableError(InvalidInputError):
    kind = "routing_unavailable"
    default_message = "Not enough stops to build a walking route."


class NotFoundError(CrawlError):
    kind = "not_found"
    default_message = "Failed to find location. Please try a different address."


class ProviderError(CrawlError):
    kind = "provider_error"
    default_message = "The map service is unavailable right now. Please try again later."

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        status: Optional[int] = None,
        user_message: Optional[str] = None,
    ) -> None:
        super().__init__(message, user_message=user_message)
        self.provider = provider
        self.status = status
