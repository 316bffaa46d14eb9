"""Structured error handling — provider failure classification and tool error model."""

from __future__ import annotations

import re
from enum import Enum

import httpx
from pydantic import BaseModel


class ErrorCategory(str, Enum):
    """Categories of errors raised while analyzing a call."""

    RATE_LIMITED = "RATE_LIMITED"
    INSUFFICIENT_CREDITS = "INSUFFICIENT_CREDITS"
    INVALID_API_KEY = "INVALID_API_KEY"
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    NETWORK_ERROR = "NETWORK_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"
    RESPONSE_PARSE_FAILED = "RESPONSE_PARSE_FAILED"
    PROVIDER_NOT_CONFIGURED = "PROVIDER_NOT_CONFIGURED"
    ALL_PROVIDERS_FAILED = "ALL_PROVIDERS_FAILED"
    UNKNOWN = "UNKNOWN"


# Retried on the same provider; everything else advances the chain.
TRANSIENT_CATEGORIES = frozenset({
    ErrorCategory.RATE_LIMITED,
    ErrorCategory.PROVIDER_UNAVAILABLE,
    ErrorCategory.NETWORK_ERROR,
})

_TITLES: dict[ErrorCategory, str] = {
    ErrorCategory.RATE_LIMITED: "Rate limit exceeded",
    ErrorCategory.INSUFFICIENT_CREDITS: "Insufficient credits",
    ErrorCategory.INVALID_API_KEY: "Invalid API key",
}

_HINTS: dict[ErrorCategory, str] = {
    ErrorCategory.RATE_LIMITED: "Provider rate limit hit — wait and retry",
    ErrorCategory.INSUFFICIENT_CREDITS: "Provider quota or billing exhausted — operator action required",
    ErrorCategory.INVALID_API_KEY: "Provider rejected the API key — check the configured credentials",
    ErrorCategory.PROVIDER_UNAVAILABLE: "Provider temporarily unavailable — retry later",
    ErrorCategory.NETWORK_ERROR: "Request timed out or connection failed — try again or check connectivity",
    ErrorCategory.INVALID_REQUEST: "Provider rejected the request — check model name and prompt size",
    ErrorCategory.RESPONSE_PARSE_FAILED: "Model output was not the expected JSON — not retried automatically",
    ErrorCategory.PROVIDER_NOT_CONFIGURED: "No API key for any configured provider — set OPENAI_API_KEY, GEMINI_API_KEY or ANTHROPIC_API_KEY",
    ErrorCategory.ALL_PROVIDERS_FAILED: "Every configured provider failed — see details",
}


def is_transient(category: ErrorCategory) -> bool:
    """Return True when *category* is worth retrying on the same provider."""
    return category in TRANSIENT_CATEGORIES


def title_for(category: ErrorCategory) -> str:
    """User-facing error title for *category*."""
    return _TITLES.get(category, "Analysis failed")


class ProviderError(Exception):
    """A classified failure from one language-model provider."""

    def __init__(
        self,
        category: ErrorCategory,
        message: str,
        *,
        provider: str = "",
        status_code: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message)
        self.category = category
        self.message = message
        self.provider = provider
        self.status_code = status_code
        self.retry_after = retry_after

    @property
    def transient(self) -> bool:
        return is_transient(self.category)

    def __str__(self) -> str:
        if self.provider:
            return f"[{self.provider}] {self.message}"
        return self.message


class ProviderNotConfiguredError(ProviderError):
    """Raised when no provider in the chain has credentials."""

    def __init__(self, message: str = "No analysis provider is configured") -> None:
        super().__init__(ErrorCategory.PROVIDER_NOT_CONFIGURED, message)


class AllProvidersFailedError(Exception):
    """Raised when every provider in the chain failed.

    ``category`` is the category of the last attempt, so a chain that ends
    on a billing failure still surfaces as ``Insufficient credits``.
    """

    def __init__(self, attempts: list[ProviderError]) -> None:
        self.attempts = attempts
        last = attempts[-1] if attempts else None
        self.category = last.category if last else ErrorCategory.ALL_PROVIDERS_FAILED
        summary = "; ".join(str(a) for a in attempts) or "no providers attempted"
        super().__init__(f"All providers failed: {summary}")


class AnalysisParseError(ValueError):
    """Model output is not valid JSON or lacks a required top-level group."""


def classify_status(status_code: int | None, body: str = "") -> ErrorCategory:
    """Map an HTTP status code (plus response body) to an ErrorCategory."""
    text = body.lower()
    if (
        "insufficient_quota" in text
        or "billing" in text
        or "credit balance" in text
        or status_code == 402
    ):
        return ErrorCategory.INSUFFICIENT_CREDITS
    if status_code == 429:
        return ErrorCategory.RATE_LIMITED
    if status_code in (401, 403) or "invalid_api_key" in text or "api key not valid" in text:
        return ErrorCategory.INVALID_API_KEY
    if status_code == 408:
        return ErrorCategory.NETWORK_ERROR
    if status_code is not None and status_code >= 500:
        return ErrorCategory.PROVIDER_UNAVAILABLE
    if status_code is not None and 400 <= status_code < 500:
        return ErrorCategory.INVALID_REQUEST
    return ErrorCategory.UNKNOWN


# Standalone three-digit status codes; ids such as "14290" do not match
_STATUS_CODE_RE = re.compile(r"\b([45]\d\d)\b")


def categorize_error(error: Exception) -> tuple[ErrorCategory, str]:
    """Map an exception to an ErrorCategory + user-facing title."""
    if isinstance(error, (ProviderError, AllProvidersFailedError)):
        return error.category, title_for(error.category)
    if isinstance(error, AnalysisParseError):
        return ErrorCategory.RESPONSE_PARSE_FAILED, title_for(ErrorCategory.RESPONSE_PARSE_FAILED)
    if isinstance(error, (TimeoutError, httpx.TimeoutException, httpx.NetworkError)):
        return ErrorCategory.NETWORK_ERROR, title_for(ErrorCategory.NETWORK_ERROR)

    s = str(error).lower()
    codes = set(_STATUS_CODE_RE.findall(s))
    # Quota exhaustion can arrive as a 429, so check it first.
    if "insufficient_quota" in s or "billing" in s or "402" in codes:
        cat = ErrorCategory.INSUFFICIENT_CREDITS
    elif "too many requests" in s or "429" in codes or "rate limit" in s:
        cat = ErrorCategory.RATE_LIMITED
    elif "invalid_api_key" in s or "401" in codes:
        cat = ErrorCategory.INVALID_API_KEY
    elif "503" in codes or "service unavailable" in s:
        cat = ErrorCategory.PROVIDER_UNAVAILABLE
    elif "timeout" in s or "timed out" in s:
        cat = ErrorCategory.NETWORK_ERROR
    else:
        cat = ErrorCategory.UNKNOWN
    return cat, title_for(cat)


class ToolError(BaseModel):
    """Structured error returned from any tool."""

    error: str
    category: str
    title: str
    hint: str
    retryable: bool = False
    retry_after_seconds: int | None = None


def make_tool_error(error: Exception) -> dict:
    """Create a serialisable ToolError dict from an exception."""
    cat, title = categorize_error(error)
    retry_after = getattr(error, "retry_after", None)
    if retry_after is None and cat == ErrorCategory.RATE_LIMITED:
        retry_after = 60
    return ToolError(
        error=str(error),
        category=cat.value,
        title=title,
        hint=_HINTS.get(cat, str(error)),
        retryable=is_transient(cat),
        retry_after_seconds=int(retry_after) if retry_after is not None else None,
    ).model_dump(mode="json")
