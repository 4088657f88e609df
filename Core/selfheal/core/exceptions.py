from __future__ import annotations


class HealingError(RuntimeError):
    """Base class for self-healing resolution errors."""


class LookupTimeout(HealingError):
    """Raised when an identifier does not resolve within the bounded wait."""


class DocumentError(HealingError):
    """Raised when the page snapshot or element inventory cannot be captured."""


class CompletionError(HealingError):
    """Raised when the AI completion backend fails or answers in an unexpected shape."""


class SelectorValidationError(HealingError):
    """Raised when an LLM returns an unusable selector."""


class ResolutionFailure(HealingError):
    """Raised when neither the original nor a repaired identifier resolves."""

    def __init__(self, identifier: str, last_candidate: str | None = None, reason: str = "") -> None:
        self.identifier = identifier
        self.last_candidate = last_candidate
        self.reason = reason
        message = f"Could not find or heal selector: {identifier}"
        if last_candidate:
            message += f" (last candidate: {last_candidate})"
        if reason:
            message += f": {reason}"
        super().__init__(message)
