"""Exceptions raised by TrimHTML.

Sanitization itself never raises on attacker-controlled input: malformed rules
are ignored and unparseable CSS is dropped. The only surfaced failure is a
missing parsing/sanitizing environment.
"""

from __future__ import annotations


class TrimHTMLError(Exception):
    """Base class for all TrimHTML errors."""


class EnvironmentUnavailableError(TrimHTMLError, RuntimeError):
    """Raised when the HTML parsing or sanitizing libraries cannot be loaded."""

    def __init__(self, distribution: str, reason: str | None = None) -> None:
        self.distribution = distribution
        self.reason = reason
        msg = f"TrimHTML cannot sanitize without '{distribution}'. Install it with: pip install {distribution}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)
