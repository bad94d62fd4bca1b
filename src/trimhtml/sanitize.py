"""Public sanitization entry points.

A single pass can expose new structure: unwrapping an element may make two
text runs adjacent, and re-parsing serialized output may move misnested
markup. `sanitize_with_policy` therefore repeats passes until the output stops
changing or the configured ceiling is reached.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .enforce import enforce_tags
from .environment import get_environment
from .parser import parse_document
from .policy import Policy, compile_rules
from .safety import clean_document
from .serialize import to_html

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from typing import Any

    from .policy import SanitizerConfig

logger = logging.getLogger(__name__)


def sanitize_once(html: str | None, policy: Policy) -> str:
    """Run exactly one filtering pass and return the serialized document."""
    document = parse_document(html or "")
    enforce_tags(document, policy)
    if policy.config.allow_javascript:
        return to_html(document)
    return clean_document(document, policy, get_environment())


def sanitize_with_policy(html: str | None, policy: Policy) -> str:
    """Sanitize `html` under a compiled `policy`.

    Returns the first pass output that a further pass leaves unchanged, or the
    output of the last pass when `policy.config.max_passes` is exhausted.
    """
    if not isinstance(policy, Policy):
        raise TypeError(f"policy must be a Policy from compile_rules(), not {type(policy).__name__}")

    current = html or ""
    max_passes = policy.config.max_passes
    for attempt in range(1, max_passes + 1):
        result = sanitize_once(current, policy)
        if result == current:
            logger.debug("Converged after %d pass(es)", attempt)
            return result
        current = result

    logger.info("Output still changing after %d passes; returning last result", max_passes)
    return current


def sanitize(
    html: str | None,
    rules: Iterable[object] | None,
    config: SanitizerConfig | Mapping[str, Any] | None = None,
) -> str:
    """Compile `rules` with `config` and sanitize `html` in one call."""
    return sanitize_with_policy(html, compile_rules(rules, config))
