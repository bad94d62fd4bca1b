"""Rule strings and their parsed form.

A rule is a pipe-delimited string:

- ``tag``                     allow one more occurrence of ``tag``
- ``tag|attr``                allow ``attr`` on ``tag``
- ``style|selector|property`` allow a CSS declaration for ``selector``

Parsing is total: every input maps to a rule variant, and shapes that are not
recognized become an `IgnoredRule` instead of an error. This keeps the rule
language forward-compatible and safe to feed with untrusted configuration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from .constants import STRUCTURAL_TAGS
from .parser import parse_document

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TagRule:
    tag: str


@dataclass(frozen=True, slots=True)
class AttrRule:
    tag: str
    attr: str


@dataclass(frozen=True, slots=True)
class StyleRule:
    selector: str
    property: str


@dataclass(frozen=True, slots=True)
class IgnoredRule:
    """A rule that does not match any known shape."""

    raw: object
    reason: str


Rule = Union[TagRule, AttrRule, StyleRule, IgnoredRule]


def parse_rule(raw: object) -> Rule:
    """Parse one rule string. Never raises."""
    if not isinstance(raw, str):
        return IgnoredRule(raw, "not a string")

    parts = [part.strip() for part in raw.split("|")]

    if len(parts) == 1:
        tag = parts[0].lower()
        if not tag:
            return IgnoredRule(raw, "empty tag")
        return TagRule(tag)

    if len(parts) == 2:
        tag = parts[0].lower()
        attr = parts[1].lower()
        if not tag or not attr:
            return IgnoredRule(raw, "empty tag or attribute")
        return AttrRule(tag, attr)

    if len(parts) == 3:
        if parts[0].lower() != "style":
            return IgnoredRule(raw, "three segments must start with 'style'")
        selector = parts[1]
        prop = parts[2].lower()
        if not selector or not prop:
            return IgnoredRule(raw, "empty selector or property")
        return StyleRule(selector, prop)

    return IgnoredRule(raw, f"unexpected segment count {len(parts)}")


def parse_rules(rules: Iterable[object] | None) -> list[Rule]:
    """Parse rules in order, logging the ones that are ignored."""
    parsed: list[Rule] = []
    for raw in rules or ():
        rule = parse_rule(raw)
        if isinstance(rule, IgnoredRule):
            logger.debug("Ignoring rule %r: %s", rule.raw, rule.reason)
        parsed.append(rule)
    return parsed


def rules_from_html(html: str) -> list[str]:
    """Derive rules that admit exactly the markup of a reference document.

    Every element occurrence (structural tags included) yields one tag rule and
    every distinct (tag, attribute) pair yields one attribute rule. Tag rules
    come first, grouped by tag in order of first appearance.
    """
    document = parse_document(html)
    root = document.document_element
    if root is None:
        return []

    tag_counts: dict[str, int] = {}
    attrs_by_tag: dict[str, dict[str, None]] = {}
    for element in root.iter_elements():
        tag = element.tag_name.lower()
        tag_counts[tag] = tag_counts.get(tag, 0) + 1
        for name in element.attributes:
            attrs_by_tag.setdefault(tag, {})[name.lower()] = None

    rules: list[str] = []
    for tag, count in tag_counts.items():
        rules.extend([tag] * count)
    for tag, attrs in attrs_by_tag.items():
        rules.extend(f"{tag}|{attr}" for attr in attrs)

    logger.debug(
        "Derived %d rules (%d structural tags)",
        len(rules),
        sum(count for tag, count in tag_counts.items() if tag in STRUCTURAL_TAGS),
    )
    return rules
