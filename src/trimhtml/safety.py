"""Final bleach pass run over every filtered document while JavaScript is off.

bleach re-parses each fragment with its own tag and attribute allowlists and
its own URL protocol check, independently of the policy filters. Its output is
adjusted so that a document which already passed the filters comes back
unchanged: foreign names keep their case, namespaced attributes keep their
prefix and inline styles keep the `prop:value;prop:value` form.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .constants import (
    ATTRIBUTE_NAMESPACE_PREFIXES,
    COMMON_ATTRIBUTES,
    COMMON_GLOBAL_ATTRIBUTES,
    FOREIGN_CASE_SENSITIVE_ATTRIBUTES,
    SAFE_PROTOCOLS,
    STRUCTURAL_TAGS,
    SVG_CASE_SENSITIVE_ELEMENTS,
)
from .css import serialize_declarations
from .serialize import inner_html, serialize_end_tag, serialize_start_tag, to_html

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping
    from typing import Any

    from .environment import Environment
    from .node import Node
    from .policy import Policy


class QualifiedAttributeNames:
    """html5lib token filter that puts the prefix back on namespaced attributes.

    bleach's serializer writes only the local name, so `xlink:href` would come
    out as `href`.
    """

    def __init__(self, source: Iterable[dict[str, Any]], prefixes: Mapping[str, str] = ATTRIBUTE_NAMESPACE_PREFIXES):
        self.source = source
        self.prefixes = prefixes

    def __iter__(self) -> Iterator[dict[str, Any]]:
        for token in self.source:
            if token["type"] in ("StartTag", "EmptyTag") and token.get("data"):
                token["data"] = {self._qualify(key): value for key, value in token["data"].items()}
            yield token

    def _qualify(self, key: tuple[str | None, str]) -> tuple[str | None, str]:
        namespace, name = key
        prefix = self.prefixes.get(namespace) if namespace else None
        if prefix is None or name == prefix:
            return key
        return namespace, f"{prefix}:{name}"

    def __getattr__(self, name: str) -> Any:
        return getattr(self.source, name)


class InlineStyleSanitizer:
    """Wraps bleach's `CSSSanitizer` and writes declarations as `prop:value;prop:value`."""

    def __init__(self, css_sanitizer: Any):
        self.css_sanitizer = css_sanitizer

    def sanitize_css(self, style: str) -> str:
        return serialize_declarations(self.css_sanitizer.sanitize_css(style))


def allowed_tags_for_net(policy: Policy) -> frozenset[str]:
    tags = {tag for tag, budget in policy.tag_budget.items() if budget > 0}
    tags.update(STRUCTURAL_TAGS)
    if not policy.config.allow_javascript:
        tags.discard("script")
    # bleach compares the parser's mixed-case SVG names
    tags.update(SVG_CASE_SENSITIVE_ELEMENTS[tag] for tag in list(tags) if tag in SVG_CASE_SENSITIVE_ELEMENTS)
    return frozenset(tags)


def allowed_attributes_for_net(policy: Policy) -> list[str]:
    """Flat attribute allowlist for bleach, which does not know our per-tag rules."""
    names: set[str] = set()
    for attrs in policy.attr_allow.values():
        names.update(attrs)
    if policy.config.allow_common_attributes:
        names.update(COMMON_GLOBAL_ATTRIBUTES)
        for attrs in COMMON_ATTRIBUTES.values():
            names.update(attrs)
    # bleach compares the local name of namespaced attributes, in parser case
    names.update(name.split(":", 1)[1] for name in list(names) if ":" in name)
    foreign = FOREIGN_CASE_SENSITIVE_ATTRIBUTES
    names.update(foreign[name] for name in list(names) if name in foreign)
    return sorted(names)


def build_cleaner(policy: Policy, env: Environment) -> Any:
    attributes = allowed_attributes_for_net(policy)
    css_sanitizer = None
    if "style" in attributes:
        properties: set[str] = set()
        for props in policy.style_allow.values():
            properties.update(props)
        css_sanitizer = InlineStyleSanitizer(env.new_css_sanitizer(frozenset(properties)))

    return env.new_cleaner(
        tags=allowed_tags_for_net(policy),
        attributes=attributes,
        protocols=SAFE_PROTOCOLS,
        strip=True,
        strip_comments=True,
        css_sanitizer=css_sanitizer,
        filters=[QualifiedAttributeNames],
    )


def clean_document(document: Node, policy: Policy, env: Environment) -> str:
    """Serialize `document` with every fragment inside <html> run through bleach.

    bleach handles fragments only, so the <html>, <head> and <body> tags
    themselves are written directly.
    """
    root = document.document_element
    if root is None:
        return ""

    cleaner = build_cleaner(policy, env)
    parts: list[str] = [serialize_start_tag(root.tag_name, root.attributes)]
    for child in root.children:
        if child.tag_name in ("head", "body") and child.namespace is None:
            parts.append(serialize_start_tag(child.tag_name, child.attributes))
            parts.append(cleaner.clean(inner_html(child)))
            parts.append(serialize_end_tag(child.tag_name))
        else:
            parts.append(cleaner.clean(to_html(child)))
    parts.append(serialize_end_tag(root.tag_name))
    return "".join(parts)
