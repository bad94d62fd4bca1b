"""Per-element attribute filtering."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .constants import COMMON_ATTRIBUTES, COMMON_GLOBAL_ATTRIBUTES, URL_ATTRIBUTES
from .css import filter_inline_style
from .urls import is_dangerous_url_value

if TYPE_CHECKING:
    from .node import Node
    from .policy import Policy


def allowed_attributes(tag: str, policy: Policy) -> frozenset[str]:
    """Attribute names `tag` may keep under `policy`."""
    allowed = set(policy.attr_allow.get(tag, ()))
    if policy.config.allow_common_attributes:
        allowed.update(COMMON_GLOBAL_ATTRIBUTES)
        allowed.update(COMMON_ATTRIBUTES.get(tag, ()))
    return frozenset(allowed)


def filter_attributes(element: Node, tag: str, policy: Policy) -> None:
    """Strip attributes of `element` that `policy` does not allow, in place.

    Event handlers are always stripped while JavaScript is disallowed, even if
    a rule names them. `style` values are reduced to allowlisted declarations
    and URL-bearing values with executable schemes are removed.
    """
    allow_javascript = policy.config.allow_javascript
    allowed = allowed_attributes(tag, policy)

    for name in list(element.attributes):
        lowered = name.lower()
        if not allow_javascript and lowered.startswith("on"):
            del element.attributes[name]
            continue

        if lowered not in allowed:
            del element.attributes[name]
            continue

        value = element.attributes[name] or ""
        if lowered == "style":
            filtered = filter_inline_style(tag, value, policy.style_allow)
            if filtered:
                element.attributes[name] = filtered
            else:
                del element.attributes[name]
            continue

        if not allow_javascript and lowered in URL_ATTRIBUTES and is_dangerous_url_value(lowered, value):
            del element.attributes[name]
