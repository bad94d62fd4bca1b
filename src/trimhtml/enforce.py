"""Tag budget enforcement for one filtering pass."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .attributes import filter_attributes
from .constants import STRUCTURAL_TAGS, UNCLOSABLE_ELEMENTS
from .css import filter_stylesheet

if TYPE_CHECKING:
    from .node import Node
    from .policy import Policy

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class PassState:
    """Counters for a single pass over one document."""

    used: dict[str, int] = field(default_factory=dict)
    total: int = 0
    saturated: bool = False


def _filter_style_element(element: Node, policy: Policy) -> None:
    filtered = filter_stylesheet(element.get_text(), policy.style_allow)
    if filtered.strip():
        element.set_text(filtered)
    else:
        element.remove()


def enforce_tags(root: Node, policy: Policy) -> PassState:
    """Apply tag budgets, attribute rules and style filtering to `root` in place.

    Elements are visited in document order over a snapshot taken before any
    mutation. Anything detached by an earlier step is skipped. The first N
    occurrences of a tag with budget N are kept, later ones are removed with
    their subtree, and tags without a budget are unwrapped so that their
    content moves up into the parent. `<plaintext>` is always unwrapped, since
    no end tag can close it once it is serialized.
    """
    allow_javascript = policy.config.allow_javascript
    allows_style = policy.allows_style_element
    total_budget = policy.total_budget
    state = PassState(saturated=total_budget == 0)

    for element in list(root.iter_elements()):
        if not element.is_connected:
            continue

        tag = element.tag_name.lower()
        structural = tag in STRUCTURAL_TAGS

        if tag == "script" and not allow_javascript:
            element.remove()
            continue

        if tag == "style" and not allows_style:
            element.remove()
            continue

        if not structural:
            budget = 0 if tag in UNCLOSABLE_ELEMENTS else policy.budget_for(tag)
            if state.saturated:
                if budget == 0:
                    element.unwrap()
                else:
                    element.remove()
                continue

            if budget == 0:
                element.unwrap()
                continue

            used = state.used.get(tag, 0)
            if used >= budget:
                element.remove()
                continue

            state.used[tag] = used + 1
            state.total += 1

        filter_attributes(element, tag, policy)

        if not structural and not state.saturated and state.total >= total_budget:
            state.saturated = True

        if tag == "style":
            _filter_style_element(element, policy)

    logger.debug("Kept %d of %d budgeted elements", state.total, total_budget)
    return state
