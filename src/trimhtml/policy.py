"""Compiled sanitization policy.

`compile_rules()` consumes an ordered list of rule strings plus configuration
exactly once and produces an immutable `Policy` that can be reused for any
number of `sanitize_with_policy()` calls, from any number of threads.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from .constants import STRUCTURAL_TAGS
from .rules import AttrRule, StyleRule, TagRule, parse_rules

if TYPE_CHECKING:
    from collections.abc import Iterable

DEFAULT_MAX_PASSES = 10

# Mapping keys accepted by `SanitizerConfig.from_mapping`.
_CONFIG_KEYS: dict[str, str] = {
    "allowCommonAttributes": "allow_common_attributes",
    "allow_common_attributes": "allow_common_attributes",
    "allowJavaScript": "allow_javascript",
    "allow_javascript": "allow_javascript",
    "maxPasses": "max_passes",
    "max_passes": "max_passes",
}


@dataclass(frozen=True, slots=True)
class SanitizerConfig:
    """Behavior switches for a policy.

    - `allow_common_attributes`: also allow `class`/`id` everywhere and a few
      conventional attributes on `a`, `img` and `html`.
    - `allow_javascript`: keep `script` elements and `on*` handlers when the
      rules allow them, and skip URL scheme checks and the final bleach pass.
    - `max_passes`: ceiling for the convergence loop (at least 1).
    """

    allow_common_attributes: bool = False
    allow_javascript: bool = False
    max_passes: int = DEFAULT_MAX_PASSES

    def __post_init__(self) -> None:
        object.__setattr__(self, "allow_common_attributes", bool(self.allow_common_attributes))
        object.__setattr__(self, "allow_javascript", bool(self.allow_javascript))
        try:
            max_passes = int(self.max_passes)
        except (TypeError, ValueError):
            max_passes = DEFAULT_MAX_PASSES
        # A zero ceiling would hand back the input untouched.
        object.__setattr__(self, "max_passes", max(1, max_passes))

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> SanitizerConfig:
        """Build a config from camelCase or snake_case keys; unknown keys are ignored."""
        kwargs: dict[str, Any] = {}
        for key, value in values.items():
            name = _CONFIG_KEYS.get(key)
            if name is not None and value is not None:
                kwargs[name] = value
        return cls(**kwargs)


def coerce_config(config: SanitizerConfig | Mapping[str, Any] | None) -> SanitizerConfig:
    if config is None:
        return SanitizerConfig()
    if isinstance(config, SanitizerConfig):
        return config
    if isinstance(config, Mapping):
        return SanitizerConfig.from_mapping(config)
    raise TypeError(f"config must be a SanitizerConfig or a mapping, not {type(config).__name__}")


@dataclass(frozen=True, slots=True)
class Policy:
    """Compiled rules and configuration.

    All tag, attribute and property names are ASCII-lowercase; style selector
    keys keep their original case. Mappings are read-only views.
    """

    tag_budget: Mapping[str, int] = field(default_factory=dict)
    attr_allow: Mapping[str, frozenset[str]] = field(default_factory=dict)
    style_allow: Mapping[str, frozenset[str]] = field(default_factory=dict)
    config: SanitizerConfig = field(default_factory=SanitizerConfig)

    def __post_init__(self) -> None:
        budget = {str(tag): max(0, int(count)) for tag, count in self.tag_budget.items()}
        object.__setattr__(self, "tag_budget", MappingProxyType(budget))
        attrs = {str(tag): frozenset(names) for tag, names in self.attr_allow.items()}
        object.__setattr__(self, "attr_allow", MappingProxyType(attrs))
        styles = {str(selector): frozenset(props) for selector, props in self.style_allow.items()}
        object.__setattr__(self, "style_allow", MappingProxyType(styles))
        object.__setattr__(self, "config", coerce_config(self.config))

    @property
    def total_budget(self) -> int:
        """Sum of the budgets of all non-structural tags."""
        return sum(count for tag, count in self.tag_budget.items() if tag not in STRUCTURAL_TAGS)

    @property
    def allows_style_element(self) -> bool:
        return self.tag_budget.get("style", 0) > 0 and len(self.style_allow) > 0

    def budget_for(self, tag: str) -> int:
        return self.tag_budget.get(tag, 0)


def compile_rules(
    rules: Iterable[object] | None,
    config: SanitizerConfig | Mapping[str, Any] | None = None,
) -> Policy:
    """Compile rule strings and configuration into a `Policy`.

    Duplicate tag rules raise that tag's budget; duplicate attribute and style
    rules are no-ops. Malformed rules are ignored, never raised.
    """
    tag_budget: dict[str, int] = {}
    attr_allow: dict[str, set[str]] = {}
    style_allow: dict[str, set[str]] = {}

    for rule in parse_rules(rules):
        if isinstance(rule, TagRule):
            tag_budget[rule.tag] = tag_budget.get(rule.tag, 0) + 1
        elif isinstance(rule, AttrRule):
            attr_allow.setdefault(rule.tag, set()).add(rule.attr)
        elif isinstance(rule, StyleRule):
            style_allow.setdefault(rule.selector, set()).add(rule.property)

    return Policy(
        tag_budget=tag_budget,
        attr_allow=attr_allow,
        style_allow=style_allow,
        config=coerce_config(config),
    )
