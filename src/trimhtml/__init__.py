from .errors import EnvironmentUnavailableError, TrimHTMLError
from .policy import Policy, SanitizerConfig, compile_rules
from .rules import AttrRule, IgnoredRule, StyleRule, TagRule, parse_rule, rules_from_html
from .sanitize import sanitize, sanitize_once, sanitize_with_policy

__all__ = [
    "AttrRule",
    "EnvironmentUnavailableError",
    "IgnoredRule",
    "Policy",
    "SanitizerConfig",
    "StyleRule",
    "TagRule",
    "TrimHTMLError",
    "compile_rules",
    "parse_rule",
    "rules_from_html",
    "sanitize",
    "sanitize_once",
    "sanitize_with_policy",
]
