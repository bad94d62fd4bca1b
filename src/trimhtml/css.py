"""Allowlist filtering for `<style>` sheets and `style` attributes.

A declaration survives for a selector only when its property is allowlisted
for that selector and its value has no `url()` anywhere inside it. Everything
else (at-rules, unknown selectors, unknown properties) is dropped. CSS that
tinycss2 reports as unparseable yields an empty result.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import tinycss2
from tinycss2 import ast

from .constants import WILDCARD_SELECTOR

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

_NESTED_BLOCKS = (ast.ParenthesesBlock, ast.SquareBracketsBlock, ast.CurlyBracketsBlock)


def _walk(nodes: Iterable[ast.Node]) -> Iterator[ast.Node]:
    stack = list(nodes)
    while stack:
        node = stack.pop()
        yield node
        if isinstance(node, ast.FunctionBlock):
            stack.extend(node.arguments)
        elif isinstance(node, _NESTED_BLOCKS):
            stack.extend(node.content)
        elif isinstance(node, ast.Declaration):
            stack.extend(node.value)
        elif isinstance(node, (ast.QualifiedRule, ast.AtRule)):
            stack.extend(node.prelude)
            stack.extend(node.content or ())


def contains_url(nodes: Iterable[ast.Node]) -> bool:
    """True if any `url(...)` appears, at any nesting depth."""
    for node in _walk(nodes):
        if isinstance(node, ast.URLToken):
            return True
        if isinstance(node, ast.FunctionBlock) and node.lower_name == "url":
            return True
    return False


def _has_parse_error(nodes: Iterable[ast.Node]) -> bool:
    return any(isinstance(node, ast.ParseError) for node in _walk(nodes))


def _declaration_value(declaration: ast.Declaration) -> str:
    return tinycss2.serialize(declaration.value).strip()


def _allowed_declarations(
    declarations: Iterable[ast.Node],
    allowed_properties: frozenset[str],
    *,
    keep_important: bool,
    raw_text: bool = False,
) -> list[str]:
    kept: list[str] = []
    for node in declarations:
        if not isinstance(node, ast.Declaration):
            continue
        prop = node.lower_name.strip()
        if prop not in allowed_properties:
            continue
        if contains_url(node.value):
            continue
        value = _declaration_value(node)
        if not value:
            continue
        # "<" could end the enclosing <style> element early
        if raw_text and "<" in value:
            continue
        if keep_important and node.important:
            value = f"{value}!important"
        kept.append(f"{prop}:{value}")
    return kept


def split_selectors(prelude: Iterable[ast.Node]) -> list[str]:
    """Split a rule prelude on top-level commas into trimmed selector strings."""
    groups: list[list[ast.Node]] = [[]]
    for token in prelude:
        if isinstance(token, ast.LiteralToken) and token.value == ",":
            groups.append([])
        else:
            groups[-1].append(token)
    selectors = (tinycss2.serialize(group).strip() for group in groups)
    return [selector for selector in selectors if selector]


def filter_stylesheet(css_text: str, style_allow: Mapping[str, frozenset[str]]) -> str:
    """Filter the text of a `<style>` element.

    Each allowlisted selector of a rule becomes its own rule holding only the
    declarations allowed for it. At-rules (including `@import`) are always
    removed. Returns "" when nothing survives.
    """
    nodes = tinycss2.parse_stylesheet(css_text, skip_comments=True, skip_whitespace=True)
    if _has_parse_error(nodes):
        return ""

    output: list[str] = []
    for node in nodes:
        if not isinstance(node, ast.QualifiedRule):
            continue
        declarations = tinycss2.parse_declaration_list(node.content, skip_comments=True, skip_whitespace=True)
        if _has_parse_error(declarations):
            return ""
        for selector in split_selectors(node.prelude):
            allowed_properties = style_allow.get(selector)
            if not allowed_properties or "<" in selector:
                continue
            kept = _allowed_declarations(declarations, allowed_properties, keep_important=True, raw_text=True)
            if kept:
                output.append(f"{selector}{{{';'.join(kept)}}}")
    return "".join(output)


def inline_properties(tag: str, style_allow: Mapping[str, frozenset[str]]) -> frozenset[str]:
    return style_allow.get(WILDCARD_SELECTOR, frozenset()) | style_allow.get(tag, frozenset())


def filter_inline_style(tag: str, value: str, style_allow: Mapping[str, frozenset[str]]) -> str:
    """Filter a `style` attribute value for an element named `tag`.

    Returns `prop:value;prop:value`, or "" when the attribute should be dropped.
    """
    allowed_properties = inline_properties(tag, style_allow)
    if not allowed_properties:
        return ""
    declarations = tinycss2.parse_declaration_list(value, skip_comments=True, skip_whitespace=True)
    if _has_parse_error(declarations):
        return ""
    return ";".join(_allowed_declarations(declarations, allowed_properties, keep_important=False))


def serialize_declarations(css_text: str) -> str:
    """Rewrite a declaration list as `prop:value;prop:value`."""
    declarations = tinycss2.parse_declaration_list(css_text, skip_comments=True, skip_whitespace=True)
    parts: list[str] = []
    for node in declarations:
        if not isinstance(node, ast.Declaration):
            continue
        value = _declaration_value(node)
        if node.important:
            value = f"{value}!important"
        parts.append(f"{node.lower_name}:{value}")
    return ";".join(parts)
