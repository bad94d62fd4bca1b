from __future__ import annotations

import unittest

from trimhtml import compile_rules
from trimhtml.safety import (
    InlineStyleSanitizer,
    QualifiedAttributeNames,
    allowed_attributes_for_net,
    allowed_tags_for_net,
)

XLINK = "http://www.w3.org/1999/xlink"
XMLNS = "http://www.w3.org/2000/xmlns/"


class _FakeCssSanitizer:
    def sanitize_css(self, style: str) -> str:
        return style.replace(";", "; ") + ";"


class TestCleanerAllowlists(unittest.TestCase):
    def test_tags_include_parser_case_for_svg(self) -> None:
        tags = allowed_tags_for_net(compile_rules(["svg", "foreignObject", "lineargradient", "p"]))
        assert {"svg", "foreignobject", "foreignObject", "lineargradient", "linearGradient", "p"} <= tags
        assert {"html", "head", "body"} <= tags

    def test_script_excluded_without_javascript(self) -> None:
        assert "script" not in allowed_tags_for_net(compile_rules(["script"]))
        assert "script" in allowed_tags_for_net(compile_rules(["script"], {"allowJavaScript": True}))

    def test_attributes_include_local_and_parser_case_names(self) -> None:
        names = allowed_attributes_for_net(compile_rules(["use|xlink:href", "svg|viewBox", "a|title"]))
        assert names == sorted(["href", "title", "viewBox", "viewbox", "xlink:href"])


class TestQualifiedAttributeNames(unittest.TestCase):
    def test_prefixes_are_restored(self) -> None:
        tokens = [
            {"type": "StartTag", "name": "use", "data": {(XLINK, "href"): "#a", (None, "x"): "1"}},
            {"type": "Characters", "data": "text"},
            {"type": "StartTag", "name": "svg", "data": {(XMLNS, "xmlns"): "s", (XMLNS, "xlink"): XLINK}},
        ]
        out = list(QualifiedAttributeNames(tokens))
        assert out[0]["data"] == {(XLINK, "xlink:href"): "#a", (None, "x"): "1"}
        assert out[1] == {"type": "Characters", "data": "text"}
        assert out[2]["data"] == {(XMLNS, "xmlns"): "s", (XMLNS, "xmlns:xlink"): XLINK}


class TestInlineStyleSanitizer(unittest.TestCase):
    def test_output_uses_compact_declarations(self) -> None:
        sanitizer = InlineStyleSanitizer(_FakeCssSanitizer())
        assert sanitizer.sanitize_css("color:red;margin:0") == "color:red;margin:0"
