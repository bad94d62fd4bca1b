from __future__ import annotations

import importlib
import unittest
from unittest import mock

from trimhtml import SanitizerConfig, compile_rules, sanitize, sanitize_once, sanitize_with_policy
from trimhtml.node import Node
from trimhtml.parser import parse_document
from trimhtml.serialize import inner_html
from trimhtml.urls import normalize_url

URL_ATTRS = ("href", "src", "xlink:href", "action", "formaction", "poster", "srcset", "data")


def _body(html: str) -> str:
    document = parse_document(html)
    return inner_html(document.document_element.find_child_by_tag("body"))


def _all(html: str, tag: str) -> list[Node]:
    return [node for node in parse_document(html).iter_elements() if node.tag_name == tag]


def _first(html: str, tag: str) -> Node | None:
    found = _all(html, tag)
    return found[0] if found else None


class TestTagBudgets(unittest.TestCase):
    def test_multiset_rules(self) -> None:
        output = sanitize("<p><a>one</a><a>two</a><a>three</a></p>", ["p", "a", "a"])
        assert output == "<html><head></head><body><p><a>one</a><a>two</a></p></body></html>"

    def test_budgets_are_global(self) -> None:
        output = sanitize("<a>first</a><div><a>second</a></div><a>third</a>", ["a", "a", "div"])
        assert _body(output) == "<a>first</a><div><a>second</a></div>"

    def test_earliest_occurrences_win(self) -> None:
        output = sanitize("<a>first</a><p><a>second</a></p><div><a>third</a></div>", ["a", "p", "div"])
        assert _body(output) == "<a>first</a><p></p><div></div>"

    def test_nested_duplicates_beyond_budget(self) -> None:
        output = sanitize("<div><a>one</a><div><a>two</a></div></div>", ["div", "div", "a"])
        assert _body(output) == "<div><a>one</a><div></div></div>"

    def test_tag_rules_are_case_insensitive(self) -> None:
        assert _body(sanitize("<a>ok</a>", ["A"])) == "<a>ok</a>"

    def test_disallowed_wrappers_are_unwrapped(self) -> None:
        assert _body(sanitize("<div><p><a>ok</a></p></div>", ["a", "p"])) == "<p><a>ok</a></p>"

    def test_saturated_budgets_preserve_text(self) -> None:
        output = sanitize('<p>keep</p><span data-x="1"><em>more</em> text</span><p>drop</p>', ["p"])
        assert _body(output) == "<p>keep</p>more text"

    def test_full_document_output(self) -> None:
        output = sanitize("<p>ok</p>", ["html", "head", "body", "p"])
        assert output == "<html><head></head><body><p>ok</p></body></html>"

    def test_mixed_case_svg_elements(self) -> None:
        output = sanitize("<svg><foreignObject>x</foreignObject></svg>", ["svg", "foreignobject"])
        assert _body(output) == "<svg><foreignObject>x</foreignObject></svg>"

        output = sanitize(
            "<svg><clipPath><rect></rect></clipPath><clipPath></clipPath></svg>", ["svg", "clipPath", "rect"]
        )
        assert _body(output) == "<svg><clipPath><rect></rect></clipPath></svg>"

    def test_mixed_case_svg_attributes(self) -> None:
        output = sanitize('<svg viewBox="0 0 10 10"></svg>', ["svg", "svg|viewBox"])
        assert _first(output, "svg").attributes == {"viewBox": "0 0 10 10"}

    def test_plaintext_is_kept_as_text(self) -> None:
        output = sanitize("<p>a</p><plaintext><b>z</b>", ["p", "plaintext"])
        assert _body(output) == "<p>a</p>&lt;b&gt;z&lt;/b&gt;"
        assert sanitize(output, ["p", "plaintext"]) == output

    def test_plaintext_output_is_a_fixed_point(self) -> None:
        policy = compile_rules(["plaintext"])
        output = sanitize_with_policy("<plaintext>z", policy)
        assert "plaintext" not in output
        assert sanitize_once(output, policy) == output

    def test_none_and_empty_input(self) -> None:
        assert sanitize(None, ["p"]) == "<html><head></head><body></body></html>"
        assert sanitize("", []) == "<html><head></head><body></body></html>"


class TestAttributes(unittest.TestCase):
    def test_only_declared_attributes_survive(self) -> None:
        output = sanitize('<a href="https://example.com" title="nope">link</a>', ["a", "a|href"])
        assert _first(output, "a").attributes == {"href": "https://example.com"}

    def test_attribute_rules_are_case_insensitive(self) -> None:
        output = sanitize('<a HREF="https://example.com">x</a>', ["A", "a|HREF"])
        assert _first(output, "a").attributes == {"href": "https://example.com"}

    def test_common_attributes(self) -> None:
        html = '<a href="https://example.com" title="ok" rel="nofollow" target="_blank">x</a>'
        output = sanitize(html, ["a"], {"allowCommonAttributes": True})
        assert _first(output, "a").attributes == {
            "href": "https://example.com",
            "title": "ok",
            "rel": "nofollow",
            "target": "_blank",
        }

    def test_common_attributes_do_not_bypass_tag_rules(self) -> None:
        html = '<a href="https://example.com" title="ok">x</a>'
        assert _first(sanitize(html, [], {"allowCommonAttributes": True}), "a") is None

    def test_event_handlers_removed_even_when_allowed(self) -> None:
        output = sanitize('<a onclick="alert(1)">x</a>', ["a", "a|onclick"])
        assert _first(output, "a").attributes == {}


class TestUrls(unittest.TestCase):
    def _assert_no_dangerous_urls(self, output: str) -> None:
        for element in parse_document(output).iter_elements():
            for name, value in element.attributes.items():
                if name.lower() in URL_ATTRS:
                    normalized = normalize_url(value)
                    assert not normalized.startswith(("javascript:", "data:")), (name, value)

    def test_javascript_href_and_onclick(self) -> None:
        output = sanitize('<a href="javascript:alert(1)" onclick="x">x</a>', ["a", "a|href", "a|onclick"])
        assert _first(output, "a").attributes == {}
        assert "javascript" not in output.lower()

    def test_obfuscated_with_whitespace_and_controls(self) -> None:
        html = '<a href=" java\nscript:alert(1)">x</a><a href="java\t\rscript:alert(2)">y</a>'
        output = sanitize(html, ["a", "a", "a|href"])
        assert len(_all(output, "a")) == 2
        self._assert_no_dangerous_urls(output)

    def test_obfuscated_with_case_and_references(self) -> None:
        html = '<a href="JaVaScRiPt:alert(1)">x</a><a href="jav&#x61;script:alert(2)">y</a>'
        output = sanitize(html, ["a", "a", "a|href"])
        assert len(_all(output, "a")) == 2
        self._assert_no_dangerous_urls(output)

    def test_data_urls(self) -> None:
        html = '<a href="data:text/html;base64,PHNjcmlwdD5hbGVydCgxKTwvc2NyaXB0Pg==">x</a>'
        output = sanitize(html, ["a", "a|href"])
        assert "href" not in _first(output, "a").attributes

    def test_other_url_attributes(self) -> None:
        html = (
            '<form action="javascript:alert(1)"><button formaction="data:text/html,evil">go</button></form>'
            '<svg><a xlink:href="javascript:alert(2)">x</a></svg>'
            '<img src="https://example.com/ok.png" '
            'srcset="javascript:alert(1) 1x, https://example.com/ok@2x.png 2x" '
            'poster="data:text/html,evil">'
        )
        rules = [
            "form", "form|action", "button", "button|formaction", "svg", "a", "a|xlink:href",
            "img", "img|src", "img|srcset", "img|poster",
        ]
        output = sanitize(html, rules)
        assert "action" not in _first(output, "form").attributes
        assert "formaction" not in _first(output, "button").attributes
        assert _first(output, "a").attributes == {}
        assert _first(output, "img").attributes == {"src": "https://example.com/ok.png"}

    def test_safe_url_attributes_are_kept(self) -> None:
        html = (
            '<form action="/submit"><button formaction="https://example.com/submit">go</button></form>'
            '<img src="https://example.com/ok.png" '
            'srcset="https://example.com/ok.png 1x, https://example.com/ok@2x.png 2x" '
            'poster="https://example.com/poster.png">'
        )
        rules = ["form", "form|action", "button", "button|formaction", "img", "img|src", "img|srcset", "img|poster"]
        output = sanitize(html, rules)
        assert _first(output, "form").attributes == {"action": "/submit"}
        assert _first(output, "button").attributes == {"formaction": "https://example.com/submit"}
        image = _first(output, "img")
        assert image.attributes["src"] == "https://example.com/ok.png"
        assert "https://example.com/ok@2x.png" in image.attributes["srcset"]
        assert image.attributes["poster"] == "https://example.com/poster.png"

    def test_safe_xlink_href_is_kept(self) -> None:
        rules = ["svg", "use", "use|xlink:href"]
        output = sanitize('<svg><use xlink:href="#a"></use></svg>', rules)
        assert _first(output, "use").attributes == {"xlink:href": "#a"}
        assert sanitize(output, rules) == output

    def test_exotic_elements(self) -> None:
        html = (
            '<head><link rel="stylesheet" href="javascript:alert(1)"></head>'
            '<body><object data="data:text/html,evil"></object>'
            '<embed src="java&#x0A;script:alert(2)">'
            '<svg><use href="javascript:alert(3)"></use><image href="data:image/svg+xml,<svg></svg>"></image></svg>'
            "</body>"
        )
        rules = [
            "html", "head", "body", "link", "link|rel", "link|href", "object", "object|data",
            "embed", "embed|src", "svg", "use", "use|href", "image", "image|href",
        ]
        output = sanitize(html, rules)
        assert _first(output, "link").attributes == {"rel": "stylesheet"}
        assert "data" not in _first(output, "object").attributes
        assert "src" not in _first(output, "embed").attributes
        self._assert_no_dangerous_urls(output)
        assert "javascript" not in output.lower()

    def test_hostile_mix(self) -> None:
        html = (
            "<div>"
            '<a href=" java\nscript:alert(1)" title="ok">x</a>'
            '<form action="jav&#x61;script:alert(2)"><button formaction="data:text/html,evil">go</button></form>'
            '<svg><a xlink:href="java\tscript:alert(3)">y</a></svg>'
            '<img src="https://example.com/ok.png" '
            'srcset="java\rscript:alert(4) 1x, https://example.com/ok@2x.png 2x" poster="data:text/html,evil">'
            "</div>"
        )
        rules = [
            "div", "a", "a|href", "a|title", "form", "form|action", "button", "button|formaction",
            "svg", "a|xlink:href", "img", "img|src", "img|srcset", "img|poster",
        ]
        self._assert_no_dangerous_urls(sanitize(html, rules))


class TestScripts(unittest.TestCase):
    def test_script_removed_without_javascript(self) -> None:
        output = sanitize("<script>alert(1)</script><p>ok</p>", ["script", "p"])
        assert _first(output, "script") is None
        assert _body(output) == "<p>ok</p>"

    def test_script_kept_with_javascript(self) -> None:
        output = sanitize("<script>alert(1)</script>", ["script"], {"allowJavaScript": True})
        assert output == "<html><head><script>alert(1)</script></head><body></body></html>"

    def test_undeclared_svg_attributes_stripped_with_javascript(self) -> None:
        output = sanitize('<svg><a xlink:href="javascript:alert(1)">x</a></svg>', ["svg", "a"], {"allowJavaScript": True})
        assert output == "<html><head></head><body><svg><a>x</a></svg></body></html>"

    def test_event_handlers_kept_with_javascript(self) -> None:
        output = sanitize('<a onclick="go()">x</a>', ["a", "a|onclick"], {"allowJavaScript": True})
        assert output == '<html><head></head><body><a onclick="go()">x</a></body></html>'


class TestStyles(unittest.TestCase):
    def test_style_removed_when_not_allowed(self) -> None:
        output = sanitize("<style>.header{margin:0}</style><p>ok</p>", ["p"])
        assert _first(output, "style") is None
        assert _body(output) == "<p>ok</p>"

    def test_style_removed_without_style_rules(self) -> None:
        assert _first(sanitize("<style>.header{margin:0}</style>", ["style"]), "style") is None

    def test_style_filtered_by_selector_and_property(self) -> None:
        output = sanitize("<style>.header{margin:0;padding:2px}</style>", ["style", "style|.header|margin"])
        assert output == "<html><head><style>.header{margin:0}</style></head><body></body></html>"

    def test_disallowed_selectors_and_properties(self) -> None:
        html = "<style>.header{margin:0;color:red}.footer{margin:1px}</style>"
        css = _first(sanitize(html, ["style", "style|.header|margin"]), "style").get_text()
        assert css == ".header{margin:0}"

    def test_import_is_dropped(self) -> None:
        html = '<style>@import url("https://example.com/x.css");.header{margin:0}</style>'
        css = _first(sanitize(html, ["style", "style|.header|margin"]), "style").get_text()
        assert css == ".header{margin:0}"

    def test_url_declarations_are_dropped(self) -> None:
        html = '<style>.header{background-image:url("https://example.com/x.png");margin:0}</style>'
        rules = ["style", "style|.header|background-image", "style|.header|margin"]
        css = _first(sanitize(html, rules), "style").get_text()
        assert css == ".header{margin:0}"

    def test_style_removed_when_nothing_survives(self) -> None:
        assert _first(sanitize("<style>.header{padding:2px}</style>", ["style", "style|.header|margin"]), "style") is None

    def test_duplicate_style_rules_raise_allowance(self) -> None:
        html = "<style>.header{margin:0}</style><style>.header{margin:1px}</style>"
        assert len(_all(sanitize(html, ["style", "style", "style|.header|margin"]), "style")) == 2
        assert len(_all(sanitize(html, ["style", "style|.header|margin"]), "style")) == 1

    def test_inline_style_filtered(self) -> None:
        output = sanitize('<p style="margin:0;color:red">ok</p>', ["p", "p|style", "style|p|margin"])
        assert _first(output, "p").attributes["style"] == "margin:0"

    def test_inline_style_wildcard(self) -> None:
        output = sanitize('<p style="margin:0;color:red">ok</p>', ["p", "p|style", "style|*|color"])
        assert _first(output, "p").attributes["style"] == "color:red"

    def test_inline_style_format_without_javascript(self) -> None:
        rules = ["p", "p|style", "style|p|color", "style|p|margin"]
        output = sanitize('<p style="color:red;margin:0">x</p>', rules)
        assert _body(output) == '<p style="color:red;margin:0">x</p>'

    def test_style_text_cannot_close_its_element(self) -> None:
        html = '<style>.x{content:"\\3c /style\\3e \\3c img src=x\\3e ";color:red}</style><p>ok</p>'
        rules = ["style", "img", "p", "style|.x|content", "style|.x|color"]
        output = sanitize(html, rules)
        assert _first(output, "style").get_text() == ".x{color:red}"
        assert _first(output, "img") is None
        assert _body(output) == "<p>ok</p>"

    def test_inline_style_dropped_when_empty(self) -> None:
        output = sanitize('<p style="color:red">ok</p>', ["p", "p|style", "style|p|margin"])
        assert _first(output, "p").attributes == {}

    def test_inline_style_exact_with_javascript(self) -> None:
        output = sanitize(
            '<p style="margin: 0; color: red !important">ok</p>',
            ["p", "p|style", "style|*|color", "style|p|margin"],
            {"allowJavaScript": True},
        )
        assert _body(output) == '<p style="margin:0;color:red">ok</p>'


class TestConvergence(unittest.TestCase):
    def test_idempotent(self) -> None:
        rules = ["p", "a"]
        once = sanitize('<p><a href="javascript:alert(1)">x</a><a>y</a></p>', rules)
        assert sanitize(once, rules) == once

    def test_single_pass_on_stable_output_is_identity(self) -> None:
        policy = compile_rules(["p", "a", "a|href", "style", "style|p|color"])
        stable = sanitize_with_policy('<style>p{color:red}</style><p><a href="/x">x</a></p>', policy)
        assert sanitize_once(stable, policy) == stable

    def test_policy_and_one_shot_forms_agree(self) -> None:
        html = '<style>.header{margin:0}</style><a href="https://example.com">x</a>'
        rules = ["style", "style|.header|margin", "a", "a|href"]
        config = {"allowCommonAttributes": True, "allowJavaScript": False}
        assert sanitize_with_policy(html, compile_rules(rules, config)) == sanitize(html, rules, config)

    def test_policy_carries_config(self) -> None:
        policy = compile_rules(["a"], {"allowCommonAttributes": True})
        assert _first(sanitize_with_policy('<a title="ok">x</a>', policy), "a").attributes == {"title": "ok"}

    def test_policy_is_reusable(self) -> None:
        policy = compile_rules(["p"])
        first = sanitize_with_policy("<p>a</p><p>b</p>", policy)
        second = sanitize_with_policy("<p>a</p><p>b</p>", policy)
        assert first == second == "<html><head></head><body><p>a</p></body></html>"

    def test_stops_at_max_passes(self) -> None:
        policy = compile_rules(["p"], SanitizerConfig(max_passes=3))
        module = importlib.import_module("trimhtml.sanitize")
        with mock.patch.object(module, "sanitize_once", side_effect=lambda html, _policy: html + "x") as once:
            with self.assertLogs("trimhtml.sanitize", level="INFO") as captured:
                result = sanitize_with_policy("a", policy)
        assert result == "axxx"
        assert once.call_count == 3
        assert any("3 passes" in line for line in captured.output)

    def test_zero_max_passes_still_runs_once(self) -> None:
        policy = compile_rules(["p"], {"maxPasses": 0})
        output = sanitize_with_policy("<div><p>x</p></div>", policy)
        assert _body(output) == "<p>x</p>"

    def test_rejects_non_policy(self) -> None:
        with self.assertRaises(TypeError):
            sanitize_with_policy("<p>x</p>", {"p": 1})  # type: ignore[arg-type]
