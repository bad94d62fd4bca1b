#!/usr/bin/env python3
"""
Random fuzzer for the TrimHTML sanitizer.
Generates hostile HTML and random rule sets, then checks that the output
honors every guarantee: budgets, attribute allowlists, URL schemes, CSS
allowlists and idempotence.
"""

import argparse
import random
import string
import sys
import time
import traceback
from collections import Counter

from trimhtml import compile_rules, sanitize_with_policy
from trimhtml.attributes import allowed_attributes
from trimhtml.constants import STRUCTURAL_TAGS, URL_ATTRIBUTES
from trimhtml.parser import parse_document
from trimhtml.urls import is_dangerous_url_value

# Tags that may appear in rules. Table parts are left out because the parser
# synthesizes them around their content.
RULE_TAGS = [
    "div", "span", "p", "a", "img", "b", "i", "em", "strong", "ul", "ol", "li",
    "h1", "h2", "h3", "blockquote", "pre", "code", "section", "article", "style",
    "script", "svg", "br", "hr",
]

INPUT_TAGS = RULE_TAGS + [
    "iframe", "object", "embed", "form", "input", "button", "textarea", "select",
    "template", "noscript", "math", "table", "td", "title", "meta", "link", "base",
    "video", "audio", "source", "details", "summary", "marquee", "xmp",
]

ATTRIBUTES = [
    "id", "class", "style", "href", "src", "srcset", "title", "alt", "action",
    "formaction", "poster", "xlink:href", "background", "data", "target", "rel",
    "onclick", "onload", "onerror", "ONMOUSEOVER", "data-x", "aria-label",
]

PROPERTIES = ["color", "margin", "padding", "background", "background-image", "font-size", "display"]

SELECTORS = ["*", ".header", "p", "a", "div", "#main", ".a, .b"]

DANGEROUS_URLS = [
    "javascript:alert(1)",
    "JaVaScRiPt:alert(1)",
    " \tjavascript:alert(1)",
    "java\x00script:alert(1)",
    "java\nscript:alert(1)",
    "&#106;avascript:alert(1)",
    "&#x6A;avascript:alert(1)",
    "&#0000106avascript:alert(1)",
    "data:text/html,<script>alert(1)</script>",
    "DATA:image/svg+xml;base64,AAAA",
    "\x01javascript:alert(1)",
]

SAFE_URLS = ["https://example.com/", "/relative/path", "#anchor", "mailto:a@example.com", "image.png 2x"]

CSS_VALUES = [
    "red",
    "0",
    "1px 2px",
    "url(javascript:alert(1))",
    'url("x.png")',
    "image-set(url(x.png) 1x)",
    "calc(1px + 2px)",
    "expression(alert(1))",
    "red !important",
    "",
]

TEXT = [
    "hello", "&amp;", "&lt;script&gt;", "<", ">", " ", "&nbsp;", "\u200b",
    "</p>", "<!-- c -->", "<![CDATA[x]]>",
]


def random_string(min_len=0, max_len=20):
    """Generate random ASCII string."""
    length = random.randint(min_len, max_len)
    return "".join(random.choices(string.ascii_letters + string.digits, k=length))


def fuzz_url():
    strategies = [
        lambda: random.choice(DANGEROUS_URLS),
        lambda: random.choice(SAFE_URLS),
        lambda: random.choice(SAFE_URLS) + ", " + random.choice(DANGEROUS_URLS) + " 2x",
        lambda: random_string(0, 10),
    ]
    return random.choice(strategies)()


def fuzz_declarations():
    count = random.randint(0, 4)
    return ";".join(f"{random.choice(PROPERTIES)}:{random.choice(CSS_VALUES)}" for _ in range(count))


def fuzz_attribute():
    name = random.choice(ATTRIBUTES)
    if name == "style":
        value = fuzz_declarations()
    elif name.lower() in URL_ATTRIBUTES:
        value = fuzz_url()
    elif name.lower().startswith("on"):
        value = "alert(1)"
    else:
        value = random_string(0, 8)
    value = value.replace('"', "&quot;")
    return f'{name}="{value}"'


def fuzz_stylesheet():
    rules = []
    for _ in range(random.randint(0, 4)):
        variants = [
            lambda: f"{random.choice(SELECTORS)}{{{fuzz_declarations()}}}",
            lambda: "@import url(evil.css);",
            lambda: f"@media screen{{{random.choice(SELECTORS)}{{{fuzz_declarations()}}}}}",
            lambda: "/* comment */",
            lambda: "}}{{",
        ]
        rules.append(random.choice(variants)())
    return "".join(rules)


def fuzz_element(depth=0, max_depth=6):
    """Generate a random element with random attributes and children."""
    tag = random.choice(INPUT_TAGS)
    attrs = " ".join(fuzz_attribute() for _ in range(random.randint(0, 3)))
    open_tag = f"<{tag} {attrs}>" if attrs else f"<{tag}>"
    if not attrs and random.random() < 0.3:
        open_tag = open_tag.upper()

    if tag == "style":
        return f"{open_tag}{fuzz_stylesheet()}</{tag}>"
    if tag == "script":
        return f"{open_tag}alert({random.randint(0, 9)})</{tag}>"

    children = []
    if depth < max_depth:
        for _ in range(random.randint(0, 3)):
            if random.random() < 0.4:
                children.append(random.choice(TEXT))
            else:
                children.append(fuzz_element(depth + 1, max_depth))
    close = f"</{tag}>" if random.random() < 0.9 else ""
    return open_tag + "".join(children) + close


def generate_fuzzed_html():
    parts = [fuzz_element() for _ in range(random.randint(1, 5))]
    if random.random() < 0.2:
        parts.insert(0, "<!DOCTYPE html>")
    if random.random() < 0.1:
        parts.append("<div>" * random.randint(200, 2000))
    return "".join(parts)


def generate_rules():
    rules = [random.choice(RULE_TAGS) for _ in range(random.randint(0, 12))]
    for _ in range(random.randint(0, 6)):
        rules.append(f"{random.choice(RULE_TAGS)}|{random.choice(ATTRIBUTES)}")
    for _ in range(random.randint(0, 4)):
        rules.append(f"style|{random.choice(SELECTORS)}|{random.choice(PROPERTIES)}")
    random.shuffle(rules)
    return rules


def generate_config():
    return {
        "allowCommonAttributes": random.random() < 0.3,
        "allowJavaScript": random.random() < 0.1,
    }


def check_invariants(output, policy):
    """Return a list of human-readable violations found in `output`."""
    violations = []
    document = parse_document(output)
    root = document.document_element
    elements = list(root.iter_elements()) if root is not None else []
    allow_javascript = policy.config.allow_javascript

    counts = Counter(element.tag_name.lower() for element in elements)
    for tag, count in counts.items():
        if tag in STRUCTURAL_TAGS:
            continue
        if count > policy.budget_for(tag):
            violations.append(f"{count} <{tag}> elements, budget {policy.budget_for(tag)}")

    for element in elements:
        tag = element.tag_name.lower()
        allowed = allowed_attributes(tag, policy)
        for name, value in element.attributes.items():
            lowered = name.lower()
            if lowered not in allowed:
                violations.append(f"attribute {name!r} on <{tag}> is not allowed")
            if not allow_javascript and lowered.startswith("on"):
                violations.append(f"event handler {name!r} on <{tag}>")
            if not allow_javascript and lowered in URL_ATTRIBUTES and is_dangerous_url_value(lowered, value):
                violations.append(f"dangerous {name}={value!r} on <{tag}>")
            if lowered == "style" and "url(" in value.lower():
                violations.append(f"url() in inline style on <{tag}>")
        if tag == "style" and "url(" in element.get_text().lower():
            violations.append("url() in <style>")

    if sanitize_with_policy(output, policy) != output:
        violations.append("output is not a fixed point")
    return violations


def run_fuzzer(num_tests=1000, seed=None, verbose=False, save_failures=False):
    """Run the fuzzer for a specified number of tests."""
    if seed is not None:
        random.seed(seed)

    crashes = []
    violations = []
    hangs = []
    successes = 0

    print(f"Fuzzing trimhtml with {num_tests} test cases...")
    start_time = time.time()

    for i in range(num_tests):
        html = generate_fuzzed_html()
        rules = generate_rules()
        config = generate_config()

        if verbose and i % 100 == 0:
            print(f"  Test {i}/{num_tests}...")

        try:
            policy = compile_rules(rules, config)
            start = time.perf_counter()
            output = sanitize_with_policy(html, policy)
            elapsed = time.perf_counter() - start
            problems = check_invariants(output, policy)
        except Exception as e:
            crashes.append({
                "test_num": i,
                "html": html,
                "rules": rules,
                "error": str(e),
                "traceback": traceback.format_exc(),
            })
            if verbose:
                print(f"  CRASH: Test {i}: {e}")
            continue

        if problems:
            violations.append({"test_num": i, "html": html, "rules": rules, "problems": problems})
            if verbose:
                print(f"  VIOLATION: Test {i}: {problems[0]}")
        elif elapsed > 5.0:
            hangs.append({"test_num": i, "html": html, "time": elapsed})
            if verbose:
                print(f"  HANG: Test {i} took {elapsed:.2f}s")
        else:
            successes += 1

    elapsed_total = time.time() - start_time

    print(f"\n{'=' * 60}")
    print("FUZZING RESULTS: trimhtml")
    print(f"{'=' * 60}")
    print(f"Total tests:    {num_tests}")
    print(f"Successes:      {successes}")
    print(f"Crashes:        {len(crashes)}")
    print(f"Violations:     {len(violations)}")
    print(f"Hangs (>5s):    {len(hangs)}")
    print(f"Total time:     {elapsed_total:.2f}s")
    print(f"Tests/second:   {num_tests / elapsed_total:.1f}")

    for crash in crashes[:10]:
        print(f"\nCRASH #{crash['test_num']}:")
        print(f"  HTML: {crash['html'][:200]!r}...")
        print(f"  Rules: {crash['rules']!r}")
        print(f"  Error: {crash['error']}")

    for violation in violations[:10]:
        print(f"\nVIOLATION #{violation['test_num']}:")
        print(f"  HTML: {violation['html'][:200]!r}...")
        print(f"  Rules: {violation['rules']!r}")
        for problem in violation["problems"]:
            print(f"  - {problem}")

    if save_failures and (crashes or violations or hangs):
        filename = f"fuzz_failures_trimhtml_{int(time.time())}.txt"
        with open(filename, "w", encoding="utf-8") as f:
            f.write(f"Seed: {seed}\n\n")
            for crash in crashes:
                f.write(f"=== CRASH #{crash['test_num']} ===\n")
                f.write(f"HTML:\n{crash['html']}\nRules: {crash['rules']!r}\n")
                f.write(f"Traceback:\n{crash['traceback']}\n\n")
            for violation in violations:
                f.write(f"=== VIOLATION #{violation['test_num']} ===\n")
                f.write(f"HTML:\n{violation['html']}\nRules: {violation['rules']!r}\n")
                f.write("\n".join(violation["problems"]) + "\n\n")
            for hang in hangs:
                f.write(f"=== HANG #{hang['test_num']} ({hang['time']:.2f}s) ===\n")
                f.write(f"HTML:\n{hang['html']}\n\n")
        print(f"\nFailures saved to {filename}")

    return not crashes and not violations and not hangs


def main():
    parser = argparse.ArgumentParser(description="Fuzz the TrimHTML sanitizer with hostile input")
    parser.add_argument(
        "--num-tests", "-n",
        type=int,
        default=1000,
        help="Number of test cases to generate (default: 1000)",
    )
    parser.add_argument(
        "--seed", "-s",
        type=int,
        default=None,
        help="Random seed for reproducibility",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "--save-failures",
        action="store_true",
        help="Save failures to a file",
    )
    parser.add_argument(
        "--sample",
        type=int,
        metavar="N",
        help="Just print N sample documents and rule sets (no sanitizing)",
    )

    args = parser.parse_args()

    if args.sample:
        if args.seed is not None:
            random.seed(args.seed)
        for i in range(args.sample):
            print(f"=== Sample {i + 1} ===")
            print(generate_rules())
            print(generate_fuzzed_html())
            print()
        return

    success = run_fuzzer(
        args.num_tests,
        seed=args.seed,
        verbose=args.verbose,
        save_failures=args.save_failures,
    )

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
