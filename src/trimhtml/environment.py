"""Process-wide handle to the parsing and sanitizing libraries.

html5lib and bleach are imported lazily the first time a document is
sanitized. The resulting `Environment` is memoized and shared read-only by all
callers; each parse still gets its own parser and cleaner instances.
"""

from __future__ import annotations

import importlib
import logging
import threading
from dataclasses import dataclass
from typing import Any

from .errors import EnvironmentUnavailableError

logger = logging.getLogger(__name__)

_LOCK = threading.Lock()
_ENVIRONMENT: Environment | None = None


@dataclass(frozen=True, slots=True)
class Environment:
    html5lib: Any
    tree_builder: Any
    cleaner_class: Any
    css_sanitizer_class: Any

    def new_parser(self) -> Any:
        """Return a fresh html5lib parser producing a minidom document."""
        return self.html5lib.HTMLParser(tree=self.tree_builder, namespaceHTMLElements=True)

    def new_cleaner(self, **kwargs: Any) -> Any:
        return self.cleaner_class(**kwargs)

    def new_css_sanitizer(self, allowed_css_properties: frozenset[str]) -> Any:
        return self.css_sanitizer_class(allowed_css_properties=allowed_css_properties)


def _import(module: str, distribution: str) -> Any:
    try:
        return importlib.import_module(module)
    except ImportError as exc:
        raise EnvironmentUnavailableError(distribution, str(exc)) from exc


def _load_environment() -> Environment:
    html5lib = _import("html5lib", "html5lib")
    sanitizer = _import("bleach.sanitizer", "bleach")
    css_sanitizer = _import("bleach.css_sanitizer", "bleach[css]")
    logger.debug("Loaded html5lib %s", getattr(html5lib, "__version__", "?"))
    return Environment(
        html5lib=html5lib,
        tree_builder=html5lib.getTreeBuilder("dom"),
        cleaner_class=sanitizer.Cleaner,
        css_sanitizer_class=css_sanitizer.CSSSanitizer,
    )


def get_environment() -> Environment:
    """Return the shared environment, creating it on first use.

    Raises `EnvironmentUnavailableError` when a required library is missing.
    A failed attempt is not memoized.
    """
    global _ENVIRONMENT
    environment = _ENVIRONMENT
    if environment is not None:
        return environment
    with _LOCK:
        if _ENVIRONMENT is None:
            _ENVIRONMENT = _load_environment()
        return _ENVIRONMENT
