"""
Build script for TrimHTML with optional mypyc compilation.

Usage:
    # Pure Python build (default)
    python -m build

    # Compiled with mypyc
    TRIMHTML_USE_MYPYC=1 pip install .
"""

import os
import sys
from pathlib import Path

from setuptools import setup

USE_MYPYC = os.environ.get("TRIMHTML_USE_MYPYC", "0") == "1"

# Modules that run once per element or attribute on every pass.
# node.py is excluded: mypyc rejects its untyped attribute slots.
MYPYC_MODULES = [
    "src/trimhtml/urls.py",
    "src/trimhtml/serialize.py",
    "src/trimhtml/enforce.py",
]


def build_with_mypyc() -> list:
    """Build extension modules using mypyc."""
    try:
        from mypyc.build import mypycify
    except ImportError:
        print("ERROR: mypyc is not installed. Install with: pip install mypy", file=sys.stderr)
        print("Or install with mypyc support: pip install trimhtml[mypyc]", file=sys.stderr)
        sys.exit(1)

    missing = [module for module in MYPYC_MODULES if not Path(module).exists()]
    if missing:
        print(f"ERROR: Module not found: {', '.join(missing)}", file=sys.stderr)
        sys.exit(1)

    print(f"Compiling {len(MYPYC_MODULES)} modules with mypyc:")
    for module in MYPYC_MODULES:
        print(f"  - {module}")

    return mypycify(
        MYPYC_MODULES,
        opt_level=os.environ.get("MYPYC_OPT_LEVEL", "3"),
        debug_level=os.environ.get("MYPYC_DEBUG_LEVEL", "0"),
        verbose=True,
        separate=False,
        multi_file=False,
    )


if __name__ == "__main__":
    ext_modules = build_with_mypyc() if USE_MYPYC else []
    setup(ext_modules=ext_modules)
