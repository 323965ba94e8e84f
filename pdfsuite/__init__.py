"""PDF page tools: merge, split, organize, watermark and protect uploaded documents.

``pdfsuite.app`` and ``pdfsuite.create_application`` are resolved on first
access so the PDF modules can be imported without building the web app.
"""

from typing import Any

__version__ = "0.1.0"

__all__ = ["__version__", "app", "create_application"]

_LAZY_NAMES = frozenset({"app", "create_application"})


def __getattr__(name: str) -> Any:
    if name not in _LAZY_NAMES:
        raise AttributeError(f"module 'pdfsuite' has no attribute {name!r}")

    from . import main  # pragma: no cover - exercised indirectly

    value = getattr(main, name)
    globals()[name] = value
    return value
