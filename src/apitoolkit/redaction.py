"""
apitoolkit.redaction

Field-level redaction for captured bodies and headers.

Responsibilities:
- Replace values selected by JSONPath expressions in JSON bodies.
- Replace values of selected headers (case-insensitive).
- Never fail: malformed bodies pass through untouched.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from functools import lru_cache

from jsonpath_ng import JSONPath
from jsonpath_ng.ext import parse as parse_jsonpath

from apitoolkit.observability.logging import get_logger

log = get_logger(__name__)

REDACTED = "[CLIENT_REDACTED]"


@lru_cache(maxsize=512)
def _compile(path: str) -> JSONPath | None:
    try:
        return parse_jsonpath(path)
    except Exception as e:  # jsonpath-ng raises plain Exception subclasses from its lexer/parser
        log.warning("invalid_redaction_path", path=path, error=str(e))
        return None


def redact_json(body: bytes, paths: Iterable[str] | None) -> bytes:
    """
    Replace every node matched by `paths` with the redaction sentinel.

    Keys stay present; only values change. Returns `body` unchanged when there is
    nothing to redact, when `body` is not valid UTF-8 JSON, or when it is nested too
    deeply to walk (fails open).
    """

    paths = list(paths or [])
    if not paths or not body:
        return body

    try:
        document = json.loads(body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError, RecursionError):
        return body

    try:
        for path in paths:
            expr = _compile(path)
            if expr is None:
                continue
            try:
                # update() mutates in place and returns the (possibly replaced) root.
                document = expr.update(document, REDACTED)
            except (TypeError, KeyError, IndexError, AttributeError) as e:
                log.warning("redaction_path_failed", path=path, error=str(e))
        return json.dumps(document, indent=2, ensure_ascii=False).encode("utf-8")
    except (RecursionError, ValueError) as e:
        # Nesting deep enough to exhaust the stack while walking or re-encoding.
        log.warning("redaction_failed", error=type(e).__name__)
        return body


def redact_headers(
    headers: Mapping[str, list[str]], keys: Iterable[str] | None
) -> dict[str, list[str]]:
    redact = {k.lower() for k in (keys or [])}
    return {
        name: [REDACTED] if name.lower() in redact else list(values)
        for name, values in headers.items()
    }


# --- Module Notes -----------------------------------------------------------
# Output uses 2-space indentation and keeps input key order (dicts are insertion
# ordered), so redacted bodies diff cleanly against the originals.
