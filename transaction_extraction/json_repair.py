"""Recover and repair JSON structures from raw model output.

Language models wrap JSON in prose, markdown fences or reasoning blocks,
and they regularly emit near-JSON (trailing commas, bare keys, Python
literals). The helpers here turn such output into a parsed value:

- :func:`recover_json` slices the first balanced object or array out of
  the text.
- :func:`repair_json` applies permissive textual fixes to a slice that
  still fails to parse.
- :func:`parse_json_payload` chains the two with :func:`json.loads` and
  returns a :class:`~transaction_extraction.results.ParseFailure` instead
  of raising.
"""

from __future__ import annotations

import json
import re
from typing import Any

from .logging_setup import get_logger, preview
from .results import ParseFailure

_logger = get_logger("transaction_extraction.json_repair")

_FENCE_RE = re.compile(
    r"^[ \t]*```[ \t]*[A-Za-z0-9_+-]*[ \t]*\r?\n(.*?)^[ \t]*```",
    re.DOTALL | re.MULTILINE,
)
_THINK_RE = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)

_OPENERS = "{["
_CLOSERS = "}]"

# Double-quoted or single-quoted string literals, with backslash escapes.
_STRING_RE = re.compile(r'"(?:[^"\\]|\\.)*"|\'(?:[^\'\\]|\\.)*\'', re.DOTALL)

_LINE_COMMENT_RE = re.compile(r"//[^\n]*")
_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_PY_LITERALS = (
    (re.compile(r"\bNone\b"), "null"),
    (re.compile(r"\bTrue\b"), "true"),
    (re.compile(r"\bFalse\b"), "false"),
)
_BARE_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_][\w-]*)(\s*:)")
_TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
_ADJACENT_OBJECTS_RE = re.compile(r"\}(\s*)\{")
_ADJACENT_ARRAYS_RE = re.compile(r"\](\s*)\[")
# A value that ended right before whitespace and an opening quote.
_VALUE_END_RE = re.compile(r'(?:"|\d|[}\]]|\btrue|\bfalse|\bnull)\s+$')
_LEADING_CONTAINER_RE = re.compile(r"^\s+[{\[]")


def strip_reasoning(text: str) -> str:
    """Remove ``<think>…</think>`` blocks emitted by reasoning models."""

    return _THINK_RE.sub("", text)


def _scan_balanced(text: str) -> str | None:
    start = -1
    for i, ch in enumerate(text):
        if ch in _OPENERS:
            start = i
            break
    if start < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def recover_json(text: str) -> str | None:
    """Return the first balanced JSON object/array slice in ``text``, or ``None``.

    When the text is not itself a JSON container and contains a fenced code
    block, the fence interior is searched first. Brackets inside
    double-quoted string literals do not count toward balance. Valid JSON
    containers are returned unchanged.
    """

    if not text:
        return None
    if text.lstrip()[:1] in ("{", "["):
        try:
            json.loads(text)
        except ValueError:
            pass
        else:
            return text
    else:
        fence = _FENCE_RE.search(text)
        if fence is not None:
            found = _scan_balanced(fence.group(1))
            if found is not None:
                return found
    return _scan_balanced(text)


def _requote(literal: str) -> str:
    """Rewrite a single-quoted literal as a double-quoted JSON string."""

    body = literal[1:-1]
    out: list[str] = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body):
            nxt = body[i + 1]
            out.append(nxt if nxt == "'" else ch + nxt)
            i += 2
            continue
        out.append('\\"' if ch == '"' else ch)
        i += 1
    return '"' + "".join(out) + '"'


def _repair_structure(chunk: str) -> str:
    chunk = _BLOCK_COMMENT_RE.sub("", chunk)
    chunk = _LINE_COMMENT_RE.sub("", chunk)
    for pattern, replacement in _PY_LITERALS:
        chunk = pattern.sub(replacement, chunk)
    chunk = _BARE_KEY_RE.sub(r'\1"\2"\3', chunk)
    chunk = _TRAILING_COMMA_RE.sub(r"\1", chunk)
    chunk = _ADJACENT_OBJECTS_RE.sub(r"},\1{", chunk)
    chunk = _ADJACENT_ARRAYS_RE.sub(r"],\1[", chunk)
    return chunk


def repair_json(text: str) -> str:
    """Apply permissive fixes that turn near-JSON into JSON.

    Outside string literals: comments are removed, Python literals become
    JSON literals, bare identifier keys are quoted, trailing commas are
    dropped and missing commas between adjacent values are inserted.
    Single-quoted string literals become double-quoted ones. The result is
    not guaranteed to parse.
    """

    out: list[str] = []
    pos = 0
    prev_was_string = False

    def emit_structure(chunk: str) -> None:
        fixed = _repair_structure(chunk)
        if prev_was_string and _LEADING_CONTAINER_RE.match(fixed):
            fixed = "," + fixed
        out.append(fixed)

    for m in _STRING_RE.finditer(text):
        if m.start() > pos:
            emit_structure(text[pos : m.start()])
            prev_was_string = False
        literal = m.group(0)
        if literal.startswith("'"):
            literal = _requote(literal)
        if _VALUE_END_RE.search("".join(out[-2:])):
            out.append(",")
        out.append(literal)
        prev_was_string = True
        pos = m.end()
    if pos < len(text):
        emit_structure(text[pos:])
    return "".join(out)


def _loads(candidate: str) -> Any:
    # strict=False tolerates raw control characters inside strings.
    return json.loads(candidate, strict=False)


def parse_json_payload(text: str) -> Any | ParseFailure:
    """Parse the JSON payload embedded in a model response.

    Returns the decoded value, or a :class:`ParseFailure` carrying the
    reason and the offending text. Never raises.
    """

    cleaned = strip_reasoning(text)
    candidate = recover_json(cleaned)
    if candidate is None:
        candidate = recover_json(repair_json(cleaned))
        if candidate is None:
            _logger.debug("json_repair:no_structure text=%s", preview(cleaned))
            return ParseFailure(reason="no JSON object or array found", payload=text)

    try:
        return _loads(candidate)
    except json.JSONDecodeError:
        _logger.debug("json_repair:repairing candidate=%s", preview(candidate))

    try:
        return _loads(repair_json(candidate))
    except json.JSONDecodeError as exc:
        last_error = exc

    # Brackets inside single-quoted strings can cut the first slice short.
    whole = recover_json(repair_json(cleaned))
    if whole is not None and whole != candidate:
        try:
            return _loads(whole)
        except json.JSONDecodeError as exc:
            last_error = exc

    return ParseFailure(
        reason=(
            f"invalid JSON after repair: {last_error.msg} "
            f"(line {last_error.lineno}, column {last_error.colno})"
        ),
        payload=candidate,
    )
