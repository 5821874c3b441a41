"""
Pattern-based readers for free-form decorator argument text, e.g.

    @ApiProperty({ description: 'User email', example: 'a@b.c', required: false })
    @ApiOperation({ summary: 'List users' })

These work on raw text so that they keep working when the argument is not a
clean object literal (spreads, helper calls, trailing comments).
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional

_QUOTED = r"(?P<q>['\"`])(?P<s>(?:\\.|(?!(?P=q)).)*)(?P=q)"

_DESCRIPTION = re.compile(r"\bdescription\s*:\s*" + _QUOTED, re.DOTALL)
_SUMMARY = re.compile(r"\bsummary\s*:\s*" + _QUOTED, re.DOTALL)
_EXAMPLE = re.compile(
    r"\bexample\s*:\s*(?:"
    + _QUOTED
    + r"|(?P<lit>true|false|null)\b|(?P<num>-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?))",
    re.DOTALL,
)
_REQUIRED_FALSE = re.compile(r"\brequired\s*:\s*false\b")
_ESCAPE = re.compile(r"\\(.)")
_STRIP_CHARS = re.compile(r"[{}'\"`]")
_WS = re.compile(r"\s+")

_MISSING = object()


@dataclass(frozen=True)
class PropertyDoc:
    description: str = ""
    example: Any = None
    has_example: bool = False
    required_false: bool = False


def _unescape(s: str) -> str:
    return _ESCAPE.sub(r"\1", s)


def extract_description(text: str) -> str:
    m = _DESCRIPTION.search(text or "")
    return _unescape(m.group("s")).strip() if m else ""


def extract_example(text: str) -> Any:
    """Literal example value, or the module sentinel _MISSING when absent."""
    m = _EXAMPLE.search(text or "")
    if not m:
        return _MISSING
    if m.group("q") is not None:
        return _unescape(m.group("s"))
    lit = m.group("lit")
    if lit is not None:
        return {"true": True, "false": False, "null": None}[lit]
    num = m.group("num")
    if re.fullmatch(r"-?\d+", num):
        return int(num)
    return float(num)


def is_required_false(text: str) -> bool:
    return bool(_REQUIRED_FALSE.search(text or ""))


def parse_property_doc(text: str) -> PropertyDoc:
    example = extract_example(text)
    return PropertyDoc(
        description=extract_description(text),
        example=None if example is _MISSING else example,
        has_example=example is not _MISSING,
        required_false=is_required_false(text),
    )


def extract_summary(text: str) -> str:
    """
    `summary:` value when present; otherwise the whole argument text with
    braces and quotes stripped.
    """
    if not text:
        return ""
    m = _SUMMARY.search(text)
    if m:
        return _unescape(m.group("s")).strip()
    return _WS.sub(" ", _STRIP_CHARS.sub("", text)).strip()


def clean_doc_comment(raw: Optional[str]) -> str:
    """Strip /** */ markers and leading '*' gutters from a doc block."""
    if not raw:
        return ""
    body = raw.strip()
    if body.startswith("/**"):
        body = body[3:]
    elif body.startswith("/*"):
        body = body[2:]
    if body.endswith("*/"):
        body = body[:-2]

    lines = []
    for line in body.splitlines():
        line = line.strip()
        if line.startswith("*"):
            line = line[1:].strip()
        lines.append(line)

    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines)
