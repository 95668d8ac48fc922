"""Strip tool-call leakage from the model's free text.

Smaller models regularly echo their own tool calls into the text channel
(``scheduleMeeting(type="visit")``, ``<tool_call>{...}</tool_call>``,
``**showProjects**``...).  Each known shape is a named recognizer in
``LEAKAGE_SHAPES``; :func:`sanitize` removes every match of every shape,
normalizes whitespace, and repeats until the text stops changing.  Because
the loop only ends at a fixed point, ``sanitize(sanitize(x)) == sanitize(x)``.

This is a best-effort cleanup: an unknown shape is left in the text, never
turned into an error.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from concierge.tools.declarations import TOOL_NAMES

logger = logging.getLogger(__name__)

_NAMES = "|".join(sorted(TOOL_NAMES, key=len, reverse=True))
_TOOL = rf"(?:{_NAMES})"

# Keys that open the argument objects models leak ({"name": ..., "args": ...}).
_ARG_KEYS = (
    "name|arguments|args|parameters|type|modality|address|path|message|"
    "contact|topic|content|category|interest|details|tool|function"
)
# A flat object, or one with a single level of nested objects.
_JSON_OBJECT = rf"\{{\s*\"(?:{_ARG_KEYS})\"\s*:(?:[^{{}}]|\{{[^{{}}]*\}})*\}}"


@dataclass(frozen=True)
class LeakageShape:
    name: str
    pattern: re.Pattern[str]
    replacement: str = ""


LEAKAGE_SHAPES: tuple[LeakageShape, ...] = (
    LeakageShape(
        "xml_tag",
        re.compile(
            r"<(tool_call|tool_use|function_calls?|function|invoke)\b[^>]*>.*?</\1\s*>"
            r"|</?(?:tool_call|tool_use|function_calls?|function|invoke|parameter)\b[^>]*>",
            re.IGNORECASE | re.DOTALL,
        ),
    ),
    LeakageShape(
        "fenced_block",
        re.compile(
            r"```[ \t]*(?:tool_call|tool_code|function_call)\b.*?(?:```|\Z)",
            re.IGNORECASE | re.DOTALL,
        ),
    ),
    LeakageShape(
        "bracket_marker",
        re.compile(
            rf"\[\s*(?:tool_calls?|function_calls?|{_TOOL})\b[^\]\n]*\]",
            re.IGNORECASE,
        ),
    ),
    LeakageShape(
        "call_syntax",
        re.compile(
            rf"(?:\b(?:functions|default_api|tools)\.)?\b{_TOOL}\s*"
            r"\((?:[^()]|\([^()]*\))*\)",
        ),
    ),
    LeakageShape(
        "json_fragment",
        re.compile(rf"\[\s*{_JSON_OBJECT}(?:\s*,\s*{_JSON_OBJECT})*\s*\]|{_JSON_OBJECT}"),
    ),
    LeakageShape(
        "bold_mention",
        re.compile(rf"(\*\*|__|`)\s*{_TOOL}\s*\1"),
    ),
    LeakageShape(
        "boilerplate",
        re.compile(
            r"(?:\b(?:vou|irei|posso|devo)\s+(?:usar|chamar|utilizar|acionar|executar)"
            r"|\b(?:chamando|usando|utilizando|acionando|executando))"
            r"\s+(?:a\s+|o\s+)?(?:ferramenta|fun[çc][ãa]o|tool|comando)\b[^.!?\n]*[.!?]?"
            r"|\b(?:I(?:'ll| will| am going to)|Let me)\s+(?:call|use|invoke|run)\s+the\s+"
            r"[^.!?\n]*?\b(?:tool|function)\b[^.!?\n]*[.!?]?"
            r"|\bUSE\s+APENAS\s+quando\b[^.\n]*\.?",
            re.IGNORECASE,
        ),
    ),
    LeakageShape(
        "standalone_line",
        re.compile(rf"^[ \t]*(?:[-*•>][ \t]*)?{_TOOL}[ \t]*:?[ \t]*$", re.MULTILINE),
    ),
    LeakageShape(
        "trailing_name",
        re.compile(rf"[ \t]*\b{_TOOL}[ \t]*[.!:]?\s*\Z"),
    ),
)

_SPACES_RE = re.compile(r"[ \t]{2,}")
_TRAILING_SPACE_RE = re.compile(r"[ \t]+$", re.MULTILINE)
_BLANK_LINES_RE = re.compile(r"\n{3,}")
_SPACE_BEFORE_PUNCT_RE = re.compile(r"[ \t]+([,.!?;:])")


def _normalize_whitespace(text: str) -> str:
    text = _TRAILING_SPACE_RE.sub("", text)
    text = _SPACES_RE.sub(" ", text)
    text = _SPACE_BEFORE_PUNCT_RE.sub(r"\1", text)
    text = _BLANK_LINES_RE.sub("\n\n", text)
    return text.strip()


def strip_shape(shape: LeakageShape, text: str) -> str:
    """Remove every match of a single shape (no whitespace normalization)."""
    return shape.pattern.sub(shape.replacement, text)


def sanitize(text: str | None) -> str:
    """Return *text* with every recognized leakage shape removed."""
    if not isinstance(text, str):
        return ""

    current = text
    while True:
        cleaned = current
        for shape in LEAKAGE_SHAPES:
            stripped = strip_shape(shape, cleaned)
            if stripped != cleaned:
                logger.debug("Sanitizer removed %s leakage", shape.name)
                cleaned = stripped
        cleaned = _normalize_whitespace(cleaned)
        if cleaned == current:
            return cleaned
        current = cleaned
