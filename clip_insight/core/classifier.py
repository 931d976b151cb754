"""
Local clipping classification.

Pure heuristics, no I/O. Predicates run in a fixed order and the first
match wins:
1. Code - shebangs, keyword-led declarations, statement structure
2. Link - URLs, email addresses, filesystem paths
3. Data - JSON values, bare numbers, CSV/TSV blocks
4. Text - multi-word prose
5. Unknown - everything else
"""

import json
import re
from typing import List

from .categories import Category

# Lines that only appear in source code
_CODE_LINE_PATTERNS = [
    re.compile(r"^\s*(async\s+)?def\s+\w+\s*\(.*\)\s*(->\s*[^:]+)?:\s*$"),
    re.compile(r"^\s*class\s+\w+\s*(\(.*\))?\s*[:{]\s*$"),
    re.compile(r"^\s*(export\s+)?(async\s+)?function\b\s*\w*\s*\("),
    re.compile(r"^\s*import\s+[\w.]+(\s+as\s+\w+)?(\s*,\s*[\w.]+)*;?\s*$"),
    re.compile(r"^\s*import\s+.+\s+from\s+['\"].+['\"];?\s*$"),
    re.compile(r"^\s*from\s+[\w.]+\s+import\s+[\w.*, ()]+\s*$"),
    re.compile(r"^\s*#include\s*[<\"]"),
    re.compile(r"^\s*(const|let|var)\s+\w+\s*=.*$"),
    re.compile(r"^\s*(public|private|protected|static)\s+[\w<>\[\], ]+\s+\w+\s*\("),
    re.compile(r"^\s*(if|for|while|switch)\s*\(.*\)\s*\{?\s*$"),
    re.compile(r"^\s*(fn|func)\s+\w+\s*\("),
    re.compile(r"^\s*package\s+[\w.]+;?\s*$"),
]

_URL_RE = re.compile(r"^(?:[a-zA-Z][a-zA-Z0-9+.-]*://\S+|www\.\S+\.\S+)$")
_EMAIL_RE = re.compile(r"^(?:mailto:)?[\w.+-]+@[\w-]+(?:\.[\w-]+)+$")
_ABSOLUTE_PATH_RE = re.compile(r"^(?:~|\.{1,2})?/[^\s/]+\S*$|^[A-Za-z]:\\\S*$")
_RELATIVE_PATH_RE = re.compile(r"^[\w.-]+(?:/[\w.-]+)+\.\w{1,8}$")

_NUMBER_RE = re.compile(
    r"^[+-]?[$€£¥]?(?:"
    r"0[xX][0-9a-fA-F]+"
    r"|(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?(?:[eE][+-]?\d+)?"
    r"|\.\d+"
    r")%?$"
)

_PROSE_ENDINGS = (".", "!", "?")
_SENTENCE_PUNCTUATION = re.compile(r"[.!?,;:]")
_BULLET_RE = re.compile(r"^\s*(?:[-*+•]|\d+[.)])\s")
_WORD_RE = re.compile(r"[^\W\d_]", re.UNICODE)


def classify_locally(content: str) -> Category:
    """Classify clipping content without any network or disk access.

    Always returns a Category; UNKNOWN is a normal outcome.
    """
    if not content or not content.strip():
        return Category.UNKNOWN

    text = content.strip()

    if _looks_like_code(text):
        return Category.CODE
    if _looks_like_link(text):
        return Category.LINK
    if _looks_like_data(text):
        return Category.DATA
    if _looks_like_text(text):
        return Category.TEXT
    return Category.UNKNOWN


def _non_empty_lines(text: str) -> List[str]:
    return [line for line in text.splitlines() if line.strip()]


def _parses_as_json(text: str) -> bool:
    try:
        json.loads(text)
    except (ValueError, RecursionError):
        # Nesting too deep for the decoder is not usable data
        return False
    return True


def _looks_like_code(text: str) -> bool:
    if text.startswith("#!"):
        return True

    # A JSON document has braces but is data
    if text[0] in "{[" and _parses_as_json(text):
        return False

    lines = _non_empty_lines(text)
    for line in lines:
        if any(pattern.match(line) for pattern in _CODE_LINE_PATTERNS):
            return True

    semicolon_lines = sum(1 for line in lines if line.rstrip().endswith(";"))
    if semicolon_lines >= 2:
        return True

    has_braces = "{" in text and text.count("{") == text.count("}")
    if has_braces and semicolon_lines >= 1:
        return True

    return _is_indented_block(lines)


def _is_indented_block(lines: List[str]) -> bool:
    """Multi-line, mostly indented, and nothing reads like prose."""
    if len(lines) < 3:
        return False
    if any(_BULLET_RE.match(line) for line in lines):
        return False
    if any(line.rstrip().endswith(_PROSE_ENDINGS) for line in lines):
        return False
    indented = sum(1 for line in lines if line.startswith(("  ", "\t")))
    return indented * 2 >= len(lines)


def _is_link_token(token: str) -> bool:
    token = token.strip("<>()[]\"'")
    if not token:
        return False
    return bool(
        _URL_RE.match(token)
        or _EMAIL_RE.match(token)
        or _ABSOLUTE_PATH_RE.match(token)
        or _RELATIVE_PATH_RE.match(token)
    )


def _looks_like_link(text: str) -> bool:
    lines = _non_empty_lines(text)
    # One link per line, e.g. a pasted list of URLs
    if all(len(line.split()) == 1 and _is_link_token(line.strip()) for line in lines):
        return True

    tokens = text.split()
    link_tokens = sum(1 for token in tokens if _is_link_token(token))
    return link_tokens > 0 and link_tokens * 2 >= len(tokens)


def _looks_like_data(text: str) -> bool:
    if _parses_as_json(text):
        return True
    if _NUMBER_RE.match(text):
        return True
    return _is_delimited_table(text)


def _is_delimited_table(text: str) -> bool:
    lines = _non_empty_lines(text)
    if len(lines) < 2:
        return False
    if any(line.rstrip().endswith(_PROSE_ENDINGS) for line in lines):
        return False
    for delimiter in (",", "\t"):
        columns = {len(line.split(delimiter)) for line in lines}
        if len(columns) == 1 and columns.pop() >= 2:
            return True
    return False


def _looks_like_text(text: str) -> bool:
    words = [token for token in text.split() if _WORD_RE.search(token)]
    if len(words) < 2:
        return False
    return len(words) >= 3 or bool(_SENTENCE_PUNCTUATION.search(text))
