"""
Prompt templates for remote calls.
"""

from typing import Sequence

from .categories import Category

_CATEGORY_NAMES = "|".join(category.value for category in Category)

CLASSIFICATION_PROMPT = f"""
You classify clipboard contents.
Return JSON only. No markdown. No explanation.

Schema:
{{
  "category": "{_CATEGORY_NAMES}",
  "summary": "one short sentence describing the clipping"
}}

Rules:
- Choose exactly one category.
- code: source code, shell commands, config snippets.
- link: URLs, email addresses, file paths.
- data: JSON, numbers, tables, CSV.
- text: prose, notes, messages.
- unknown: anything else.
""".strip()

CONNECTION_TEST_PROMPT = "Reply with the single word OK."

REUSABLE_PROMPT_PROMPT = """
Decide whether the clipboard text below is a reusable prompt for a language
model (an instruction someone would paste again, as opposed to one-off content).
Return JSON only. No markdown. No explanation.

Schema:
{
  "reusable": true,
  "tags": ["short", "lowercase", "tags"]
}

Use at most 5 tags. Use an empty list when reusable is false.
""".strip()

GROUPING_PROMPT = """
Group the numbered clipboard items below by topic or purpose.
Return JSON only. No markdown. No explanation.

Schema:
{
  "groups": [
    {"label": "short group name", "members": [0, 2]}
  ]
}

Rules:
- Every item index must appear in exactly one group.
- Use only the indices shown.
- A group may have a single member.
""".strip()


def format_clippings(clippings: Sequence[str], max_chars: int) -> str:
    """Enumerate clippings as `[i] text`, each truncated to max_chars."""
    lines = []
    for index, clipping in enumerate(clippings):
        text = " ".join(clipping.split())
        if len(text) > max_chars:
            text = text[:max_chars].rstrip() + "…"
        lines.append(f"[{index}] {text}")
    return "\n".join(lines)
