"""
Parsing of remote replies into domain values.

Every parser raises MalformedReplyError when the reply does not match
the schema its prompt asked for.
"""

import json
import re
from typing import Any, List, Optional, Tuple

from .categories import Category
from .errors import MalformedReplyError
from .models import GroupSuggestion

_FENCE_RE = re.compile(r"^```[\w-]*\s*\n?(.*?)\n?```$", re.DOTALL)


def load_json_object(content: Optional[str]) -> dict:
    """Decode a JSON object reply, tolerating a surrounding code fence."""
    if content is None or not content.strip():
        raise MalformedReplyError("Empty reply")
    text = content.strip()
    fenced = _FENCE_RE.match(text)
    if fenced:
        text = fenced.group(1).strip()
    try:
        data = json.loads(text)
    except (ValueError, RecursionError) as e:
        raise MalformedReplyError(f"Reply is not valid JSON: {e}")
    if not isinstance(data, dict):
        raise MalformedReplyError("Reply JSON must be an object")
    return data


def parse_classification(content: Optional[str]) -> Tuple[Category, Optional[str]]:
    """Parse `{"category": ..., "summary": ...}`."""
    data = load_json_object(content)
    if "category" not in data:
        raise MalformedReplyError("Reply is missing 'category'")
    try:
        category = Category.parse(data["category"])
    except ValueError as e:
        raise MalformedReplyError(str(e))

    summary = data.get("summary")
    if summary is not None and not isinstance(summary, str):
        raise MalformedReplyError("'summary' must be a string")
    if summary is not None:
        summary = summary.strip() or None
    return category, summary


def parse_reusable_prompt(content: Optional[str]) -> Tuple[bool, Tuple[str, ...]]:
    """Parse `{"reusable": bool, "tags": [str]}`."""
    data = load_json_object(content)
    reusable = data.get("reusable")
    if not isinstance(reusable, bool):
        raise MalformedReplyError("'reusable' must be a boolean")
    tags = data.get("tags", [])
    if not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags):
        raise MalformedReplyError("'tags' must be a list of strings")
    cleaned = tuple(dict.fromkeys(tag.strip().lower() for tag in tags if tag.strip()))
    return reusable, cleaned


def _is_index(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def parse_groups(content: Optional[str], clipping_count: int) -> List[GroupSuggestion]:
    """Parse a grouping reply and validate it against the input size.

    Every index in [0, clipping_count) must appear in exactly one group.
    Out-of-range, duplicate or missing indices make the whole reply
    malformed; nothing is clamped or dropped.
    """
    data = load_json_object(content)
    raw_groups = data.get("groups")
    if not isinstance(raw_groups, list):
        raise MalformedReplyError("'groups' must be a list")

    seen = set()
    groups = []
    for position, raw in enumerate(raw_groups):
        if not isinstance(raw, dict):
            raise MalformedReplyError(f"Group {position} must be an object")
        label = raw.get("label")
        if not isinstance(label, str) or not label.strip():
            raise MalformedReplyError(f"Group {position} has no label")
        members = raw.get("members")
        if not isinstance(members, list) or not members:
            raise MalformedReplyError(f"Group '{label}' has no members")
        for index in members:
            if not _is_index(index):
                raise MalformedReplyError(f"Group '{label}' has non-integer member {index!r}")
            if not 0 <= index < clipping_count:
                raise MalformedReplyError(
                    f"Group '{label}' references index {index}, "
                    f"expected 0..{clipping_count - 1}"
                )
            if index in seen:
                raise MalformedReplyError(f"Index {index} appears in more than one group")
            seen.add(index)
        groups.append(GroupSuggestion(label=label.strip(), members=tuple(members)))

    missing = sorted(set(range(clipping_count)) - seen)
    if missing:
        raise MalformedReplyError(f"Reply leaves indices {missing} ungrouped")
    return groups
