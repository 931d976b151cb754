"""
Domain models shared by the classifier, governor and remote path.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from .categories import Category
from .errors import ErrorKind
from .token_counter import TokenUsage


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of one completed remote attempt.

    A failed result never carries a category or summary, and a
    successful one never carries an error.
    """
    success: bool
    error_message: Optional[str] = None
    category: Optional[Category] = None
    summary: Optional[str] = None
    latency: float = 0.0  # seconds
    estimated_cost: float = 0.0
    error_kind: Optional[ErrorKind] = None

    def __post_init__(self):
        """Validate the success/failure invariant."""
        if self.success:
            if self.error_message is not None or self.error_kind is not None:
                raise ValueError("successful result cannot carry an error")
        else:
            if self.category is not None or self.summary is not None:
                raise ValueError("failed result cannot carry a category or summary")
        if self.latency < 0:
            raise ValueError("latency must be >= 0")
        if self.estimated_cost < 0:
            raise ValueError("estimated_cost must be >= 0")

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        latency: float = 0.0,
        estimated_cost: float = 0.0,
    ) -> "ClassificationResult":
        """Build a failed result."""
        return cls(
            success=False,
            error_message=message,
            latency=latency,
            estimated_cost=estimated_cost,
            error_kind=kind,
        )


@dataclass(frozen=True)
class UsageStats:
    """Point-in-time view of the usage ledger."""
    requests_today: int = 0
    requests_this_month: int = 0
    errors_today: int = 0
    cost_this_month: float = 0.0
    last_request_time: Optional[datetime] = None
    last_error: Optional[str] = None


@dataclass(frozen=True)
class RateLimitState:
    """Governor state: when the last call started and the required spacing."""
    minimum_interval: timedelta
    last_request_timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class PromptEntry:
    """A reusable prompt and the tags it is filed under."""
    text: str
    tags: FrozenSet[str] = frozenset()

    def __post_init__(self):
        # Accept any iterable of tags but store an immutable set
        object.__setattr__(self, "tags", frozenset(self.tags))


@dataclass(frozen=True)
class GroupSuggestion:
    """A candidate group: a label and indices into the input clippings."""
    label: str
    members: Tuple[int, ...]


@dataclass(frozen=True)
class GroupingOutcome:
    """Result of a grouping request. Failure means no groups at all."""
    success: bool
    groups: Tuple[GroupSuggestion, ...] = ()
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None

    def __post_init__(self):
        if self.success and self.error_kind is not None:
            raise ValueError("successful outcome cannot carry an error")
        if not self.success and self.groups:
            raise ValueError("failed outcome cannot carry groups")

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "GroupingOutcome":
        return cls(success=False, error_kind=kind, error_message=message)


@dataclass(frozen=True)
class PromptAnalysis:
    """Whether a clipping looks like a reusable prompt, and its tags."""
    result: ClassificationResult
    is_reusable: bool = False
    tags: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PromptPayload:
    """Request sent to the remote client."""
    messages: List[Dict[str, str]]
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None


@dataclass(frozen=True)
class RawReply:
    """What the remote client got back, before any schema checks."""
    content: Optional[str]
    model: str
    usage: Optional[TokenUsage] = None
    request_id: Optional[str] = None


def normalize_tags(tags: Iterable[str]) -> FrozenSet[str]:
    """Strip tags and drop empty ones."""
    if isinstance(tags, str):
        tags = [tags]
    return frozenset(tag.strip() for tag in tags if tag and tag.strip())
