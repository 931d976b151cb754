"""
Grouping advisor.

Sends all clippings in one governed remote call and maps the reply into
group suggestions. A grouping either succeeds completely or fails with
no groups at all.
"""

import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence

from .gateway import GovernedGateway, ParsedReply
from ..core.errors import ErrorKind
from ..core.models import GroupingOutcome, GroupSuggestion, PromptPayload
from ..core.prompts import GROUPING_PROMPT, format_clippings
from ..core.replies import parse_groups

logger = logging.getLogger(__name__)

DEFAULT_MAX_CLIPPING_CHARS = 200
DEFAULT_MAX_GROUP_CLIPPINGS = 50

GroupingCallback = Callable[[List[GroupSuggestion], Optional[str]], None]

_DENIAL_MESSAGES = {
    ErrorKind.NOT_CONFIGURED: "No API key configured",
    ErrorKind.RATE_LIMITED: "Rate limited, try again shortly",
}


class GroupingAdvisor:
    """Suggests groups for a batch of clippings via one remote call."""

    def __init__(
        self,
        gateway: GovernedGateway,
        max_clipping_chars: int = DEFAULT_MAX_CLIPPING_CHARS,
        max_clippings: int = DEFAULT_MAX_GROUP_CLIPPINGS,
        executor: Optional[Executor] = None,
    ):
        """Initialize the advisor.

        Args:
            gateway: Governed gateway used for the remote call
            max_clipping_chars: Each clipping is truncated to this length in the prompt
            max_clippings: Largest batch accepted in one request
            executor: Where suggest_groups runs; a single worker thread by default
        """
        self.gateway = gateway
        self.max_clipping_chars = max_clipping_chars
        self.max_clippings = max_clippings
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="clip-grouping")

    def suggest_groups(
        self,
        clippings: Sequence[str],
        completion: Optional[GroupingCallback] = None,
    ) -> "Future[GroupingOutcome]":
        """Group clippings in the background.

        Args:
            clippings: Clipping contents, in display order
            completion: Optional callback receiving (groups, error_message)
                once the request finishes

        Returns:
            A future resolving to the GroupingOutcome
        """
        batch = list(clippings)
        return self._executor.submit(self._run, batch, completion)

    def suggest_groups_sync(self, clippings: Sequence[str]) -> GroupingOutcome:
        """Group clippings on the calling thread (blocking)."""
        batch = list(clippings)
        if not batch:
            return GroupingOutcome(success=True)
        if len(batch) > self.max_clippings:
            return GroupingOutcome.failure(
                ErrorKind.INVALID_ARGUMENT,
                f"Too many clippings to group: {len(batch)} (max {self.max_clippings})",
            )

        payload = PromptPayload(
            messages=[
                {"role": "system", "content": GROUPING_PROMPT},
                {"role": "user", "content": format_clippings(batch, self.max_clipping_chars)},
            ],
            temperature=0.0,
        )

        def parse(content):
            return ParsedReply(value=parse_groups(content, len(batch)))

        outcome = self.gateway.dispatch(payload, parse)
        if not outcome.attempted:
            return GroupingOutcome.failure(outcome.denied, _DENIAL_MESSAGES[outcome.denied])

        result = outcome.result
        if not result.success:
            return GroupingOutcome.failure(result.error_kind, result.error_message)
        logger.info("Grouped %d clippings into %d groups", len(batch), len(outcome.value))
        return GroupingOutcome(success=True, groups=tuple(outcome.value))

    def close(self) -> None:
        """Wait for pending requests and release the worker thread."""
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    def _run(self, batch: List[str], completion: Optional[GroupingCallback]) -> GroupingOutcome:
        outcome = self.suggest_groups_sync(batch)
        if completion is not None:
            try:
                completion(list(outcome.groups), outcome.error_message)
            except Exception:
                logger.exception("Grouping completion callback raised")
        return outcome
