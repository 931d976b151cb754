"""
Caller-facing surface of Clip Insight.

ClipAssistant ties together the local classifier, the governed remote
path, the prompt library and the grouping advisor. Remote methods block
the calling thread; run them off any UI thread.
"""

import logging
import sqlite3
from datetime import timedelta
from typing import Optional

from .credentials import CredentialStore, EnvironmentCredentialStore
from .gateway import GovernedGateway, ParsedReply, RemoteClient
from .grouping import GroupingAdvisor
from .openai_client import OpenRouterClient
from ..config.loader import AssistantSettings
from ..core.categories import Category
from ..core.classifier import classify_locally
from ..core.errors import MalformedReplyError
from ..core.models import ClassificationResult, PromptAnalysis, PromptPayload, UsageStats
from ..core.pricing import PRICING_TABLE, PricingTable
from ..core.prompt_library import PromptLibrary
from ..core.prompts import CLASSIFICATION_PROMPT, CONNECTION_TEST_PROMPT, REUSABLE_PROMPT_PROMPT
from ..core.rate_governor import RateGovernor
from ..core.replies import parse_classification, parse_reusable_prompt
from ..core.usage_ledger import UsageLedger
from ..storage.repository import PromptRepository, UsageRepository

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONTENT_CHARS = 4000
CLASSIFY_MAX_TOKENS = 200


class ClipAssistant:
    """Clipping classification, prompt library and grouping."""

    def __init__(
        self,
        client: RemoteClient,
        credentials: CredentialStore,
        governor: Optional[RateGovernor] = None,
        ledger: Optional[UsageLedger] = None,
        library: Optional[PromptLibrary] = None,
        pricing: PricingTable = PRICING_TABLE,
        max_content_chars: int = DEFAULT_MAX_CONTENT_CHARS,
        grouping: Optional[GroupingAdvisor] = None,
    ):
        self.credentials = credentials
        self.governor = governor or RateGovernor()
        self.ledger = ledger or UsageLedger()
        self.library = library or PromptLibrary()
        self.max_content_chars = max_content_chars
        self.gateway = GovernedGateway(
            client=client,
            credentials=credentials,
            governor=self.governor,
            ledger=self.ledger,
            pricing=pricing,
        )
        self.grouping = grouping or GroupingAdvisor(self.gateway)

    @classmethod
    def from_settings(
        cls,
        settings: AssistantSettings,
        credentials: Optional[CredentialStore] = None,
    ) -> "ClipAssistant":
        """Build an assistant with SQLite-backed library and ledger."""
        credentials = credentials or EnvironmentCredentialStore()
        client = OpenRouterClient(
            credentials=credentials,
            model=settings.model,
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
        )
        usage_repository = UsageRepository(settings.db_path)
        ledger = UsageLedger(
            snapshot=usage_repository.load_snapshot(),
            repository=usage_repository,
        )
        assistant = cls(
            client=client,
            credentials=credentials,
            governor=RateGovernor(timedelta(seconds=settings.minimum_interval_seconds)),
            ledger=ledger,
            library=PromptLibrary(PromptRepository(settings.db_path)),
            pricing=settings.pricing_table(),
            max_content_chars=settings.max_content_chars,
        )
        assistant.grouping.max_clipping_chars = settings.max_clipping_chars
        assistant.grouping.max_clippings = settings.max_group_clippings
        return assistant

    def __enter__(self) -> "ClipAssistant":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        self.grouping.close()

    @property
    def is_configured(self) -> bool:
        return self.gateway.is_configured

    def classify_locally(self, content: str) -> Category:
        """Instant, free classification. Never fails."""
        return classify_locally(content)

    def classify_with_llm(self, content: str) -> Optional[ClassificationResult]:
        """Classify and summarize via the remote model (blocking).

        Returns:
            None if no key is configured or the call is rate limited;
            otherwise a result, failed or not, already recorded in the ledger
        """
        payload = PromptPayload(
            messages=[
                {"role": "system", "content": CLASSIFICATION_PROMPT},
                {"role": "user", "content": content[:self.max_content_chars]},
            ],
            max_tokens=CLASSIFY_MAX_TOKENS,
            temperature=0.0,
        )

        def parse(reply_content):
            category, summary = parse_classification(reply_content)
            return ParsedReply(category=category, summary=summary)

        outcome = self.gateway.dispatch(payload, parse)
        return outcome.result

    def classify(self, content: str, allow_remote: bool = False) -> Category:
        """Local first; ask the remote model only when local is UNKNOWN.

        Falls back to the local answer whenever the remote path is
        unavailable or fails.
        """
        category = classify_locally(content)
        if category is not Category.UNKNOWN or not allow_remote:
            return category
        result = self.classify_with_llm(content)
        if result is None or not result.success:
            return category
        return result.category

    def test_connection(self) -> Optional[ClassificationResult]:
        """Check the key and endpoint with a trivial request (blocking).

        Same gating and bookkeeping as classify_with_llm.
        """
        payload = PromptPayload(
            messages=[{"role": "user", "content": CONNECTION_TEST_PROMPT}],
            max_tokens=5,
            temperature=0.0,
        )

        def parse(reply_content):
            if not reply_content or not reply_content.strip():
                raise MalformedReplyError("Empty reply")
            return ParsedReply()

        return self.gateway.dispatch(payload, parse).result

    def analyze_for_reusable_prompt(
        self,
        content: str,
        add_to_library: bool = False,
    ) -> Optional[PromptAnalysis]:
        """Ask whether a clipping is a reusable prompt (blocking).

        Args:
            content: Clipping text
            add_to_library: Append the clipping to the prompt library
                with the suggested tags when it is reusable

        Returns:
            None when not configured or rate limited
        """
        payload = PromptPayload(
            messages=[
                {"role": "system", "content": REUSABLE_PROMPT_PROMPT},
                {"role": "user", "content": content[:self.max_content_chars]},
            ],
            max_tokens=CLASSIFY_MAX_TOKENS,
            temperature=0.0,
        )

        def parse(reply_content):
            return ParsedReply(value=parse_reusable_prompt(reply_content))

        outcome = self.gateway.dispatch(payload, parse)
        if not outcome.attempted:
            return None
        if not outcome.result.success:
            return PromptAnalysis(result=outcome.result)

        reusable, tags = outcome.value
        if reusable and add_to_library:
            try:
                self.library.add(content, tags)
                logger.info("Added reusable prompt with tags %s", list(tags))
            except sqlite3.Error:
                logger.exception("Failed to save reusable prompt")
        return PromptAnalysis(result=outcome.result, is_reusable=reusable, tags=tags if reusable else ())

    def suggest_groups(self, clippings, completion=None):
        """See GroupingAdvisor.suggest_groups."""
        return self.grouping.suggest_groups(clippings, completion)

    def is_rate_limited(self) -> bool:
        return self.governor.is_rate_limited()

    def seconds_until_next_request(self) -> float:
        return self.governor.seconds_until_next_request()

    def stats(self) -> UsageStats:
        return self.ledger.stats()

    def reset_stats(self) -> None:
        """Zero the usage ledger. For test isolation only."""
        self.ledger.reset()
