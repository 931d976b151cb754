"""
Governed entry point for every remote call.

Checks credentials and the rate governor, marks the call start, calls
the remote client, measures latency, converts every failure into data
and records the completion in the usage ledger. Nothing raises past
dispatch().
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Protocol

from .credentials import CredentialStore, is_configured
from ..core.categories import Category
from ..core.errors import ErrorKind, MalformedReplyError, TransportError
from ..core.models import ClassificationResult, PromptPayload, RawReply
from ..core.pricing import PRICING_TABLE, PricingTable, estimate_cost
from ..core.rate_governor import RateGovernor
from ..core.usage_ledger import UsageLedger

logger = logging.getLogger(__name__)


class RemoteClient(Protocol):
    def send(self, payload: PromptPayload) -> RawReply: ...


@dataclass(frozen=True)
class ParsedReply:
    """What a reply parser extracted. `value` is operation specific."""
    category: Optional[Category] = None
    summary: Optional[str] = None
    value: Any = None


@dataclass(frozen=True)
class GatewayOutcome:
    """Either a denial (no call attempted) or a completed attempt."""
    result: Optional[ClassificationResult] = None
    value: Any = None
    denied: Optional[ErrorKind] = None

    @property
    def attempted(self) -> bool:
        return self.denied is None


ReplyParser = Callable[[Optional[str]], ParsedReply]


class GovernedGateway:
    """Runs remote calls under the rate governor and usage ledger."""

    def __init__(
        self,
        client: RemoteClient,
        credentials: CredentialStore,
        governor: RateGovernor,
        ledger: UsageLedger,
        pricing: PricingTable = PRICING_TABLE,
        timer: Callable[[], float] = time.perf_counter,
    ):
        self.client = client
        self.credentials = credentials
        self.governor = governor
        self.ledger = ledger
        self.pricing = pricing
        self._timer = timer

    @property
    def is_configured(self) -> bool:
        return is_configured(self.credentials)

    def dispatch(self, payload: PromptPayload, parse: ReplyParser) -> GatewayOutcome:
        """Run one governed remote call.

        Args:
            payload: Request for the remote client
            parse: Turns the reply content into a ParsedReply, raising
                MalformedReplyError when it does not fit the schema

        Returns:
            A denial when unconfigured or rate limited (ledger untouched),
            otherwise the recorded ClassificationResult and parsed value
        """
        if not self.is_configured:
            logger.debug("Remote call skipped: no API key configured")
            return GatewayOutcome(denied=ErrorKind.NOT_CONFIGURED)
        if not self.governor.try_begin():
            return GatewayOutcome(denied=ErrorKind.RATE_LIMITED)

        value = None
        started = self._timer()
        try:
            reply = self.client.send(payload)
            latency = max(self._timer() - started, 0.0)
        except TransportError as e:
            result = ClassificationResult.failure(
                ErrorKind.TRANSPORT_FAILURE, e.message, latency=max(self._timer() - started, 0.0)
            )
        except Exception as e:
            # Anything else the client throws means its reply was unusable
            logger.exception("Remote client raised unexpectedly")
            result = ClassificationResult.failure(
                ErrorKind.MALFORMED_REPLY,
                f"Unexpected reply: {e}",
                latency=max(self._timer() - started, 0.0),
            )
        else:
            cost = estimate_cost(reply.model, reply.usage, self.pricing)
            result, value = self._interpret(reply, parse, latency, cost)

        self.ledger.record_completion(result)
        return GatewayOutcome(result=result, value=value)

    def _interpret(self, reply: RawReply, parse: ReplyParser, latency: float, cost: float):
        try:
            parsed = parse(reply.content)
        except MalformedReplyError as e:
            return ClassificationResult.failure(
                ErrorKind.MALFORMED_REPLY, e.message, latency=latency, estimated_cost=cost
            ), None
        except Exception as e:
            logger.exception("Reply parser raised unexpectedly")
            return ClassificationResult.failure(
                ErrorKind.MALFORMED_REPLY, f"Unparsable reply: {e}", latency=latency, estimated_cost=cost
            ), None

        result = ClassificationResult(
            success=True,
            category=parsed.category,
            summary=parsed.summary,
            latency=latency,
            estimated_cost=cost,
        )
        return result, parsed.value
