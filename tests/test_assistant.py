"""
Tests for the governed remote path and the ClipAssistant facade.
"""

import json
import sqlite3
from datetime import timedelta

import pytest

from clip_insight.core.categories import Category
from clip_insight.core.errors import ErrorKind, TransportError
from clip_insight.core.models import RawReply
from clip_insight.core.prompt_library import PromptLibrary
from clip_insight.core.rate_governor import RateGovernor
from clip_insight.core.token_counter import TokenUsage
from clip_insight.core.usage_ledger import UsageLedger
from clip_insight.sdk.assistant import ClipAssistant
from clip_insight.sdk.credentials import InMemoryCredentialStore
from clip_insight.sdk.gateway import GovernedGateway, ParsedReply

VALID_KEY = "sk-or-v1-0123456789abcdef"


class LockedRepository:
    """Repository whose database is always locked."""

    def load_prompts(self):
        return []

    def save_prompts(self, entries):
        raise sqlite3.OperationalError("database is locked")

    def save_snapshot(self, snapshot):
        raise sqlite3.OperationalError("database is locked")


class FakeTimer:
    """perf_counter stand-in advancing a fixed step per call."""

    def __init__(self, step):
        self.value = 0.0
        self.step = step

    def __call__(self):
        current = self.value
        self.value += self.step
        return current


class FakeClient:
    """Remote client returning queued replies or raising queued errors."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.payloads = []

    def send(self, payload):
        self.payloads.append(payload)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def reply(content, prompt_tokens=10000, completion_tokens=2000, model="anthropic/claude-3.5-haiku"):
    return RawReply(
        content=content if isinstance(content, str) or content is None else json.dumps(content),
        model=model,
        usage=TokenUsage(prompt_tokens, completion_tokens),
        request_id="gen_1",
    )


class TestGovernedGateway:
    """Test gating, latency and ledger bookkeeping."""

    def create_gateway(self, clock, client, key=VALID_KEY, interval=10):
        timer = FakeTimer(step=0.5)
        governor = RateGovernor(timedelta(seconds=interval), clock=clock)
        ledger = UsageLedger(clock=clock)
        gateway = GovernedGateway(
            client=client,
            credentials=InMemoryCredentialStore(key),
            governor=governor,
            ledger=ledger,
            timer=timer,
        )
        return gateway, governor, ledger

    def test_not_configured_is_denied_without_side_effects(self, clock):
        client = FakeClient()
        gateway, governor, ledger = self.create_gateway(clock, client, key=None)

        outcome = gateway.dispatch(None, lambda content: ParsedReply())

        assert outcome.denied == ErrorKind.NOT_CONFIGURED
        assert outcome.attempted is False
        assert client.payloads == []
        assert governor.state.last_request_timestamp is None
        assert ledger.stats().requests_today == 0

    def test_rate_limited_is_denied_without_ledger_update(self, clock):
        client = FakeClient(reply("ok"))
        gateway, governor, ledger = self.create_gateway(clock, client)

        first = gateway.dispatch(None, lambda content: ParsedReply())
        clock.advance(seconds=5)
        second = gateway.dispatch(None, lambda content: ParsedReply())

        assert first.attempted is True
        assert second.denied == ErrorKind.RATE_LIMITED
        assert len(client.payloads) == 1
        assert ledger.stats().requests_today == 1

    def test_success_records_latency_and_cost(self, clock):
        gateway, governor, ledger = self.create_gateway(clock, FakeClient(reply("ok")))

        outcome = gateway.dispatch(None, lambda content: ParsedReply(summary=content, value=42))

        assert outcome.result.success is True
        assert outcome.result.summary == "ok"
        assert outcome.result.latency == 0.5
        assert outcome.result.estimated_cost == 0.016
        assert outcome.value == 42
        assert ledger.stats().cost_this_month == pytest.approx(0.016)

    def test_call_start_is_marked_before_dispatch(self, clock):
        marks = []

        class RecordingClient:
            def send(self, payload):
                marks.append(governor.state.last_request_timestamp)
                clock.advance(seconds=30)
                return reply("ok")

        gateway, governor, ledger = self.create_gateway(clock, RecordingClient())
        start = clock.now

        gateway.dispatch(None, lambda content: ParsedReply())

        assert marks == [start]
        assert governor.state.last_request_timestamp == start
        assert ledger.stats().last_request_time == start + timedelta(seconds=30)

    def test_transport_error_becomes_failed_result(self, clock):
        gateway, governor, ledger = self.create_gateway(clock, FakeClient(TransportError("HTTP 502: bad gateway")))

        outcome = gateway.dispatch(None, lambda content: ParsedReply())

        assert outcome.result.success is False
        assert outcome.result.error_kind == ErrorKind.TRANSPORT_FAILURE
        assert outcome.result.error_message == "HTTP 502: bad gateway"
        assert ledger.stats().errors_today == 1
        assert ledger.stats().last_error == "HTTP 502: bad gateway"

    def test_unexpected_client_exception_is_malformed(self, clock):
        gateway, governor, ledger = self.create_gateway(clock, FakeClient(KeyError("choices")))

        outcome = gateway.dispatch(None, lambda content: ParsedReply())

        assert outcome.result.error_kind == ErrorKind.MALFORMED_REPLY
        assert ledger.stats().errors_today == 1

    def test_unexpected_parser_exception_is_malformed(self, clock):
        gateway, governor, ledger = self.create_gateway(clock, FakeClient(reply("ok")))

        def parse(content):
            raise TypeError("boom")

        outcome = gateway.dispatch(None, parse)

        assert outcome.result.success is False
        assert outcome.result.error_kind == ErrorKind.MALFORMED_REPLY
        assert ledger.stats().cost_this_month == 0.0

    def test_storage_failure_still_returns_outcome(self, clock):
        ledger = UsageLedger(clock=clock, repository=LockedRepository())
        gateway = GovernedGateway(
            client=FakeClient(reply("ok")),
            credentials=InMemoryCredentialStore(VALID_KEY),
            governor=RateGovernor(timedelta(seconds=10), clock=clock),
            ledger=ledger,
            timer=FakeTimer(step=0.5),
        )

        outcome = gateway.dispatch(None, lambda content: ParsedReply(category=Category.TEXT))

        assert outcome.attempted is True
        assert outcome.result.success is True
        assert ledger.stats().requests_today == 1


class TestClipAssistant:
    """Test the caller-facing surface."""

    def create_assistant(self, clock, *outcomes, key=VALID_KEY):
        client = FakeClient(*outcomes)
        assistant = ClipAssistant(
            client=client,
            credentials=InMemoryCredentialStore(key),
            governor=RateGovernor(timedelta(seconds=10), clock=clock),
            ledger=UsageLedger(clock=clock),
            library=PromptLibrary(),
            max_content_chars=20,
        )
        return assistant, client

    def teardown_method(self):
        assistant = getattr(self, "assistant", None)
        if assistant is not None:
            assistant.close()

    def test_classify_locally(self, clock):
        self.assistant, _ = self.create_assistant(clock)
        assert self.assistant.classify_locally("https://example.com") == Category.LINK

    def test_classify_with_llm_success(self, clock):
        self.assistant, client = self.create_assistant(
            clock, reply({"category": "code", "summary": "A shell loop."})
        )

        result = self.assistant.classify_with_llm("for i in 1 2 3; do echo $i; done")

        assert result.success is True
        assert result.category == Category.CODE
        assert result.summary == "A shell loop."
        assert result.error_message is None
        assert result.estimated_cost == 0.016
        assert self.assistant.stats().requests_today == 1
        # Content is truncated to max_content_chars
        assert client.payloads[0].messages[1]["content"] == "for i in 1 2 3; do e"

    def test_classify_with_llm_not_configured(self, clock):
        self.assistant, client = self.create_assistant(clock, key=None)

        assert self.assistant.is_configured is False
        assert self.assistant.classify_with_llm("anything") is None
        assert self.assistant.stats().requests_today == 0
        assert self.assistant.is_rate_limited() is False

    def test_classify_with_llm_rate_limited(self, clock):
        self.assistant, client = self.create_assistant(clock, reply({"category": "text"}))

        assert self.assistant.classify_with_llm("first") is not None
        clock.advance(seconds=3)
        assert self.assistant.classify_with_llm("second") is None
        assert self.assistant.seconds_until_next_request() == pytest.approx(7.0)
        assert self.assistant.stats().requests_today == 1

    def test_classify_with_llm_malformed_reply(self, clock):
        self.assistant, _ = self.create_assistant(clock, reply("Sure! It's code."))

        result = self.assistant.classify_with_llm("x = 1")

        assert result.success is False
        assert result.category is None
        assert result.summary is None
        assert result.error_kind == ErrorKind.MALFORMED_REPLY
        assert "not valid JSON" in result.error_message
        assert self.assistant.stats().errors_today == 1

    def test_classify_prefers_local_answer(self, clock):
        self.assistant, client = self.create_assistant(clock)

        assert self.assistant.classify("https://example.com", allow_remote=True) == Category.LINK
        assert client.payloads == []

    def test_classify_asks_remote_when_local_is_unknown(self, clock):
        self.assistant, client = self.create_assistant(clock, reply({"category": "text"}))

        assert self.assistant.classify("hola", allow_remote=True) == Category.TEXT
        assert len(client.payloads) == 1

    def test_classify_falls_back_when_remote_fails(self, clock):
        self.assistant, _ = self.create_assistant(clock, TransportError("offline"))

        assert self.assistant.classify("hola", allow_remote=True) == Category.UNKNOWN

    def test_classify_without_remote_stays_local(self, clock):
        self.assistant, client = self.create_assistant(clock)

        assert self.assistant.classify("hola") == Category.UNKNOWN
        assert client.payloads == []

    def test_test_connection(self, clock):
        self.assistant, _ = self.create_assistant(clock, reply("OK"))

        result = self.assistant.test_connection()

        assert result.success is True
        assert result.category is None
        assert result.summary is None
        assert self.assistant.stats().requests_today == 1

    def test_test_connection_empty_reply_fails(self, clock):
        self.assistant, _ = self.create_assistant(clock, reply(""))

        result = self.assistant.test_connection()

        assert result.success is False
        assert result.error_kind == ErrorKind.MALFORMED_REPLY

    def test_analyze_reusable_prompt_adds_to_library(self, clock):
        self.assistant, _ = self.create_assistant(
            clock, reply({"reusable": True, "tags": ["writing", "email"]})
        )

        analysis = self.assistant.analyze_for_reusable_prompt(
            "Rewrite this email politely", add_to_library=True
        )

        assert analysis.is_reusable is True
        assert analysis.tags == ("writing", "email")
        entries = self.assistant.library.all()
        assert entries[-1].text == "Rewrite this email politely"
        assert entries[-1].tags == frozenset({"writing", "email"})

    def test_locked_database_does_not_escape(self, clock):
        repository = LockedRepository()
        self.assistant = ClipAssistant(
            client=FakeClient(
                reply({"category": "text", "summary": "A note."}),
                reply({"reusable": True, "tags": ["writing"]}),
            ),
            credentials=InMemoryCredentialStore(VALID_KEY),
            governor=RateGovernor(timedelta(seconds=10), clock=clock),
            ledger=UsageLedger(clock=clock, repository=repository),
            library=PromptLibrary(repository),
        )

        result = self.assistant.classify_with_llm("hello there")
        assert result.success is True
        assert result.category == Category.TEXT

        clock.advance(seconds=10)
        analysis = self.assistant.analyze_for_reusable_prompt("Rewrite this", add_to_library=True)
        assert analysis.is_reusable is True
        assert self.assistant.stats().requests_today == 2

    def test_analyze_not_reusable_leaves_library_alone(self, clock):
        self.assistant, _ = self.create_assistant(
            clock, reply({"reusable": False, "tags": ["ignored"]})
        )

        analysis = self.assistant.analyze_for_reusable_prompt("lunch at noon", add_to_library=True)

        assert analysis.is_reusable is False
        assert analysis.tags == ()
        assert len(self.assistant.library) == 0

    def test_analyze_failure_and_denial(self, clock):
        self.assistant, _ = self.create_assistant(clock, TransportError("offline"))

        failed = self.assistant.analyze_for_reusable_prompt("x")
        assert failed.result.success is False
        assert failed.is_reusable is False

        assert self.assistant.analyze_for_reusable_prompt("x") is None

    def test_reset_stats(self, clock):
        self.assistant, _ = self.create_assistant(clock, TransportError("offline"))
        self.assistant.classify_with_llm("x")

        self.assistant.reset_stats()

        assert self.assistant.stats().requests_today == 0
        assert self.assistant.stats().last_error is None
