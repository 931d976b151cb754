"""
Remote client for an OpenAI-compatible chat endpoint.

Defaults to OpenRouter. Sends one chat completion per call and returns
the raw reply; schema checks happen in the gateway.
"""

import logging
import threading
from typing import Optional

import openai
from openai import OpenAI

from .credentials import CredentialStore
from ..config.loader import DEFAULT_BASE_URL, DEFAULT_MODEL, DEFAULT_TIMEOUT_SECONDS
from ..core.errors import TransportError
from ..core.models import PromptPayload, RawReply
from ..core.token_counter import TokenUsage

logger = logging.getLogger(__name__)


class OpenRouterClient:
    """Synchronous chat client.

    The API key is read from the credential store on every call so a
    key set or cleared at runtime takes effect immediately. The SDK
    client is reused until the key changes.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        """Initialize the client.

        Raises:
            ValueError: If model is missing/empty or timeout is not positive
        """
        if not model or not model.strip():
            raise ValueError("model is required and cannot be empty")
        if timeout <= 0:
            raise ValueError("timeout must be > 0")

        self.credentials = credentials
        self.model = model
        self.base_url = base_url
        self.timeout = timeout
        self._client: Optional[OpenAI] = None
        self._client_key: Optional[str] = None
        self._client_lock = threading.Lock()

    def send(self, payload: PromptPayload) -> RawReply:
        """Send one chat completion request.

        Raises:
            TransportError: On missing key, network errors, timeouts and
                non-success HTTP statuses
        """
        key = self.credentials.get_key()
        if not key:
            raise TransportError("No API key available")

        options = {}
        if payload.max_tokens is not None:
            options["max_tokens"] = payload.max_tokens
        if payload.temperature is not None:
            options["temperature"] = payload.temperature

        client = self._client_for(key)
        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=payload.messages,
                **options
            )
        except openai.APITimeoutError as e:
            raise TransportError(f"Request timed out after {self.timeout:g}s") from e
        except openai.APIStatusError as e:
            raise TransportError(f"HTTP {e.status_code}: {e.message}") from e
        except openai.APIError as e:
            raise TransportError(f"Request failed: {e}") from e

        content: Optional[str] = None
        if response.choices:
            content = response.choices[0].message.content

        usage = None
        if response.usage is not None:
            usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
            )

        logger.debug("Reply %s from %s", response.id, response.model or self.model)
        return RawReply(
            content=content,
            model=self.model,
            usage=usage,
            request_id=response.id,
        )

    def _client_for(self, key: str) -> OpenAI:
        with self._client_lock:
            if self._client is None or key != self._client_key:
                self._client = OpenAI(api_key=key, base_url=self.base_url, timeout=self.timeout, max_retries=0)
                self._client_key = key
            return self._client
