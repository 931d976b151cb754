"""
Token usage reported by the remote endpoint.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class TokenUsage:
    """Token counts for one remote call, as reported by the endpoint."""
    prompt_tokens: int
    completion_tokens: int

    def __post_init__(self):
        if self.prompt_tokens < 0 or self.completion_tokens < 0:
            raise ValueError("token counts must be >= 0")

    @property
    def total_tokens(self) -> int:
        """Total tokens used (prompt + completion)."""
        return self.prompt_tokens + self.completion_tokens
