"""
SDK for Clip Insight.

Provides the remote client, credential stores and the ClipAssistant facade.
"""

from .assistant import ClipAssistant
from .credentials import EnvironmentCredentialStore, InMemoryCredentialStore
from .openai_client import OpenRouterClient

__all__ = [
    "ClipAssistant",
    "EnvironmentCredentialStore",
    "InMemoryCredentialStore",
    "OpenRouterClient",
]
