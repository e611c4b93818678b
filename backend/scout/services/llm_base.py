"""
Knowledge Scout Backend - Abstract LLM Service Interface
========================================================

What:  The contract every text-generation provider implements.
Why:   AIService and ChatService depend on this interface only, so the
       provider can be swapped (or replaced by a fake in tests) without
       touching them.
"""

from abc import ABC, abstractmethod


class LLMService(ABC):
    """
    Contract:
        - generate() returns plain text, never None
        - provider errors are wrapped in LLMServiceError
        - CircuitBreakerOpenError may be raised without contacting the provider
    """

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        """
        Send a single-turn prompt and return the model's text answer.

        Raises:
            LLMServiceError: The provider failed after all retries.
            CircuitBreakerOpenError: Too many recent failures.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Lightweight reachability test. Never raises."""
        ...
