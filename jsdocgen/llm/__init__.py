"""Local LLM backed generation service."""

from .runner import ChatMessage, LLMRunner
from .service import LLMGenerationService

__all__ = ["ChatMessage", "LLMGenerationService", "LLMRunner"]
