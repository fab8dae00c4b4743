"""
Text-generation capability used for assisted column mapping.

The mapping engine only depends on ``TextGenerator.generate``. The Claude
implementation is built when an Anthropic API key is configured; without a
key ``build_text_generator`` returns None and mapping stays heuristic.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from typing import Optional, Protocol

from langchain_anthropic import ChatAnthropic

from talent_import.core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    def generate(self, prompt: str) -> str:
        ...


class LLMTimeoutError(TimeoutError):
    """Raised when the model does not answer within the analysis timeout."""


def _message_text(content) -> str:
    """Flatten LangChain message content (plain string or list of content blocks)."""
    if isinstance(content, str):
        return content
    parts = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


class AnthropicTextGenerator:
    """Claude via langchain-anthropic with a hard wall-clock ceiling per call."""

    def __init__(self, app_settings: Settings = default_settings, model: Optional[ChatAnthropic] = None):
        self._timeout = app_settings.llm_analysis_timeout
        self._model = model or ChatAnthropic(
            model=app_settings.llm_model,
            api_key=app_settings.anthropic_api_key,
            temperature=0,  # Deterministic mappings for the same file
            max_tokens=1024,
            timeout=app_settings.llm_api_timeout,
            max_retries=app_settings.llm_max_retries,
        )

    def generate(self, prompt: str) -> str:
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(self._model.invoke, prompt)
        try:
            response = future.result(timeout=self._timeout)
        except FuturesTimeoutError as exc:
            future.cancel()
            raise LLMTimeoutError(f"LLM call exceeded {self._timeout}s") from exc
        finally:
            # Don't block on a hung request; the worker thread is abandoned.
            executor.shutdown(wait=False)
        return _message_text(response.content)


def build_text_generator(app_settings: Settings = default_settings) -> Optional[TextGenerator]:
    if not app_settings.llm_configured:
        logger.info("No Anthropic API key configured; column mapping will use heuristics only")
        return None
    logger.info("Anthropic client initialized for AI-powered column mapping (model=%s)", app_settings.llm_model)
    return AnthropicTextGenerator(app_settings)
