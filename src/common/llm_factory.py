"""
LLM Factory Module.

Provides factory functions for creating LLM instances. Pipeline collaborators
use these factories instead of instantiating ChatOpenAI directly, so model
and temperature defaults stay in one place.

Usage:
    from src.common.llm_factory import create_llm, create_cheap_llm

    # Extraction / drafting
    llm = create_llm(temperature=Config.EXTRACTION_TEMPERATURE, stage="extract")

    # Email pattern prediction
    llm = create_cheap_llm(stage="contact_enrichment")
"""

import logging
from typing import Any, Dict, List, Optional

from langchain_core.callbacks import BaseCallbackHandler
from langchain_core.outputs import LLMResult
from langchain_openai import ChatOpenAI

from src.common.config import Config

logger = logging.getLogger(__name__)


class UsageLoggingCallback(BaseCallbackHandler):
    """Logs token usage reported by the provider after each LLM call."""

    def __init__(self, stage: Optional[str] = None):
        self.stage = stage or "llm"
        self.total_tokens = 0

    def on_llm_end(self, response: LLMResult, **kwargs: Any) -> None:
        usage: Dict[str, Any] = (response.llm_output or {}).get("token_usage") or {}
        tokens = usage.get("total_tokens") or 0
        self.total_tokens += tokens
        if tokens:
            logger.debug(f"[{self.stage}] LLM call used {tokens} tokens (total {self.total_tokens})")


def create_llm(
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    stage: Optional[str] = None,
    additional_callbacks: Optional[List[BaseCallbackHandler]] = None,
    **kwargs: Any,
) -> ChatOpenAI:
    """
    Create a ChatOpenAI instance with usage logging.

    Args:
        model: Model name (defaults to Config.DEFAULT_MODEL)
        temperature: Temperature (defaults to Config.EXTRACTION_TEMPERATURE)
        stage: Pipeline stage name for log attribution
        additional_callbacks: Additional callbacks to add
        **kwargs: Additional ChatOpenAI parameters

    Example:
        llm = create_llm(stage="extract")
        response = llm.invoke([SystemMessage(content="..."), HumanMessage(content="...")])
    """
    effective_model = model or Config.DEFAULT_MODEL
    effective_temperature = (
        temperature if temperature is not None else Config.EXTRACTION_TEMPERATURE
    )

    callbacks: List[BaseCallbackHandler] = [UsageLoggingCallback(stage)]
    if additional_callbacks:
        callbacks.extend(additional_callbacks)

    llm = ChatOpenAI(
        model=effective_model,
        temperature=effective_temperature,
        api_key=Config.get_llm_api_key(),
        base_url=Config.get_llm_base_url(),
        callbacks=callbacks,
        **kwargs,
    )

    logger.debug(f"Created OpenAI LLM: model={effective_model}, stage={stage}")
    return llm


def create_cheap_llm(stage: Optional[str] = None, **kwargs: Any) -> ChatOpenAI:
    """
    Create a ChatOpenAI instance using the cheap model (gpt-4o-mini).

    Use this for short answers that don't need the default model.
    """
    return create_llm(
        model=Config.CHEAP_MODEL,
        temperature=Config.PREDICTION_TEMPERATURE,
        stage=stage,
        **kwargs,
    )
