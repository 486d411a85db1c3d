"""
LLM access for content generation.

Wraps a LangChain chat model (OpenAI by default, Groq optionally) and
returns parsed JSON objects.
"""

import json
from typing import Any, Dict, Optional

from langchain_core.messages import HumanMessage, SystemMessage

from inflio.config import settings
from inflio.errors import AIError
from inflio.utils.logging import get_logger

logger = get_logger(__name__)


class LLMService:
    """JSON completions through a chat model."""

    def __init__(self, llm: Any = None):
        self._llm = llm

    @property
    def is_configured(self) -> bool:
        if self._llm is not None:
            return True
        if settings.llm_provider == "groq":
            return bool(settings.groq_api_key)
        return bool(settings.openai_api_key)

    @property
    def model_name(self) -> str:
        if settings.llm_provider == "groq":
            return settings.groq_model
        return settings.openai_model

    def _build_llm(self, temperature: float, max_tokens: int) -> Any:
        if self._llm is not None:
            return self._llm

        if settings.llm_provider == "groq":
            from langchain_groq import ChatGroq

            return ChatGroq(
                model=settings.groq_model,
                temperature=temperature,
                max_tokens=max_tokens,
                api_key=settings.groq_api_key,
                model_kwargs={"response_format": {"type": "json_object"}},
            )

        from langchain_openai import ChatOpenAI

        return ChatOpenAI(
            model=settings.openai_model,
            temperature=temperature,
            max_tokens=max_tokens,
            api_key=settings.openai_api_key,
            model_kwargs={"response_format": {"type": "json_object"}},
        )

    async def generate_json(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Run one completion and parse the reply as a JSON object."""
        llm = self._build_llm(
            temperature if temperature is not None else settings.llm_temperature,
            max_tokens or settings.llm_max_tokens,
        )
        response = await llm.ainvoke(
            [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)]
        )
        content = (getattr(response, "content", response) or "").strip()
        if not content:
            raise AIError("Empty response from language model")

        # Tolerate models that wrap JSON in a markdown fence
        if content.startswith("```"):
            content = content.strip("`")
            if content.startswith("json"):
                content = content[4:]

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning("Model returned invalid JSON", preview=content[:100])
            raise AIError("Invalid JSON from language model", original_error=e)

        if not isinstance(data, dict):
            raise AIError("Expected a JSON object from language model", retryable=False)
        return data


llm_service = LLMService()
