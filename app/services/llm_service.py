from typing import Any, NamedTuple

import google.generativeai as genai
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from app.core.config import Settings
from app.core.exceptions import UpstreamError
from app.core.logging import logger


class LLMResult(NamedTuple):
    text: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


def _count(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


class LLMService:
    """Text generation through the configured provider (OpenAI or Gemini)."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._llm = None
        self._generation_config = None
        self.llm_type = None

    # ---------------------
    # Lazy provider initialization
    # ---------------------
    @property
    def llm(self):
        if self._llm is None:
            self._initialize_llm()
        return self._llm

    def _initialize_llm(self):
        """Initialize Gemini or OpenAI with proper model name handling."""
        settings = self.settings
        provider = settings.llm_provider.lower()
        logger.info(f"Initializing LLM provider={provider}")

        if provider == "google" and settings.google_api_key:
            genai.configure(api_key=settings.google_api_key)

            # Gemini API expects the "models/" prefix
            requested = settings.llm_model
            model_name = requested if requested.startswith("models/") else f"models/{requested}"
            logger.info(f"Using Gemini model: {model_name}")

            self._generation_config = genai.GenerationConfig(
                temperature=settings.llm_temperature,
                max_output_tokens=settings.max_tokens,
            )
            self._llm = genai.GenerativeModel(
                model_name=model_name,
                generation_config=self._generation_config,
            )
            self.llm_type = "google"
            logger.info("✓ Gemini LLM initialized successfully.")

        elif provider == "openai" and settings.openai_api_key:
            self._llm = ChatOpenAI(
                temperature=settings.llm_temperature,
                model=settings.llm_model,
                max_tokens=settings.max_tokens,
                openai_api_key=settings.openai_api_key,
            )
            self.llm_type = "openai"
            logger.info("✓ OpenAI LLM initialized successfully.")

        else:
            logger.error(
                f"No valid LLM provider or API key provided. Provider: {provider}, "
                f"Google key: {'set' if settings.google_api_key else 'missing'}, "
                f"OpenAI key: {'set' if settings.openai_api_key else 'missing'}"
            )
            raise UpstreamError("Servicio de IA no disponible")

    # ---------------------
    # Generation
    # ---------------------
    def complete(self, system: str, prompt: str) -> LLMResult:
        """Run one generation and return its text and token usage."""
        llm = self.llm
        try:
            if self.llm_type == "google":
                # system_instruction is fixed per model object
                model = genai.GenerativeModel(
                    model_name=llm.model_name,
                    generation_config=self._generation_config,
                    system_instruction=system,
                )
                resp = model.generate_content(prompt)
                usage = getattr(resp, "usage_metadata", None)
                return LLMResult(
                    text=resp.text,
                    prompt_tokens=_count(getattr(usage, "prompt_token_count", 0)),
                    completion_tokens=_count(getattr(usage, "candidates_token_count", 0)),
                    total_tokens=_count(getattr(usage, "total_token_count", 0)),
                )

            message = llm.invoke([SystemMessage(content=system), HumanMessage(content=prompt)])
            usage = message.usage_metadata or {}
            return LLMResult(
                text=message.content if isinstance(message.content, str) else str(message.content),
                prompt_tokens=_count(usage.get("input_tokens")),
                completion_tokens=_count(usage.get("output_tokens")),
                total_tokens=_count(usage.get("total_tokens")),
            )
        except Exception as e:
            logger.error(f"LLM call failed ({self.llm_type}): {e}")
            raise UpstreamError("Error al generar la planeación", cause=e) from e
