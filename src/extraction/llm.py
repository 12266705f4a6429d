"""Generation-model calls that return raw JSON text (Gemini or Claude)."""

from __future__ import annotations

import logging
from typing import Any

import google.generativeai as genai
from anthropic import Anthropic, APIConnectionError, APIStatusError
from anthropic.types import TextBlock
from google.api_core import exceptions as google_exceptions

from src.config import settings
from src.errors import UpstreamError, ValidationError
from src.pipeline_config import LLMProvider

logger = logging.getLogger(__name__)

GENERATION_CONFIG: dict[str, Any] = {
    "temperature": 0.2,
    "top_p": 0.95,
    "top_k": 64,
    "max_output_tokens": 2048,
    "response_mime_type": "application/json",
}


def current_provider() -> LLMProvider:
    try:
        return LLMProvider(settings.llm_provider.lower())
    except ValueError as exc:
        raise ValidationError(f"Unknown LLM provider: {settings.llm_provider}") from exc


def is_configured(provider: LLMProvider | None = None) -> bool:
    """Return True if the provider has an API key."""
    provider = provider or current_provider()
    if provider is LLMProvider.ANTHROPIC:
        return bool(settings.anthropic_api_key)
    return bool(settings.gemini_api_key)


def model_name(provider: LLMProvider | None = None) -> str:
    provider = provider or current_provider()
    return settings.llm_model if provider is LLMProvider.ANTHROPIC else settings.gemini_model


def generate_json(system: str, prompt: str, provider: LLMProvider | None = None) -> str:
    """Send the prompt to the configured model and return its raw text.

    Raises:
        UpstreamError: the provider rejected the request or was unreachable.
    """
    provider = provider or current_provider()
    if provider is LLMProvider.ANTHROPIC:
        return _generate_anthropic(system, prompt)
    return _generate_gemini(system, prompt)


def _generate_gemini(system: str, prompt: str) -> str:
    genai.configure(api_key=settings.gemini_api_key)  # type: ignore[attr-defined]
    model = genai.GenerativeModel(  # type: ignore[attr-defined]
        settings.gemini_model,
        system_instruction=system,
        generation_config=GENERATION_CONFIG,
    )
    try:
        response = model.generate_content(prompt)
    except google_exceptions.GoogleAPICallError as exc:
        logger.error("Gemini API error: %s %s", exc.code, exc.message)
        raise UpstreamError(
            "Gemini API request failed",
            provider="gemini",
            status=int(exc.code) if exc.code is not None else None,
            details=str(exc.message),
        ) from exc
    except Exception as exc:
        logger.exception("Gemini request could not be completed")
        raise UpstreamError(
            "Gemini API request failed", provider="gemini", details=str(exc)
        ) from exc

    try:
        text: str = response.text
    except ValueError:
        # Blocked or empty candidates: no text part to read.
        logger.warning("Gemini response contained no text part")
        return ""
    logger.debug("Raw Gemini response: %s", text)
    return text


def _generate_anthropic(system: str, prompt: str) -> str:
    client = Anthropic(api_key=settings.anthropic_api_key)
    try:
        response = client.messages.create(
            model=settings.llm_model,
            max_tokens=2048,
            temperature=0.2,
            system=system,
            messages=[{"role": "user", "content": prompt}],
        )
    except APIStatusError as exc:
        logger.error("Claude API error: %s %s", exc.status_code, exc.message)
        raise UpstreamError(
            "Claude API request failed",
            provider="anthropic",
            status=exc.status_code,
            details=exc.message,
        ) from exc
    except APIConnectionError as exc:
        raise UpstreamError(
            "Claude API unreachable", provider="anthropic", details=str(exc)
        ) from exc

    parts = [block.text for block in response.content if isinstance(block, TextBlock)]
    text = "".join(parts)
    logger.debug("Raw Claude response: %s", text)
    return text


def check_model(provider: LLMProvider | None = None) -> dict[str, Any]:
    """Probe whether the configured model is reachable.

    Returns a status dict rather than raising; used by ``/health/ai``.
    """
    provider = provider or current_provider()
    name = model_name(provider)
    if not is_configured(provider):
        return {"ok": False, "provider": provider.value, "model": name, "error": "missing API key"}

    try:
        if provider is LLMProvider.ANTHROPIC:
            Anthropic(api_key=settings.anthropic_api_key).models.retrieve(name)
        else:
            genai.configure(api_key=settings.gemini_api_key)  # type: ignore[attr-defined]
            genai.get_model(f"models/{name}")  # type: ignore[attr-defined]
    except Exception as exc:
        logger.warning("Model connectivity check failed for %s: %s", name, exc)
        return {
            "ok": False,
            "provider": provider.value,
            "model": name,
            "error": "connectivity_failed",
            "message": str(exc),
        }
    return {"ok": True, "provider": provider.value, "model": name, "available": True}
