from __future__ import annotations

import logging
from typing import Any

from django.conf import settings
from django.db.utils import OperationalError, ProgrammingError

from .integrations import IntegrationConfigError, LLMApiError, request_json

logger = logging.getLogger(__name__)


def _clean(value: str | None) -> str:
    return value.strip() if isinstance(value, str) else ""


def stored_llm_settings():
    try:
        from .models import LLMSettings

        return LLMSettings.objects.first()
    except (OperationalError, ProgrammingError):
        return None


def resolve_api_settings() -> dict[str, Any]:
    config = {
        "api_url": getattr(settings, "LLM_API_URL", ""),
        "api_key": getattr(settings, "LLM_API_KEY", ""),
        "api_model": getattr(settings, "LLM_MODEL", ""),
        "request_timeout": getattr(settings, "LLM_REQUEST_TIMEOUT", 60),
    }
    stored = stored_llm_settings()
    if stored:
        for key in ("api_url", "api_key", "api_model"):
            value = _clean(getattr(stored, key))
            if value:
                config[key] = value
        if stored.request_timeout:
            config["request_timeout"] = stored.request_timeout
    return config


def is_configured(config: dict[str, Any] | None = None) -> bool:
    config = config or resolve_api_settings()
    return bool(config.get("api_url") and config.get("api_key"))


def chat_completion(
    messages: list[dict[str, str]],
    api_config: dict[str, Any] | None = None,
    temperature: float = 0.2,
) -> str:
    api_config = api_config or resolve_api_settings()
    if not is_configured(api_config):
        raise IntegrationConfigError("API de IA nao configurada.")

    payload = {
        "model": api_config["api_model"],
        "messages": messages,
        "temperature": temperature,
    }
    logger.info("Chamada de IA modelo=%s mensagens=%s", api_config["api_model"], len(messages))
    data = request_json(
        "POST",
        api_config["api_url"],
        headers={"Authorization": f"Bearer {api_config['api_key']}"},
        payload=payload,
        timeout=api_config.get("request_timeout") or 60,
        error_class=LLMApiError,
    )
    choices = data.get("choices") or [{}]
    content = (choices[0].get("message") or {}).get("content") or ""
    if not content.strip():
        raise LLMApiError("Resposta da API de IA vazia.")
    return content
