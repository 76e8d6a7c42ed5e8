from __future__ import annotations

import json
import logging
import re
import socket
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit
from urllib.request import Request, urlopen

from django.conf import settings
from django.db.utils import OperationalError, ProgrammingError

logger = logging.getLogger(__name__)

SECRET_HEADERS = {"authorization", "access_token"}
SECRET_PARAMS = {"client_id", "client_secret", "access_token", "api_key", "token"}


class IntegrationError(RuntimeError):
    service = "API"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def public_message(self) -> str:
        base = str(self) if str(self) else f"Falha ao chamar a API {self.service}."
        if self.status_code:
            return f"Falha ao chamar a API {self.service} ({self.status_code}). {base}"
        return base

    @property
    def is_timeout(self) -> bool:
        return self.status_code is None and "timeout" in str(self).lower()


class IntegrationConfigError(IntegrationError):
    pass


class AsaasApiError(IntegrationError):
    service = "Asaas"


class HotmartApiError(IntegrationError):
    service = "Hotmart"


class LLMApiError(IntegrationError):
    service = "de IA"


def _should_log() -> bool:
    return getattr(settings, "INTEGRATIONS_LOG_REQUESTS", True)


def mask_token(value: str, keep: int = 4) -> str:
    if not value:
        return ""
    if len(value) <= keep * 2:
        return "*" * len(value)
    return f"{value[:keep]}...{value[-keep:]}"


def sanitize_message(value: str, limit: int = 160) -> str:
    if not value:
        return ""
    compact = re.sub(r"\s+", " ", value).strip()
    if len(compact) <= limit:
        return compact
    return f"{compact[:limit]}..."


def masked_headers(headers: dict[str, str]) -> dict[str, str]:
    masked = {}
    for key, value in headers.items():
        if key.lower() in SECRET_HEADERS:
            masked[key] = mask_token(str(value))
        else:
            masked[key] = value
    return masked


def masked_url(url: str) -> str:
    parts = urlsplit(url)
    if not parts.query:
        return url
    query = [
        (key, mask_token(value) if key.lower() in SECRET_PARAMS else value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(query)))


def stored_integration_settings():
    try:
        from .models import IntegrationSettings

        return IntegrationSettings.objects.first()
    except (OperationalError, ProgrammingError):
        return None


def _error_message(exc: HTTPError) -> str:
    try:
        charset = exc.headers.get_content_charset() or "utf-8"
        body = exc.read().decode(charset, errors="replace")
    except (AttributeError, OSError):
        return str(exc)
    try:
        data = json.loads(body)
    except ValueError:
        return sanitize_message(body, limit=240) or str(exc)
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
        errors = data.get("errors")
        if isinstance(errors, list) and errors and isinstance(errors[0], dict):
            return errors[0].get("description") or body
        if isinstance(error, str):
            return data.get("error_description") or error
    return sanitize_message(body, limit=240)


def request_json(
    method: str,
    url: str,
    *,
    headers: dict[str, str] | None = None,
    params: dict[str, Any] | None = None,
    payload: Any = None,
    timeout: int = 30,
    error_class: type[IntegrationError] = IntegrationError,
) -> Any:
    """Send a JSON request and decode the JSON answer.

    HTTP and network failures are logged and re-raised as ``error_class``.
    """
    headers = dict(headers or {})
    headers.setdefault("Accept", "application/json")
    if params:
        clean_params = {key: value for key, value in params.items() if value not in (None, "")}
        if clean_params:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}{urlencode(clean_params)}"
    data = None
    if payload is not None:
        data = json.dumps(payload).encode("utf-8")
        headers.setdefault("Content-Type", "application/json")
    if _should_log():
        logger.info(
            "%s request %s %s headers=%s",
            error_class.service,
            method,
            masked_url(url),
            masked_headers(headers),
        )

    request_obj = Request(url, data=data, headers=headers, method=method)
    try:
        with urlopen(request_obj, timeout=timeout) as response:
            raw = response.read()
            charset = response.headers.get_content_charset() or "utf-8"
            status = getattr(response, "status", 200)
    except HTTPError as exc:
        error_message = _error_message(exc)
        logger.warning(
            "%s API error status=%s message=%s",
            error_class.service,
            getattr(exc, "code", None),
            error_message,
        )
        raise error_class(error_message, status_code=getattr(exc, "code", None)) from exc
    except (URLError, socket.timeout, TimeoutError) as exc:
        reason = getattr(exc, "reason", exc)
        logger.warning("%s API unreachable: %s", error_class.service, reason)
        if isinstance(exc, (socket.timeout, TimeoutError)) or isinstance(reason, (socket.timeout, TimeoutError)):
            raise error_class("Timeout ao chamar a API.") from exc
        raise error_class(f"Falha de conexao: {reason}") from exc

    body = raw.decode(charset, errors="replace")
    if _should_log():
        logger.info(
            "%s response status=%s body=%s",
            error_class.service,
            status,
            sanitize_message(body, limit=240),
        )
    if not body.strip():
        return {}
    try:
        return json.loads(body)
    except ValueError as exc:
        raise error_class("Resposta da API invalida.") from exc
