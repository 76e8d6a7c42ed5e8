from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterator

from django.conf import settings

from .integrations import (
    AsaasApiError,
    IntegrationConfigError,
    request_json,
    stored_integration_settings,
)

logger = logging.getLogger(__name__)

PRODUCTION_URL = "https://api.asaas.com/v3"
SANDBOX_URL = "https://sandbox.asaas.com/api/v3"
PAGE_SIZE = 100


def _resolve_config() -> dict[str, str]:
    api_key = getattr(settings, "ASAAS_API_KEY", "")
    env = getattr(settings, "ASAAS_ENV", "production")
    base_url = getattr(settings, "ASAAS_BASE_URL", "")
    stored = stored_integration_settings()
    if stored:
        if (stored.asaas_api_key or "").strip():
            api_key = stored.asaas_api_key.strip()
        if stored.asaas_env:
            env = stored.asaas_env
    if not base_url:
        base_url = SANDBOX_URL if env == "sandbox" else PRODUCTION_URL
    return {"api_key": api_key, "base_url": base_url.rstrip("/")}


class AsaasClient:
    def __init__(self, api_key: str | None = None, base_url: str | None = None, timeout: int | None = None):
        config = _resolve_config()
        self.api_key = api_key or config["api_key"]
        self.base_url = (base_url or config["base_url"]).rstrip("/")
        self.timeout = timeout or getattr(settings, "ASAAS_REQUEST_TIMEOUT", 30)
        if not self.api_key:
            raise IntegrationConfigError("ASAAS_API_KEY nao configurada.")

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return request_json(
            "GET",
            f"{self.base_url}{path}",
            headers={"access_token": self.api_key},
            params=params,
            timeout=self.timeout,
            error_class=AsaasApiError,
        )

    def iter_payments(self, start_date: date | None = None, end_date: date | None = None) -> Iterator[dict]:
        offset = 0
        while True:
            params: dict[str, Any] = {"offset": offset, "limit": PAGE_SIZE}
            if start_date:
                params["dateCreated[ge]"] = start_date.isoformat()
            if end_date:
                params["dateCreated[le]"] = end_date.isoformat()
            page = self._get("/payments", params)
            items = page.get("data") or []
            logger.info("Asaas: %s pagamentos recebidos (offset=%s)", len(items), offset)
            yield from items
            if not page.get("hasMore"):
                break
            offset += PAGE_SIZE

    def get_payment(self, payment_id: str) -> dict:
        return self._get(f"/payments/{payment_id}")

    def get_customer(self, customer_id: str) -> dict:
        return self._get(f"/customers/{customer_id}")
