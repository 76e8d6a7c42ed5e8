from __future__ import annotations

import base64
import logging
import time
from datetime import datetime
from typing import Any, Iterator

from django.conf import settings
from django.utils import timezone

from .integrations import (
    HotmartApiError,
    IntegrationConfigError,
    request_json,
    stored_integration_settings,
)

logger = logging.getLogger(__name__)

TOKEN_URL = "https://api-sec-vlc.hotmart.com/security/oauth/token"
API_BASE_URL = "https://developers.hotmart.com"
SALES_HISTORY_PATH = "/payments/api/v1/sales/history"
PRODUCTS_PATH = "/products/api/v1/products"
PAGE_SIZE = 50
PAGE_PAUSE_SECONDS = 0.1
TOKEN_REFRESH_MARGIN_SECONDS = 5 * 60

TRANSACTION_STATUS_ALIASES = {
    "COMPLETED": "COMPLETE",
    "CANCELED": "CANCELLED",
    "PROTEST": "PROTESTED",
}

# Process-wide cache: {"token": str, "expires_at": float}
_token_cache: dict[str, Any] = {}


def clear_token_cache() -> None:
    _token_cache.clear()


def to_epoch_ms(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def from_epoch_ms(value) -> datetime | None:
    if not value:
        return None
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.get_current_timezone())


def _resolve_credentials() -> dict[str, str]:
    client_id = getattr(settings, "HOTMART_CLIENT_ID", "")
    client_secret = getattr(settings, "HOTMART_CLIENT_SECRET", "")
    basic_token = getattr(settings, "HOTMART_BASIC_TOKEN", "")
    stored = stored_integration_settings()
    if stored:
        if (stored.hotmart_client_id or "").strip():
            client_id = stored.hotmart_client_id.strip()
        if (stored.hotmart_client_secret or "").strip():
            client_secret = stored.hotmart_client_secret.strip()
    if not basic_token and client_id and client_secret:
        basic_token = base64.b64encode(f"{client_id}:{client_secret}".encode("utf-8")).decode("ascii")
    return {"client_id": client_id, "client_secret": client_secret, "basic_token": basic_token}


class HotmartClient:
    def __init__(self, timeout: int | None = None, pause: float = PAGE_PAUSE_SECONDS):
        self.credentials = _resolve_credentials()
        self.timeout = timeout or getattr(settings, "HOTMART_REQUEST_TIMEOUT", 30)
        self.pause = pause
        if not self.credentials["basic_token"]:
            raise IntegrationConfigError("Credenciais Hotmart nao configuradas.")

    def access_token(self) -> str:
        now = time.time()
        cached = _token_cache.get("token")
        if cached and _token_cache.get("expires_at", 0) > now + TOKEN_REFRESH_MARGIN_SECONDS:
            return cached

        logger.info("Hotmart: solicitando novo access token")
        data = request_json(
            "POST",
            TOKEN_URL,
            headers={"Authorization": f"Basic {self.credentials['basic_token']}"},
            params={"grant_type": "client_credentials"},
            timeout=self.timeout,
            error_class=HotmartApiError,
        )
        token = data.get("access_token")
        if not token:
            raise HotmartApiError("Resposta sem access_token.")
        _token_cache["token"] = token
        _token_cache["expires_at"] = now + int(data.get("expires_in") or 0)
        return token

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return request_json(
            "GET",
            f"{API_BASE_URL}{path}",
            headers={"Authorization": f"Bearer {self.access_token()}"},
            params=params,
            timeout=self.timeout,
            error_class=HotmartApiError,
        )

    def _paginate(self, path: str, params: dict[str, Any]) -> Iterator[dict]:
        page_token = None
        while True:
            page_params = dict(params, max_results=PAGE_SIZE, page_token=page_token)
            data = self._get(path, page_params)
            yield from data.get("items") or []
            page_token = (data.get("page_info") or {}).get("next_page_token")
            if not page_token:
                break
            if self.pause:
                time.sleep(self.pause)

    def iter_sales(
        self,
        start: datetime,
        end: datetime,
        transaction_status: str | None = None,
    ) -> Iterator[dict]:
        params: dict[str, Any] = {
            "start_date": to_epoch_ms(start),
            "end_date": to_epoch_ms(end),
        }
        if transaction_status:
            normalized = transaction_status.strip().upper()
            params["transaction_status"] = TRANSACTION_STATUS_ALIASES.get(normalized, normalized)
        return self._paginate(SALES_HISTORY_PATH, params)

    def get_sale(self, transaction: str) -> dict | None:
        data = self._get(SALES_HISTORY_PATH, {"transaction": transaction})
        items = data.get("items") or []
        return items[0] if items else None

    def iter_products(self) -> Iterator[dict]:
        return self._paginate(PRODUCTS_PATH, {})

    def product_offers(self, ucode: str) -> list[dict]:
        try:
            data = self._get(f"{PRODUCTS_PATH}/{ucode}/offers")
        except HotmartApiError as exc:
            if exc.status_code == 404:
                logger.info("Hotmart: produto %s sem ofertas", ucode)
                return []
            raise
        return data.get("items") or []
