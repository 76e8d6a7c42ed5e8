import io
import logging
import json
import socket
from email.message import Message
from urllib.error import HTTPError

import pytest

from operacoes import asaas_client, hotmart_client, integrations
from operacoes.asaas_client import AsaasClient
from operacoes.hotmart_client import HotmartClient
from operacoes.integrations import (
    AsaasApiError,
    HotmartApiError,
    IntegrationConfigError,
    mask_token,
    masked_headers,
    masked_url,
    request_json,
    sanitize_message,
)


class FakeResponse:
    def __init__(self, body, status=200):
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        self.status = status
        self.headers = Message()

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *args):
        return False


def fake_urlopen(response=None, error=None, calls=None):
    def _urlopen(request, timeout=None):
        if calls is not None:
            calls.append(request)
        if error is not None:
            raise error
        return response

    return _urlopen


def http_error(code, body):
    return HTTPError("https://api.test/x", code, "erro", Message(), io.BytesIO(body.encode("utf-8")))


def test_mask_token_keeps_edges():
    assert mask_token("abcdefghijkl") == "abcd...ijkl"
    assert mask_token("curto") == "*****"
    assert mask_token("") == ""


def test_masked_headers_hides_secrets_only():
    headers = masked_headers({"Authorization": "Bearer 1234567890", "Accept": "application/json"})

    assert headers["Authorization"] == "Bear...7890"
    assert headers["Accept"] == "application/json"


def test_sanitize_message_compacts_and_truncates():
    assert sanitize_message("a\n\n  b") == "a b"
    assert sanitize_message("x" * 20, limit=5) == "xxxxx..."


def test_request_json_decodes_body_and_sends_params(monkeypatch):
    calls = []
    monkeypatch.setattr(
        integrations,
        "urlopen",
        fake_urlopen(FakeResponse(json.dumps({"ok": True})), calls=calls),
    )

    data = request_json("GET", "https://api.test/items", params={"page": 2, "empty": ""})

    assert data == {"ok": True}
    assert calls[0].full_url == "https://api.test/items?page=2"
    assert calls[0].get_method() == "GET"


def test_request_json_sends_json_payload(monkeypatch):
    calls = []
    monkeypatch.setattr(integrations, "urlopen", fake_urlopen(FakeResponse("{}"), calls=calls))

    request_json("POST", "https://api.test/items", payload={"name": "x"})

    assert json.loads(calls[0].data) == {"name": "x"}
    assert calls[0].get_header("Content-type") == "application/json"


def test_request_json_empty_body_returns_empty_dict(monkeypatch):
    monkeypatch.setattr(integrations, "urlopen", fake_urlopen(FakeResponse("")))

    assert request_json("GET", "https://api.test/") == {}


def test_request_json_invalid_body_raises(monkeypatch):
    monkeypatch.setattr(integrations, "urlopen", fake_urlopen(FakeResponse("<html>")))

    with pytest.raises(AsaasApiError, match="Resposta da API invalida."):
        request_json("GET", "https://api.test/", error_class=AsaasApiError)


def test_request_json_http_error_keeps_status_and_api_message(monkeypatch):
    body = json.dumps({"errors": [{"code": "invalid", "description": "Cliente inexistente"}]})
    monkeypatch.setattr(integrations, "urlopen", fake_urlopen(error=http_error(404, body)))

    with pytest.raises(AsaasApiError) as excinfo:
        request_json("GET", "https://api.test/", error_class=AsaasApiError)

    assert excinfo.value.status_code == 404
    assert str(excinfo.value) == "Cliente inexistente"
    assert excinfo.value.public_message == "Falha ao chamar a API Asaas (404). Cliente inexistente"


def test_request_json_timeout(monkeypatch):
    monkeypatch.setattr(integrations, "urlopen", fake_urlopen(error=socket.timeout("timed out")))

    with pytest.raises(HotmartApiError) as excinfo:
        request_json("GET", "https://api.test/", error_class=HotmartApiError)

    assert str(excinfo.value) == "Timeout ao chamar a API."
    assert excinfo.value.is_timeout


@pytest.mark.django_db
def test_asaas_client_requires_api_key():
    with pytest.raises(IntegrationConfigError):
        AsaasClient()


@pytest.mark.django_db
def test_asaas_client_follows_has_more(monkeypatch, settings):
    settings.ASAAS_API_KEY = "chave-asaas"
    pages = [
        {"data": [{"id": "pay_1"}, {"id": "pay_2"}], "hasMore": True},
        {"data": [{"id": "pay_3"}], "hasMore": False},
    ]
    seen = []

    def fake_request(method, url, **kwargs):
        seen.append((url, kwargs["params"]["offset"], kwargs["headers"]["access_token"]))
        return pages.pop(0)

    monkeypatch.setattr(asaas_client, "request_json", fake_request)

    payments = list(AsaasClient().iter_payments())

    assert [item["id"] for item in payments] == ["pay_1", "pay_2", "pay_3"]
    assert [offset for _, offset, _ in seen] == [0, 100]
    assert seen[0][0] == "https://api.asaas.com/v3/payments"
    assert seen[0][2] == "chave-asaas"


@pytest.mark.django_db
def test_asaas_sandbox_url(settings):
    settings.ASAAS_API_KEY = "chave"
    settings.ASAAS_ENV = "sandbox"
    settings.ASAAS_BASE_URL = ""

    assert AsaasClient().base_url == "https://sandbox.asaas.com/api/v3"


@pytest.fixture
def hotmart_credentials(settings):
    settings.HOTMART_CLIENT_ID = "cliente"
    settings.HOTMART_CLIENT_SECRET = "segredo"


@pytest.mark.django_db
def test_hotmart_client_requires_credentials():
    with pytest.raises(IntegrationConfigError):
        HotmartClient()


@pytest.mark.django_db
def test_hotmart_token_is_cached(monkeypatch, hotmart_credentials):
    calls = []

    def fake_request(method, url, **kwargs):
        calls.append((method, url))
        return {"access_token": "token-1", "expires_in": 3600}

    monkeypatch.setattr(hotmart_client, "request_json", fake_request)
    client = HotmartClient(pause=0)

    assert client.access_token() == "token-1"
    assert client.access_token() == "token-1"
    assert calls == [("POST", hotmart_client.TOKEN_URL)]


@pytest.mark.django_db
def test_hotmart_token_without_access_token_fails(monkeypatch, hotmart_credentials):
    monkeypatch.setattr(hotmart_client, "request_json", lambda *args, **kwargs: {})

    with pytest.raises(HotmartApiError):
        HotmartClient(pause=0).access_token()


@pytest.mark.django_db
def test_hotmart_paginates_with_page_token(monkeypatch, hotmart_credentials):
    pages = [
        {"items": [{"id": 1}], "page_info": {"next_page_token": "abc"}},
        {"items": [{"id": 2}], "page_info": {}},
    ]
    tokens = []

    def fake_request(method, url, **kwargs):
        if method == "POST":
            return {"access_token": "token", "expires_in": 3600}
        tokens.append(kwargs["params"].get("page_token"))
        return pages.pop(0)

    monkeypatch.setattr(hotmart_client, "request_json", fake_request)

    products = list(HotmartClient(pause=0).iter_products())

    assert [item["id"] for item in products] == [1, 2]
    assert tokens == [None, "abc"]


@pytest.mark.django_db
def test_hotmart_product_offers_404_is_empty(monkeypatch, hotmart_credentials):
    def fake_request(method, url, **kwargs):
        if method == "POST":
            return {"access_token": "token", "expires_in": 3600}
        raise HotmartApiError("nao encontrado", status_code=404)

    monkeypatch.setattr(hotmart_client, "request_json", fake_request)

    assert HotmartClient(pause=0).product_offers("ucode-1") == []


def test_masked_url_hides_secret_params():
    url = "https://api.test/token?grant_type=client_credentials&client_secret=SUPERSECRETVALUE999"

    masked = masked_url(url)

    assert "SUPERSECRETVALUE999" not in masked
    assert "grant_type=client_credentials" in masked
    assert masked_url("https://api.test/x") == "https://api.test/x"


@pytest.mark.django_db
def test_hotmart_token_request_keeps_secret_out_of_url_and_logs(monkeypatch, settings, caplog):
    settings.INTEGRATIONS_LOG_REQUESTS = True
    settings.HOTMART_CLIENT_ID = "client-id-123"
    settings.HOTMART_CLIENT_SECRET = "SUPERSECRETVALUE999"
    calls = []
    response = FakeResponse(json.dumps({"access_token": "token-1", "expires_in": 3600}))
    monkeypatch.setattr(integrations, "urlopen", fake_urlopen(response, calls=calls))
    monkeypatch.setattr(logging.getLogger("operacoes"), "propagate", True)

    with caplog.at_level("INFO", logger="operacoes.integrations"):
        HotmartClient(pause=0).access_token()

    assert calls[0].full_url == f"{hotmart_client.TOKEN_URL}?grant_type=client_credentials"
    assert calls[0].get_header("Authorization").startswith("Basic ")
    assert "Hotmart request POST" in caplog.text
    assert "SUPERSECRETVALUE999" not in caplog.text
    assert "client_secret" not in caplog.text
