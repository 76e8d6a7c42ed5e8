from datetime import date
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from operacoes import llm_client, reports
from operacoes.integrations import LLMApiError
from operacoes.models import Event, Funnel, ReportStatus, Task
from operacoes.sales import cancel_sale


def test_format_brl():
    assert reports.format_brl(Decimal("1234.5")) == "1.234,50"
    assert reports.format_brl("1000000") == "1.000.000,00"
    assert reports.format_brl(None) == "0,00"


def test_render_template_keeps_unknown_placeholders():
    text = reports.render_template("De {{PERIODO_INICIO}} a {{ OUTRO }}", {"PERIODO_INICIO": "2024-01-01"})

    assert text == "De 2024-01-01 a {{ OUTRO }}"


def test_parse_suggestions_strips_fences_and_filters_scopes():
    raw = """```json
    [
      {"title": "Vendas por vendedor", "description": "Compara vendedores", "suggested_scope": ["sales", "foo"]},
      {"description": "sem titulo"},
      "texto solto"
    ]
    ```"""

    suggestions = reports.parse_suggestions(raw)

    assert suggestions == [
        {
            "title": "Vendas por vendedor",
            "description": "Compara vendedores",
            "suggested_scope": ["sales"],
        }
    ]


@pytest.mark.parametrize("raw", ["nao e json", '{"title": "objeto"}', ""])
def test_parse_suggestions_rejects_invalid_payloads(raw):
    assert reports.parse_suggestions(raw) == []


def test_validate_request():
    with pytest.raises(ValidationError) as excinfo:
        reports.validate_request("weekly", date(2024, 2, 1), date(2024, 1, 1), ["sales", "clima"])

    assert set(excinfo.value.message_dict) == {"period_end", "scope"}

    with pytest.raises(ValidationError):
        reports.validate_request("weekly", date(2024, 1, 1), date(2024, 1, 31), [])


@pytest.mark.django_db
def test_consolidate_sales_summary(sale_factory):
    sale_factory(total_value=Decimal("1000.00"))
    cancelled = sale_factory(total_value=Decimal("500.00"))
    cancel_sale(cancelled)
    sale_factory(total_value=Decimal("999.00"), sale_date=date(2023, 12, 1))

    data = reports.consolidate(["sales"], date(2024, 1, 1), date(2024, 1, 31))

    assert len(data["sales"]) == 2
    assert data["salesSummary"] == {
        "total": 2,
        "approved": 1,
        "totalRevenue": "1500.00",
        "avgTicket": "750.00",
    }
    assert len(data["sales"][0]["installments"]) == 3


@pytest.mark.django_db
def test_consolidate_only_requested_scopes(collaborator):
    Event.objects.create(title="Live de lancamento", event_date=date(2024, 1, 10))
    Funnel.objects.create(name="Captacao Janeiro", capture_start=date(2024, 1, 5))
    Funnel.objects.create(name="Sem datas")
    Task.objects.create(title="Revisar copy", assignee=collaborator, completed=True)

    data = reports.consolidate(["events", "funnels", "tasks"], date(2024, 1, 1), date(2030, 12, 31))

    assert set(data) == {"events", "funnels", "tasks", "tasksSummary"}
    assert data["events"][0]["event_date"] == "2024-01-10"
    assert [item["name"] for item in data["funnels"]] == ["Captacao Janeiro"]
    assert data["tasksSummary"] == {"Colaborador": {"total": 1, "completed": 1}}


@pytest.mark.django_db
def test_generate_report_falls_back_without_llm(sale_factory, admin_user):
    sale_factory()

    report = reports.generate_report(
        "Semana 1",
        "weekly",
        date(2024, 1, 1),
        date(2024, 1, 31),
        ["sales", "events"],
        user=admin_user,
    )

    assert report.status == ReportStatus.COMPLETED
    assert report.generated_at is not None
    assert report.content_markdown.startswith("# Relatorio de Operacoes")
    assert "R$ 1.000,00" in report.content_markdown
    assert "Nenhum evento registrado no periodo." in report.content_markdown
    assert report.ai_suggestions == []
    assert report.consolidated_data["salesSummary"]["total"] == 1


@pytest.mark.django_db
def test_generate_report_uses_llm(monkeypatch, settings, admin_user):
    settings.LLM_API_KEY = "chave-llm"
    prompts = []
    answers = [
        "# Relatorio da IA",
        '[{"title": "Funis", "description": "Conversao", "suggested_scope": ["funnels"]}]',
    ]

    def fake_chat(messages, api_config=None, temperature=0.2):
        prompts.append(messages)
        return answers.pop(0)

    monkeypatch.setattr(llm_client, "chat_completion", fake_chat)

    report = reports.generate_report(
        "Comercial", "commercial", date(2024, 1, 1), date(2024, 1, 31), ["sales"], user=admin_user
    )

    assert report.content_markdown == "# Relatorio da IA"
    assert report.ai_suggestions == [
        {"title": "Funis", "description": "Conversao", "suggested_scope": ["funnels"]}
    ]
    user_prompt = prompts[0][1]["content"]
    assert "2024-01-01 a 2024-01-31" in user_prompt
    assert "ESCOPOS SELECIONADOS: sales" in user_prompt


@pytest.mark.django_db
def test_generate_report_falls_back_when_llm_fails(monkeypatch, settings):
    settings.LLM_API_KEY = "chave-llm"

    def broken_chat(messages, api_config=None, temperature=0.2):
        raise LLMApiError("indisponivel", status_code=503)

    monkeypatch.setattr(llm_client, "chat_completion", broken_chat)

    report = reports.generate_report("Op", "operational", date(2024, 1, 1), date(2024, 1, 31), ["tasks"])

    assert report.status == ReportStatus.COMPLETED
    assert report.content_markdown.startswith("# Relatorio de Operacoes")


@pytest.mark.django_db
def test_generate_report_keeps_content_when_suggestions_fail(monkeypatch, settings):
    settings.LLM_API_KEY = "chave-llm"
    calls = {"count": 0}

    def flaky_chat(messages, api_config=None, temperature=0.2):
        calls["count"] += 1
        if calls["count"] == 2:
            raise LLMApiError("Timeout ao chamar a API.")
        return "# Conteudo"

    monkeypatch.setattr(llm_client, "chat_completion", flaky_chat)

    report = reports.generate_report("Op", "custom", date(2024, 1, 1), date(2024, 1, 31), ["content"])

    assert report.content_markdown == "# Conteudo"
    assert report.ai_suggestions == []


@pytest.mark.django_db
def test_generate_report_marks_error_on_unexpected_failure(monkeypatch):
    def explode(scope, start, end):
        raise RuntimeError("banco fora")

    monkeypatch.setattr(reports, "consolidate", explode)

    with pytest.raises(RuntimeError):
        reports.generate_report("X", "weekly", date(2024, 1, 1), date(2024, 1, 31), ["sales"])

    report = reports.Report.objects.get()
    assert report.status == ReportStatus.ERROR
    assert report.error_message == "banco fora"


@pytest.mark.django_db
def test_chat_completion_requires_configuration():
    from operacoes.integrations import IntegrationConfigError

    with pytest.raises(IntegrationConfigError):
        llm_client.chat_completion([{"role": "user", "content": "oi"}])


@pytest.mark.django_db
def test_chat_completion_reads_first_choice(monkeypatch, settings):
    settings.LLM_API_KEY = "chave-llm"
    monkeypatch.setattr(
        llm_client,
        "request_json",
        lambda *args, **kwargs: {"choices": [{"message": {"content": "resposta"}}]},
    )

    assert llm_client.chat_completion([{"role": "user", "content": "oi"}]) == "resposta"


@pytest.mark.django_db
def test_chat_completion_empty_answer_raises(monkeypatch, settings):
    settings.LLM_API_KEY = "chave-llm"
    monkeypatch.setattr(llm_client, "request_json", lambda *args, **kwargs: {"choices": []})

    with pytest.raises(LLMApiError):
        llm_client.chat_completion([{"role": "user", "content": "oi"}])
