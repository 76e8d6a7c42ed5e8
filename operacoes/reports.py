"""Operations report generation.

Data for the selected scopes is consolidated into a JSON-friendly dict, sent
to the configured LLM and stored as Markdown. When the LLM is missing or
fails, a fixed Markdown template is rendered from the same data instead.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from django.core.exceptions import ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.db.models import Q
from django.utils import timezone

from . import llm_client
from .integrations import IntegrationError
from .models import (
    Event,
    Funnel,
    Report,
    ReportScope,
    ReportStatus,
    Sale,
    SaleStatus,
    SocialPost,
    Sponsor,
    Task,
    display_name,
)

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = """Voce e um analista de operacoes experiente do BORA Hub, uma plataforma de gestao empresarial.
Sua tarefa e gerar um relatorio executivo profissional baseado nos dados fornecidos.

REGRAS IMPORTANTES:
- Nunca invente numeros ou dados que nao foram fornecidos
- Se faltar dados em alguma area, sinalize explicitamente
- Use tom profissional e objetivo
- Formate em Markdown com secoes claras
- Destaque insights e recomendacoes
- Inclua alertas para riscos identificados
- Sugira proximos passos quando apropriado

ESTRUTURA DO RELATORIO:
1. Resumo Executivo (2-3 paragrafos resumindo os principais acontecimentos)
2. Blocos tematicos baseados no escopo selecionado
3. Alertas e Riscos (se houver)
4. Proximos Passos Recomendados"""

DEFAULT_REPORT_PROMPT = """Gere um relatorio executivo para o periodo de {{PERIODO_INICIO}} a {{PERIODO_FIM}}.

TIPO DE RELATORIO: {{TIPO}}
ESCOPOS SELECIONADOS: {{ESCOPOS}}

DADOS CONSOLIDADOS:
{{DADOS}}

Por favor, analise esses dados e gere um relatorio completo em Markdown."""

SUGGESTIONS_SYSTEM_PROMPT = "Voce e um assistente que retorna apenas JSON valido."

SUGGESTIONS_PROMPT = """Com base nos dados do relatorio gerado, sugira 3-5 outros relatorios uteis que poderiam ser gerados.

Para cada sugestao, forneca:
- title: Nome do relatorio
- description: Valor que ele entrega (1 frase)
- suggested_scope: Array com os escopos recomendados (events, funnels, sales, tasks, sponsors, content)

Responda APENAS com um JSON array valido, sem markdown ou explicacoes.

Relatorio gerado:
{{RELATORIO}}"""

_FENCE_RE = re.compile(r"```(?:json)?\s*|\s*```", re.IGNORECASE)
_PLACEHOLDER_RE = re.compile(r"{{\s*([A-Z_]+)\s*}}")


def _day_bounds(start: date, end: date) -> tuple[datetime, datetime]:
    tz = timezone.get_current_timezone()
    return (
        timezone.make_aware(datetime.combine(start, time.min), tz),
        timezone.make_aware(datetime.combine(end, time.max), tz),
    )


def _plain(value: Any) -> Any:
    return json.loads(json.dumps(value, cls=DjangoJSONEncoder))


def _event_rows(start: date, end: date) -> list[dict]:
    events = Event.objects.filter(event_date__gte=start, event_date__lte=end).order_by("event_date", "event_time")
    return [
        {
            "title": event.title,
            "event_date": event.event_date,
            "event_time": event.event_time,
            "event_type": event.event_type,
            "duration_minutes": event.duration_minutes,
            "location": event.location,
        }
        for event in events
    ]


def _funnel_rows(start: date, end: date) -> list[dict]:
    funnels = Funnel.objects.filter(
        Q(capture_start__lte=end) | Q(capture_start__isnull=True),
        Q(capture_end__gte=start) | Q(capture_end__isnull=True),
    ).exclude(capture_start__isnull=True, capture_end__isnull=True)
    return [
        {
            "name": funnel.name,
            "status": funnel.status,
            "capture_start": funnel.capture_start,
            "capture_end": funnel.capture_end,
        }
        for funnel in funnels
    ]


def _sales_data(start: date, end: date) -> tuple[list[dict], dict | None]:
    sales = list(
        Sale.objects.filter(sale_date__gte=start, sale_date__lte=end)
        .select_related("seller")
        .prefetch_related("installments")
    )
    rows = []
    for sale in sales:
        rows.append(
            {
                "external_id": sale.external_id,
                "client_name": sale.client_name,
                "product_name": sale.product_name,
                "total_value": sale.total_value,
                "installments_count": sale.installments_count,
                "platform": sale.platform,
                "status": sale.status,
                "sale_date": sale.sale_date,
                "seller": display_name(sale.seller) if sale.seller else None,
                "installments": [
                    {
                        "number": installment.installment_number,
                        "value": installment.value,
                        "due_date": installment.due_date,
                        "status": installment.status,
                    }
                    for installment in sale.installments.all()
                ],
            }
        )
    if not sales:
        return rows, None
    total_revenue = sum((sale.total_value for sale in sales), Decimal("0"))
    summary = {
        "total": len(sales),
        "approved": sum(1 for sale in sales if sale.status == SaleStatus.ACTIVE),
        "totalRevenue": total_revenue,
        "avgTicket": (total_revenue / len(sales)).quantize(Decimal("0.01")),
    }
    return rows, summary


def _tasks_data(start: date, end: date) -> tuple[list[dict], dict | None]:
    start_dt, end_dt = _day_bounds(start, end)
    tasks = list(
        Task.objects.filter(created_at__gte=start_dt, created_at__lte=end_dt).select_related("assignee")
    )
    rows = []
    by_person: dict[str, dict[str, int]] = {}
    for task in tasks:
        name = display_name(task.assignee) if task.assignee else "Nao atribuida"
        rows.append(
            {
                "title": task.title,
                "priority": task.priority,
                "assignee": name,
                "due_date": task.due_date,
                "completed": task.completed,
            }
        )
        stats = by_person.setdefault(name, {"total": 0, "completed": 0})
        stats["total"] += 1
        if task.completed:
            stats["completed"] += 1
    return rows, (by_person or None)


def _sponsor_rows(start: date, end: date) -> list[dict]:
    start_dt, end_dt = _day_bounds(start, end)
    sponsors = Sponsor.objects.filter(created_at__gte=start_dt, created_at__lte=end_dt)
    return [
        {
            "name": sponsor.name,
            "stage": sponsor.stage,
            "segment": sponsor.segment,
            "proposal_value": sponsor.proposal_value,
            "next_followup_date": sponsor.next_followup_date,
        }
        for sponsor in sponsors
    ]


def _post_rows(start: date, end: date) -> list[dict]:
    posts = SocialPost.objects.filter(scheduled_date__gte=start, scheduled_date__lte=end)
    return [
        {
            "theme": post.theme,
            "profile": post.profile,
            "post_type": post.post_type,
            "status": post.status,
            "scheduled_date": post.scheduled_date,
        }
        for post in posts
    ]


def consolidate(scope: list[str], start: date, end: date) -> dict[str, Any]:
    data: dict[str, Any] = {}
    if ReportScope.EVENTS in scope:
        data["events"] = _event_rows(start, end)
    if ReportScope.FUNNELS in scope:
        data["funnels"] = _funnel_rows(start, end)
    if ReportScope.SALES in scope:
        data["sales"], summary = _sales_data(start, end)
        if summary:
            data["salesSummary"] = summary
    if ReportScope.TASKS in scope:
        data["tasks"], summary = _tasks_data(start, end)
        if summary:
            data["tasksSummary"] = summary
    if ReportScope.SPONSORS in scope:
        data["sponsors"] = _sponsor_rows(start, end)
    if ReportScope.CONTENT in scope:
        data["posts"] = _post_rows(start, end)
    return _plain(data)


def render_template(template: str, values: dict[str, str]) -> str:
    return _PLACEHOLDER_RE.sub(lambda match: values.get(match.group(1), match.group(0)), template)


def resolve_prompt_templates() -> tuple[str, str]:
    stored = llm_client.stored_llm_settings()
    system_prompt = (stored.system_prompt or "").strip() if stored else ""
    report_prompt = (stored.report_prompt or "").strip() if stored else ""
    return system_prompt or DEFAULT_SYSTEM_PROMPT, report_prompt or DEFAULT_REPORT_PROMPT


def build_prompts(report: Report, data: dict[str, Any]) -> tuple[str, str]:
    system_prompt, report_prompt = resolve_prompt_templates()
    user_prompt = render_template(
        report_prompt,
        {
            "PERIODO_INICIO": report.period_start.isoformat(),
            "PERIODO_FIM": report.period_end.isoformat(),
            "TIPO": report.report_type,
            "ESCOPOS": ", ".join(report.scope),
            "DADOS": json.dumps(data, indent=2, ensure_ascii=False),
        },
    )
    return system_prompt, user_prompt


def parse_suggestions(text: str) -> list[dict]:
    cleaned = _FENCE_RE.sub("", text or "").strip()
    try:
        parsed = json.loads(cleaned)
    except ValueError:
        logger.warning("Sugestoes de relatorio invalidas: %s", (text or "")[:200])
        return []
    if not isinstance(parsed, list):
        return []
    suggestions = []
    for item in parsed:
        if not isinstance(item, dict) or not item.get("title"):
            continue
        scope = [value for value in item.get("suggested_scope") or [] if value in ReportScope.values]
        suggestions.append(
            {
                "title": str(item["title"]),
                "description": str(item.get("description") or ""),
                "suggested_scope": scope,
            }
        )
    return suggestions


def format_brl(value) -> str:
    amount = Decimal(str(value or 0)).quantize(Decimal("0.01"))
    text = f"{amount:,.2f}"
    return text.replace(",", "X").replace(".", ",").replace("X", ".")


def render_fallback_report(data: dict[str, Any], start: date, end: date, scope: list[str]) -> str:
    lines = [
        "# Relatorio de Operacoes",
        "",
        f"**Periodo:** {start.isoformat()} a {end.isoformat()}",
        "",
        "---",
        "",
        "## Resumo Executivo",
        "",
        f"Este relatorio consolida os dados do periodo selecionado para os seguintes escopos: {', '.join(scope)}.",
        "",
    ]

    if ReportScope.EVENTS in scope and isinstance(data.get("events"), list):
        events = data["events"]
        lines += ["## Eventos", ""]
        if events:
            lines += [f"Total de eventos no periodo: **{len(events)}**", ""]
            lines += [f"- {event['title']} ({event['event_date']})" for event in events[:5]]
            if len(events) > 5:
                lines.append(f"- ... e mais {len(events) - 5} eventos")
        else:
            lines.append("Nenhum evento registrado no periodo.")
        lines.append("")

    if ReportScope.SALES in scope and data.get("salesSummary"):
        summary = data["salesSummary"]
        lines += [
            "## Vendas e Faturamento",
            "",
            f"- Total de vendas: **{summary['total']}**",
            f"- Vendas aprovadas: **{summary['approved']}**",
            f"- Faturamento total: **R$ {format_brl(summary['totalRevenue'])}**",
            f"- Ticket medio: **R$ {format_brl(summary['avgTicket'])}**",
            "",
        ]

    if ReportScope.TASKS in scope and data.get("tasksSummary"):
        lines += ["## Tarefas por Pessoa", ""]
        for person, stats in data["tasksSummary"].items():
            completion = round(stats["completed"] / stats["total"] * 100) if stats["total"] else 0
            lines.append(f"- **{person}**: {stats['completed']}/{stats['total']} concluidas ({completion}%)")
        lines.append("")

    if ReportScope.FUNNELS in scope and isinstance(data.get("funnels"), list):
        funnels = data["funnels"]
        lines += ["## Funis de Marketing", ""]
        if funnels:
            lines += [f"Total de funis ativos: **{len(funnels)}**", ""]
            lines += [f"- {funnel['name']} ({funnel['status'] or 'em andamento'})" for funnel in funnels[:5]]
        else:
            lines.append("Nenhum funil ativo no periodo.")
        lines.append("")

    lines += [
        "---",
        "",
        "## Proximos Passos",
        "",
        "> Analise os dados acima e defina acoes prioritarias para o proximo periodo.",
        "",
        "*Relatorio gerado automaticamente pelo BORA Hub.*",
        "",
    ]
    return "\n".join(lines)


def validate_request(report_type: str, start: date, end: date, scope: list[str]) -> None:
    errors = {}
    if end < start:
        errors["period_end"] = "Fim do periodo deve ser posterior ao inicio."
    if not scope:
        errors["scope"] = "Selecione ao menos um escopo."
    else:
        invalid = [value for value in scope if value not in ReportScope.values]
        if invalid:
            errors["scope"] = f"Escopos invalidos: {', '.join(invalid)}."
    if errors:
        raise ValidationError(errors)


def _generate_with_llm(report: Report, data: dict[str, Any]) -> tuple[str, list[dict]]:
    api_config = llm_client.resolve_api_settings()
    system_prompt, user_prompt = build_prompts(report, data)
    content = llm_client.chat_completion(
        [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        api_config=api_config,
    )
    suggestions: list[dict] = []
    try:
        raw = llm_client.chat_completion(
            [
                {"role": "system", "content": SUGGESTIONS_SYSTEM_PROMPT},
                {"role": "user", "content": render_template(SUGGESTIONS_PROMPT, {"RELATORIO": content[:4000]})},
            ],
            api_config=api_config,
        )
    except IntegrationError as exc:
        logger.warning("Falha ao gerar sugestoes de relatorio: %s", exc)
    else:
        suggestions = parse_suggestions(raw)
    return content, suggestions


def generate_report(
    title: str,
    report_type: str,
    period_start: date,
    period_end: date,
    scope: list[str],
    filters: dict | None = None,
    user=None,
) -> Report:
    validate_request(report_type, period_start, period_end, scope)
    report = Report.objects.create(
        title=title,
        report_type=report_type,
        period_start=period_start,
        period_end=period_end,
        scope=list(scope),
        filters=filters or {},
        generated_by=user,
        status=ReportStatus.GENERATING,
    )
    try:
        data = consolidate(scope, period_start, period_end)
        suggestions: list[dict] = []
        if llm_client.is_configured():
            try:
                content, suggestions = _generate_with_llm(report, data)
            except IntegrationError as exc:
                logger.warning("Relatorio %s gerado pelo modelo padrao: %s", report.pk, exc)
                content = render_fallback_report(data, period_start, period_end, scope)
        else:
            logger.warning("API de IA nao configurada; relatorio %s gerado pelo modelo padrao.", report.pk)
            content = render_fallback_report(data, period_start, period_end, scope)
    except Exception as exc:
        logger.exception("Falha ao gerar relatorio %s", report.pk)
        report.status = ReportStatus.ERROR
        report.error_message = str(exc)
        report.save(update_fields=["status", "error_message", "updated_at"])
        raise

    report.consolidated_data = data
    report.content_markdown = content
    report.ai_suggestions = suggestions
    report.status = ReportStatus.COMPLETED
    report.generated_at = timezone.now()
    report.save()
    return report
