from __future__ import annotations

import io
import logging
from collections import OrderedDict
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from django.core.exceptions import ObjectDoesNotExist
from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone
from openpyxl import Workbook
from openpyxl.utils import get_column_letter

from .models import (
    Commission,
    CommissionStatus,
    Installment,
    InstallmentStatus,
    SDRAssignment,
    SDRCommission,
    display_name,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
CURRENCY_FORMAT = "R$ #,##0.00"

COMMISSION_STATUS_BY_INSTALLMENT = {
    InstallmentStatus.PAID: CommissionStatus.RELEASED,
    InstallmentStatus.OVERDUE: CommissionStatus.SUSPENDED,
    InstallmentStatus.CANCELLED: CommissionStatus.CANCELLED,
    InstallmentStatus.REFUNDED: CommissionStatus.CANCELLED,
    InstallmentStatus.CHARGEBACK: CommissionStatus.CANCELLED,
}


def commission_status_for(installment_status: str) -> str:
    return COMMISSION_STATUS_BY_INSTALLMENT.get(installment_status, CommissionStatus.PENDING)


def to_cents(value) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def commission_value(installment_value, percent) -> Decimal:
    return to_cents(Decimal(installment_value) * Decimal(percent) / Decimal("100"))


def competence_month(due_date: date) -> date:
    return due_date.replace(day=1)


def build_commission(installment: Installment, seller, percent) -> Commission:
    status = commission_status_for(installment.status)
    return Commission.objects.create(
        installment=installment,
        seller=seller,
        installment_value=installment.value,
        commission_percent=percent,
        commission_value=commission_value(installment.value, percent),
        competence_month=competence_month(installment.due_date),
        status=status,
        released_at=timezone.now() if status == CommissionStatus.RELEASED else None,
    )


def build_sdr_commission(installment: Installment, assignment: SDRAssignment) -> SDRCommission:
    status = commission_status_for(installment.status)
    return SDRCommission.objects.create(
        assignment=assignment,
        installment=installment,
        sdr=assignment.sdr,
        installment_value=installment.value,
        commission_percent=assignment.commission_percent,
        commission_value=commission_value(installment.value, assignment.commission_percent),
        competence_month=competence_month(installment.due_date),
        status=status,
        released_at=timezone.now() if status == CommissionStatus.RELEASED else None,
    )


def sync_commission_status(commission, installment_status: str) -> bool:
    new_status = commission_status_for(installment_status)
    if commission.status == new_status:
        return False
    commission.status = new_status
    if new_status == CommissionStatus.RELEASED:
        commission.released_at = timezone.now()
    else:
        commission.released_at = None
    commission.save(update_fields=["status", "released_at", "updated_at"])
    return True


def _linked_commissions(installment: Installment) -> list:
    linked = []
    for attr in ("commission", "sdr_commission"):
        try:
            linked.append(getattr(installment, attr))
        except ObjectDoesNotExist:
            continue
    return linked


def set_installment_status(
    installment: Installment,
    status: str,
    payment_date: date | None = None,
) -> Installment:
    """Move an installment to ``status`` and carry its seller and SDR commissions along.

    A paid installment without ``payment_date`` keeps the one it already had.
    Leaving the paid state clears the payment date.
    """
    if status not in InstallmentStatus.values:
        raise ValueError(f"Status de parcela invalido: {status}")
    previous = installment.status
    with transaction.atomic():
        installment.status = status
        if status == InstallmentStatus.PAID:
            installment.payment_date = payment_date or installment.payment_date or timezone.localdate()
        else:
            installment.payment_date = payment_date
        installment.save(update_fields=["status", "payment_date", "updated_at"])
        for linked in _linked_commissions(installment):
            sync_commission_status(linked, status)
    if previous != status:
        logger.info("Parcela %s alterada de %s para %s", installment.pk, previous, status)
    return installment


def commission_summary(queryset: QuerySet, today: date | None = None) -> dict[str, Decimal]:
    today = today or timezone.localdate()
    month_start = competence_month(today)
    summary = {
        "total_released": Decimal("0"),
        "total_pending": Decimal("0"),
        "total_suspended": Decimal("0"),
        "current_month_released": Decimal("0"),
        "current_month_pending": Decimal("0"),
    }
    for commission in queryset:
        value = commission.commission_value or Decimal("0")
        in_month = commission.competence_month == month_start
        if commission.status == CommissionStatus.RELEASED:
            summary["total_released"] += value
            if in_month:
                summary["current_month_released"] += value
        elif commission.status == CommissionStatus.PENDING:
            summary["total_pending"] += value
            if in_month:
                summary["current_month_pending"] += value
        elif commission.status == CommissionStatus.SUSPENDED:
            summary["total_suspended"] += value
    return summary


def seller_performance(sales: QuerySet) -> list[dict]:
    rows: "OrderedDict[int | None, dict]" = OrderedDict()
    sales = sales.select_related("seller").prefetch_related("installments__commission")
    for sale in sales:
        key = sale.seller_id
        row = rows.get(key)
        if row is None:
            row = {
                "seller_id": key,
                "seller_name": display_name(sale.seller) if sale.seller else "Sem vendedor",
                "sales_count": 0,
                "revenue": Decimal("0"),
                "commission_released": Decimal("0"),
                "commission_pending": Decimal("0"),
                "commission_suspended": Decimal("0"),
                "received": Decimal("0"),
                "pending": Decimal("0"),
                "overdue": Decimal("0"),
            }
            rows[key] = row
        row["sales_count"] += 1
        row["revenue"] += sale.total_value or Decimal("0")
        for installment in sale.installments.all():
            if installment.status == InstallmentStatus.PAID:
                row["received"] += installment.value
            elif installment.status == InstallmentStatus.PENDING:
                row["pending"] += installment.value
            elif installment.status == InstallmentStatus.OVERDUE:
                row["overdue"] += installment.value
            try:
                commission = installment.commission
            except Commission.DoesNotExist:
                continue
            if commission.status == CommissionStatus.RELEASED:
                row["commission_released"] += commission.commission_value
            elif commission.status == CommissionStatus.PENDING:
                row["commission_pending"] += commission.commission_value
            elif commission.status == CommissionStatus.SUSPENDED:
                row["commission_suspended"] += commission.commission_value

    result = []
    for row in rows.values():
        base = row["received"] + row["pending"] + row["overdue"]
        if base > 0:
            row["default_rate"] = float((row["overdue"] / base * 100).quantize(CENT))
        else:
            row["default_rate"] = 0.0
        result.append(row)
    result.sort(key=lambda item: item["revenue"], reverse=True)
    return result


def _autosize(sheet) -> None:
    for idx, header in enumerate(sheet[1], start=1):
        column_letter = get_column_letter(idx)
        width = max(14, len(str(header.value)) + 4)
        sheet.column_dimensions[column_letter].width = width


def _format_currency_columns(sheet, headers: list[str], columns: list[str]) -> None:
    for name in columns:
        col = headers.index(name) + 1
        for cell in sheet[get_column_letter(col)][1:]:
            cell.number_format = CURRENCY_FORMAT


def export_commissions_xlsx(queryset: QuerySet) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Comissoes"

    headers = [
        "Vendedor",
        "Cliente",
        "Produto",
        "Parcela",
        "Valor Parcela",
        "Percentual",
        "Comissao",
        "Competencia",
        "Status",
    ]
    sheet.append(headers)

    queryset = queryset.select_related("seller", "installment__sale")
    for commission in queryset:
        installment = commission.installment
        sale = installment.sale
        sheet.append(
            [
                display_name(commission.seller),
                sale.client_name,
                sale.product_name,
                f"{installment.installment_number}/{installment.total_installments}",
                float(commission.installment_value),
                float(commission.commission_percent),
                float(commission.commission_value),
                commission.competence_month.strftime("%m/%Y"),
                commission.get_status_display(),
            ]
        )

    _format_currency_columns(sheet, headers, ["Valor Parcela", "Comissao"])
    _autosize(sheet)

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def export_seller_performance_xlsx(rows: list[dict]) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Desempenho"

    headers = [
        "Vendedor",
        "Total Vendas",
        "Faturamento",
        "Comissao Liberada",
        "Comissao Pendente",
        "Comissao Suspensa",
        "Recebido",
        "A Receber",
        "Em Atraso",
        "Inadimplencia (%)",
    ]
    sheet.append(headers)
    for row in rows:
        sheet.append(
            [
                row["seller_name"],
                row["sales_count"],
                float(row["revenue"]),
                float(row["commission_released"]),
                float(row["commission_pending"]),
                float(row["commission_suspended"]),
                float(row["received"]),
                float(row["pending"]),
                float(row["overdue"]),
                row["default_rate"],
            ]
        )

    _format_currency_columns(
        sheet,
        headers,
        [
            "Faturamento",
            "Comissao Liberada",
            "Comissao Pendente",
            "Comissao Suspensa",
            "Recebido",
            "A Receber",
            "Em Atraso",
        ],
    )
    _autosize(sheet)

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
