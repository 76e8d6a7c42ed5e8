from __future__ import annotations

import calendar
import logging
from datetime import date
from decimal import Decimal

from django.db import transaction

from .commissions import build_commission, to_cents
from .models import (
    DEFAULT_COMMISSION_PERCENT,
    Commission,
    CommissionStatus,
    Installment,
    InstallmentStatus,
    Sale,
    SaleStatus,
    SDRCommission,
)

logger = logging.getLogger(__name__)


def add_months(value: date, months: int) -> date:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return value.replace(year=year, month=month, day=min(value.day, last_day))


def split_installments(total, count: int) -> list[Decimal]:
    """Split ``total`` into ``count`` parts rounded to cents.

    The rounding remainder lands on the last part so the parts always add up
    to the total.
    """
    if count < 1:
        raise ValueError("Quantidade de parcelas deve ser maior que zero.")
    total = to_cents(total)
    part = to_cents(total / count)
    parts = [part] * count
    parts[-1] = total - part * (count - 1)
    return parts


def resolve_commission_percent(sale: Sale) -> Decimal:
    if sale.commission_percent:
        return sale.commission_percent
    return DEFAULT_COMMISSION_PERCENT


def create_installments(sale: Sale, first_status: str = InstallmentStatus.PENDING) -> list[Installment]:
    installments = []
    values = split_installments(sale.total_value, sale.installments_count)
    for number, value in enumerate(values, start=1):
        installments.append(
            Installment.objects.create(
                sale=sale,
                installment_number=number,
                total_installments=sale.installments_count,
                value=value,
                due_date=add_months(sale.sale_date, number - 1),
                status=first_status if number == 1 else InstallmentStatus.PENDING,
            )
        )
    return installments


@transaction.atomic
def create_sale(data: dict, user=None) -> Sale:
    data = dict(data)
    product = data.get("product")
    if product is not None and not data.get("product_name"):
        data["product_name"] = product.name
    if "commission_percent" not in data and product is not None:
        data["commission_percent"] = product.default_commission_percent
    sale = Sale.objects.create(created_by=user, **data)
    installments = create_installments(sale)
    if sale.seller_id:
        for installment in installments:
            build_commission(installment, sale.seller, sale.commission_percent)
    logger.info(
        "Venda %s criada com %s parcelas (vendedor=%s)",
        sale.external_id,
        len(installments),
        sale.seller_id,
    )
    return sale


@transaction.atomic
def cancel_sale(sale: Sale) -> Sale:
    sale.status = SaleStatus.CANCELLED
    sale.save(update_fields=["status", "updated_at"])
    installments = Installment.objects.filter(sale=sale)
    installments.update(status=InstallmentStatus.CANCELLED)
    for model in (Commission, SDRCommission):
        model.objects.filter(installment__sale=sale).update(
            status=CommissionStatus.CANCELLED,
            released_at=None,
        )
    logger.info("Venda %s cancelada", sale.external_id)
    return sale


@transaction.atomic
def assign_seller(sale: Sale, seller, commission_percent=None) -> Sale:
    """Attach ``seller`` to the sale and rebuild every commission for it."""
    sale = Sale.objects.select_for_update().get(pk=sale.pk)
    sale.seller = seller
    update_fields = ["seller", "updated_at"]
    if commission_percent is not None:
        sale.commission_percent = commission_percent
        update_fields.append("commission_percent")
    sale.save(update_fields=update_fields)
    percent = resolve_commission_percent(sale)
    Commission.objects.filter(installment__sale=sale).delete()
    for installment in sale.installments.all():
        build_commission(installment, seller, percent)
    logger.info("Venda %s atribuida ao vendedor %s (%s%%)", sale.external_id, seller.pk, percent)
    return sale
