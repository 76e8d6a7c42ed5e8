import io
from datetime import date
from decimal import Decimal

import pytest
from openpyxl import load_workbook

from operacoes.commissions import (
    commission_status_for,
    commission_summary,
    commission_value,
    export_commissions_xlsx,
    seller_performance,
    set_installment_status,
)
from operacoes.models import (
    Commission,
    CommissionStatus,
    InstallmentStatus,
    Sale,
    SaleStatus,
)
from operacoes.sales import add_months, assign_seller, cancel_sale, split_installments


def test_split_installments_puts_remainder_on_last_part():
    parts = split_installments(Decimal("1000.00"), 3)

    assert parts == [Decimal("333.33"), Decimal("333.33"), Decimal("333.34")]
    assert sum(parts) == Decimal("1000.00")


def test_split_installments_rejects_zero_parts():
    with pytest.raises(ValueError):
        split_installments(Decimal("10"), 0)


def test_add_months_clamps_to_last_day_of_month():
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2024, 11, 30), 3) == date(2025, 2, 28)


def test_commission_value_rounds_half_up():
    assert commission_value(Decimal("333.35"), Decimal("10")) == Decimal("33.34")


@pytest.mark.parametrize(
    "installment_status, expected",
    [
        (InstallmentStatus.PAID, CommissionStatus.RELEASED),
        (InstallmentStatus.PENDING, CommissionStatus.PENDING),
        (InstallmentStatus.OVERDUE, CommissionStatus.SUSPENDED),
        (InstallmentStatus.CANCELLED, CommissionStatus.CANCELLED),
        (InstallmentStatus.REFUNDED, CommissionStatus.CANCELLED),
        (InstallmentStatus.CHARGEBACK, CommissionStatus.CANCELLED),
    ],
)
def test_commission_status_follows_installment(installment_status, expected):
    assert commission_status_for(installment_status) == expected


@pytest.mark.django_db
def test_create_sale_builds_installments_and_commissions(sale_factory, seller):
    sale = sale_factory(seller=seller)

    installments = list(sale.installments.order_by("installment_number"))
    assert [item.value for item in installments] == [
        Decimal("333.33"),
        Decimal("333.33"),
        Decimal("333.34"),
    ]
    assert [item.due_date for item in installments] == [
        date(2024, 1, 31),
        date(2024, 2, 29),
        date(2024, 3, 31),
    ]
    commissions = Commission.objects.filter(installment__sale=sale).order_by("installment__installment_number")
    assert commissions.count() == 3
    first = commissions[0]
    assert first.seller == seller
    assert first.commission_value == Decimal("33.33")
    assert first.competence_month == date(2024, 1, 1)
    assert first.status == CommissionStatus.PENDING


@pytest.mark.django_db
def test_create_sale_without_seller_has_no_commissions(sale_factory):
    sale = sale_factory()

    assert sale.installments.count() == 3
    assert not Commission.objects.filter(installment__sale=sale).exists()


@pytest.mark.django_db
def test_create_sale_uses_product_defaults(sale_factory, product):
    sale = sale_factory(product=product, product_name="")

    assert sale.product_name == "Mentoria Anual"


@pytest.mark.django_db
def test_paying_installment_releases_commission(sale_factory, seller):
    sale = sale_factory(seller=seller)
    installment = sale.installments.get(installment_number=1)

    set_installment_status(installment, InstallmentStatus.PAID, date(2024, 2, 1))

    installment.refresh_from_db()
    assert installment.payment_date == date(2024, 2, 1)
    commission = installment.commission
    commission.refresh_from_db()
    assert commission.status == CommissionStatus.RELEASED
    assert commission.released_at is not None


@pytest.mark.django_db
def test_paid_installment_without_date_keeps_previous_payment_date(sale_factory):
    sale = sale_factory()
    installment = sale.installments.get(installment_number=1)
    set_installment_status(installment, InstallmentStatus.PAID, date(2024, 2, 1))

    set_installment_status(installment, InstallmentStatus.PAID)

    installment.refresh_from_db()
    assert installment.payment_date == date(2024, 2, 1)


@pytest.mark.django_db
def test_leaving_paid_state_suspends_commission_and_clears_date(sale_factory, seller):
    sale = sale_factory(seller=seller)
    installment = sale.installments.get(installment_number=1)
    set_installment_status(installment, InstallmentStatus.PAID, date(2024, 2, 1))

    set_installment_status(installment, InstallmentStatus.OVERDUE)

    installment.refresh_from_db()
    assert installment.payment_date is None
    commission = Commission.objects.get(installment=installment)
    assert commission.status == CommissionStatus.SUSPENDED
    assert commission.released_at is None


@pytest.mark.django_db
def test_set_installment_status_rejects_unknown_status(sale_factory):
    installment = sale_factory().installments.first()

    with pytest.raises(ValueError):
        set_installment_status(installment, "quitada")


@pytest.mark.django_db
def test_cancel_sale_cancels_installments_and_commissions(sale_factory, seller):
    sale = sale_factory(seller=seller)

    cancel_sale(sale)

    sale.refresh_from_db()
    assert sale.status == SaleStatus.CANCELLED
    assert set(sale.installments.values_list("status", flat=True)) == {InstallmentStatus.CANCELLED}
    assert set(
        Commission.objects.filter(installment__sale=sale).values_list("status", flat=True)
    ) == {CommissionStatus.CANCELLED}


@pytest.mark.django_db
def test_assign_seller_rebuilds_commissions(sale_factory, seller, other_seller):
    sale = sale_factory(seller=seller)
    paid = sale.installments.get(installment_number=1)
    set_installment_status(paid, InstallmentStatus.PAID, date(2024, 2, 1))

    assign_seller(sale, other_seller, Decimal("20"))

    sale = Sale.objects.get(pk=sale.pk)
    assert sale.seller == other_seller
    assert sale.commission_percent == Decimal("20")
    commissions = Commission.objects.filter(installment__sale=sale)
    assert commissions.count() == 3
    assert set(commissions.values_list("seller_id", flat=True)) == {other_seller.pk}
    first = commissions.get(installment=paid)
    assert first.commission_value == Decimal("66.67")
    assert first.status == CommissionStatus.RELEASED


@pytest.mark.django_db
def test_commission_summary_splits_by_status_and_month(sale_factory, seller):
    sale = sale_factory(seller=seller)
    first, second, third = sale.installments.order_by("installment_number")
    set_installment_status(first, InstallmentStatus.PAID, date(2024, 1, 31))
    set_installment_status(third, InstallmentStatus.OVERDUE)

    summary = commission_summary(Commission.objects.all(), today=date(2024, 1, 15))

    assert summary["total_released"] == Decimal("33.33")
    assert summary["current_month_released"] == Decimal("33.33")
    assert summary["total_pending"] == Decimal("33.33")
    assert summary["current_month_pending"] == Decimal("0")
    assert summary["total_suspended"] == Decimal("33.33")


@pytest.mark.django_db
def test_seller_performance_groups_by_seller(sale_factory, seller, other_seller):
    first_sale = sale_factory(seller=seller, total_value=Decimal("300.00"))
    sale_factory(seller=other_seller, total_value=Decimal("900.00"))
    sale_factory(total_value=Decimal("150.00"), installments_count=1)
    installments = list(first_sale.installments.order_by("installment_number"))
    set_installment_status(installments[0], InstallmentStatus.PAID, date(2024, 1, 31))
    set_installment_status(installments[1], InstallmentStatus.OVERDUE)

    rows = seller_performance(Sale.objects.all())

    assert [row["seller_id"] for row in rows] == [other_seller.pk, seller.pk, None]
    mine = rows[1]
    assert mine["sales_count"] == 1
    assert mine["received"] == Decimal("100.00")
    assert mine["overdue"] == Decimal("100.00")
    assert mine["pending"] == Decimal("100.00")
    assert mine["default_rate"] == pytest.approx(33.33)
    assert mine["commission_released"] == Decimal("10.00")
    assert rows[2]["seller_name"] == "Sem vendedor"


@pytest.mark.django_db
def test_export_commissions_xlsx(sale_factory, seller):
    sale_factory(seller=seller)

    content = export_commissions_xlsx(Commission.objects.all())

    sheet = load_workbook(io.BytesIO(content)).active
    rows = list(sheet.iter_rows(values_only=True))
    assert rows[0][0] == "Vendedor"
    assert len(rows) == 4
    assert rows[1][0] == "Vendedor"
    assert rows[1][3] in {"1/3", "2/3", "3/3"}
