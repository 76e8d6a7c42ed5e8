from datetime import date, datetime, timedelta
from datetime import timezone as dt_timezone
from decimal import Decimal

import pytest

from operacoes import sales_sync
from operacoes.hotmart_client import to_epoch_ms
from operacoes.integrations import HotmartApiError
from operacoes.models import (
    Commission,
    CommissionStatus,
    HotmartSyncLog,
    InstallmentStatus,
    Product,
    Sale,
    SalePlatform,
    SalesImportLog,
    SaleStatus,
    SyncStatus,
)
from operacoes.sales import assign_seller
from operacoes.sales_sync import SyncResult, map_asaas_status, map_hotmart_status


class FakeAsaasClient:
    payments = []
    payment_details = {}

    def iter_payments(self, start_date=None, end_date=None):
        return iter(self.payments)

    def get_customer(self, customer_id):
        return {"name": "Joana Compradora", "email": "joana@example.com"}

    def get_payment(self, payment_id):
        return self.payment_details[payment_id]


class FakeHotmartClient:
    sales = []
    details = {}
    products = []
    offers = {}

    def __init__(self, *args, **kwargs):
        pass

    def iter_sales(self, start, end, transaction_status=None):
        return iter(self.sales)

    def get_sale(self, transaction):
        return self.details.get(transaction)

    def iter_products(self):
        return iter(self.products)

    def product_offers(self, ucode):
        return self.offers.get(ucode, [])


@pytest.fixture
def fake_asaas(monkeypatch):
    FakeAsaasClient.payments = []
    FakeAsaasClient.payment_details = {}
    monkeypatch.setattr(sales_sync, "AsaasClient", FakeAsaasClient)
    return FakeAsaasClient


@pytest.fixture
def fake_hotmart(monkeypatch):
    FakeHotmartClient.sales = []
    FakeHotmartClient.details = {}
    FakeHotmartClient.products = []
    FakeHotmartClient.offers = {}
    monkeypatch.setattr(sales_sync, "HotmartClient", FakeHotmartClient)
    return FakeHotmartClient


def asaas_payment(**overrides):
    payment = {
        "id": "pay_001",
        "customer": "cus_001",
        "status": "RECEIVED",
        "billingType": "PIX",
        "value": 300,
        "installmentCount": 3,
        "description": "Mentoria Trimestral",
        "dateCreated": "2024-03-10",
        "dueDate": "2024-03-15",
        "paymentDate": "2024-03-15",
        "invoiceUrl": "https://asaas.test/i/1",
    }
    payment.update(overrides)
    return payment


def hotmart_item(transaction="HP001", status="APPROVED", installments=3, recurrency=1, value=600):
    approved = datetime(2024, 3, 10, 15, 0, tzinfo=dt_timezone.utc)
    return {
        "buyer": {"name": "Carlos Aluno", "email": "carlos@example.com"},
        "product": {"id": 777, "name": "Curso BORA"},
        "purchase": {
            "transaction": transaction,
            "status": status,
            "approved_date": to_epoch_ms(approved),
            "price": {"value": value},
            "recurrency_number": recurrency,
            "payment": {"type": "CREDIT_CARD", "installments_number": installments},
            "tracking": {"source": "instagram", "source_sck": "bio", "external_code": "abc"},
        },
    }


def test_status_tables():
    assert map_asaas_status("confirmed") == InstallmentStatus.PAID
    assert map_asaas_status("CHARGEBACK_DISPUTE") == InstallmentStatus.CHARGEBACK
    assert map_asaas_status("ALGO_NOVO") == InstallmentStatus.PENDING
    assert map_hotmart_status("EXPIRED") == InstallmentStatus.OVERDUE
    assert map_hotmart_status(None) == InstallmentStatus.PENDING


def test_sync_result_caps_reported_errors():
    result = SyncResult()
    for idx in range(15):
        result.add_error(f"ref-{idx}", ValueError("falhou"))

    data = result.as_dict()
    assert data["failed"] == 15
    assert len(data["errors"]) == 10
    assert data["errors"][0] == "ref-0: falhou"


@pytest.mark.django_db
def test_sync_asaas_requires_seller(fake_asaas):
    with pytest.raises(ValueError):
        sales_sync.sync_asaas_payments(None)


@pytest.mark.django_db
def test_sync_asaas_creates_sale_with_commissions(fake_asaas, seller, admin_user):
    fake_asaas.payments = [asaas_payment()]

    result = sales_sync.sync_asaas_payments(seller, user=admin_user)

    assert result["created"] == 1
    sale = Sale.objects.get(external_id="pay_001")
    assert sale.platform == SalePlatform.ASAAS
    assert sale.client_name == "Joana Compradora"
    assert sale.payment_type == "pix"
    assert sale.commission_percent == Decimal("10")
    installments = list(sale.installments.order_by("installment_number"))
    assert [item.status for item in installments] == [
        InstallmentStatus.PAID,
        InstallmentStatus.PENDING,
        InstallmentStatus.PENDING,
    ]
    assert installments[0].payment_date == date(2024, 3, 15)
    assert installments[1].due_date == date(2024, 4, 15)
    first_commission = Commission.objects.get(installment=installments[0])
    assert first_commission.status == CommissionStatus.RELEASED
    assert first_commission.seller == seller
    log = SalesImportLog.objects.get()
    assert log.platform == SalePlatform.ASAAS
    assert log.records_created == 1


@pytest.mark.django_db
def test_sync_asaas_uses_first_active_product_percent(fake_asaas, seller):
    Product.objects.create(name="Plano", price=Decimal("100"), default_commission_percent=Decimal("15"))
    fake_asaas.payments = [asaas_payment(installmentCount=1)]

    sales_sync.sync_asaas_payments(seller)

    assert Sale.objects.get().commission_percent == Decimal("15")


@pytest.mark.django_db
def test_sync_asaas_existing_sale_only_updates_status(fake_asaas, seller, sale_factory):
    sale = sale_factory(external_id="pay_001", seller=seller)
    fake_asaas.payments = [asaas_payment(status="REFUNDED", billingType="BOLETO")]

    result = sales_sync.sync_asaas_payments(seller)

    assert result["updated"] == 1
    sale.refresh_from_db()
    assert sale.status == SaleStatus.CANCELLED
    assert sale.payment_type == "boleto"
    assert sale.client_name == "Maria Cliente"
    assert sale.installments.count() == 3


@pytest.mark.django_db
def test_sync_asaas_counts_failures_and_continues(fake_asaas, seller):
    fake_asaas.payments = [{"status": "RECEIVED"}, asaas_payment(id="pay_002", installmentCount=1)]

    result = sales_sync.sync_asaas_payments(seller)

    assert result["processed"] == 2
    assert result["failed"] == 1
    assert result["created"] == 1
    assert Sale.objects.filter(external_id="pay_002").exists()


@pytest.mark.django_db
def test_sync_asaas_installments_marks_paid(fake_asaas, sale_factory, seller):
    sale = sale_factory(external_id="pay_009", seller=seller, platform=SalePlatform.ASAAS)
    fake_asaas.payment_details = {"pay_009": {"status": "CONFIRMED", "paymentDate": "2024-02-05"}}

    result = sales_sync.sync_asaas_installments()

    assert result["updated"] == 3
    statuses = set(sale.installments.values_list("status", flat=True))
    assert statuses == {InstallmentStatus.PAID}
    assert set(sale.installments.values_list("payment_date", flat=True)) == {date(2024, 2, 5)}
    assert set(
        Commission.objects.filter(installment__sale=sale).values_list("status", flat=True)
    ) == {CommissionStatus.RELEASED}


@pytest.mark.django_db
def test_sync_asaas_installments_ignores_pending(fake_asaas, sale_factory):
    sale = sale_factory(external_id="pay_010", platform=SalePlatform.ASAAS)
    fake_asaas.payment_details = {"pay_010": {"status": "OVERDUE"}}

    result = sales_sync.sync_asaas_installments()

    assert result["updated"] == 0
    assert set(sale.installments.values_list("status", flat=True)) == {InstallmentStatus.PENDING}


@pytest.mark.django_db
def test_sync_hotmart_sales_creates_unassigned_sale(fake_hotmart, admin_user):
    fake_hotmart.sales = [hotmart_item()]
    start = datetime(2024, 3, 1, tzinfo=dt_timezone.utc)

    result = sales_sync.sync_hotmart_sales(start, start + timedelta(days=30), user=admin_user)

    assert result["created"] == 1
    sale = Sale.objects.get(external_id="HP001")
    assert sale.seller is None
    assert sale.commission_percent == Decimal("0")
    assert sale.platform == SalePlatform.HOTMART
    assert sale.tracking_source == "instagram"
    assert sale.status == SaleStatus.ACTIVE
    installments = list(sale.installments.order_by("installment_number"))
    assert [item.status for item in installments] == [
        InstallmentStatus.PAID,
        InstallmentStatus.PENDING,
        InstallmentStatus.PENDING,
    ]
    assert installments[1].due_date == installments[0].due_date + timedelta(days=30)
    assert not Commission.objects.exists()


@pytest.mark.django_db
def test_sync_hotmart_sales_updates_existing_sale(fake_hotmart):
    start = datetime(2024, 3, 1, tzinfo=dt_timezone.utc)
    fake_hotmart.sales = [hotmart_item()]
    sales_sync.sync_hotmart_sales(start, start + timedelta(days=30))
    fake_hotmart.sales = [hotmart_item(recurrency=2)]

    result = sales_sync.sync_hotmart_sales(start, start + timedelta(days=30))

    assert result["updated"] == 1
    sale = Sale.objects.get(external_id="HP001")
    assert sale.installments.filter(status=InstallmentStatus.PAID).count() == 2


@pytest.mark.django_db
def test_sync_hotmart_sales_drops_installments_above_new_count(fake_hotmart, seller):
    start = datetime(2024, 3, 1, tzinfo=dt_timezone.utc)
    fake_hotmart.sales = [hotmart_item(installments=3)]
    sales_sync.sync_hotmart_sales(start, start + timedelta(days=30))
    assign_seller(Sale.objects.get(external_id="HP001"), seller, Decimal("10"))
    fake_hotmart.sales = [hotmart_item(installments=2)]

    sales_sync.sync_hotmart_sales(start, start + timedelta(days=30))

    sale = Sale.objects.get(external_id="HP001")
    assert list(sale.installments.order_by("installment_number").values_list("installment_number", flat=True)) == [1, 2]
    assert set(sale.installments.values_list("value", flat=True)) == {Decimal("300.00")}
    assert Commission.objects.filter(installment__sale=sale).count() == 2


@pytest.mark.django_db
def test_sync_hotmart_sales_links_known_product(fake_hotmart):
    product = Product.objects.create(name="Curso BORA", price=Decimal("600"), hotmart_id="777")
    fake_hotmart.sales = [hotmart_item(installments=1)]
    start = datetime(2024, 3, 1, tzinfo=dt_timezone.utc)

    sales_sync.sync_hotmart_sales(start, start + timedelta(days=30))

    assert Sale.objects.get().product == product


@pytest.mark.django_db
def test_sync_hotmart_installments_follows_transaction(fake_hotmart, sale_factory):
    sale = sale_factory(external_id="HP050", platform=SalePlatform.HOTMART)
    fake_hotmart.details = {"HP050": {"purchase": {"status": "APPROVED", "recurrency_number": 2}}}

    result = sales_sync.sync_hotmart_installments()

    assert result["updated"] == 2
    statuses = list(sale.installments.order_by("installment_number").values_list("status", flat=True))
    assert statuses == [InstallmentStatus.PAID, InstallmentStatus.PAID, InstallmentStatus.PENDING]


@pytest.mark.django_db
def test_sync_hotmart_installments_cancels_refunded(fake_hotmart, sale_factory):
    sale = sale_factory(external_id="HP051", platform=SalePlatform.HOTMART)
    fake_hotmart.details = {"HP051": {"purchase": {"status": "REFUNDED", "recurrency_number": 0}}}

    sales_sync.sync_hotmart_installments()

    assert set(sale.installments.values_list("status", flat=True)) == {InstallmentStatus.CANCELLED}


@pytest.mark.django_db
def test_sync_hotmart_products_creates_with_default_commission(fake_hotmart):
    fake_hotmart.products = [{"id": 10, "name": "Imersao", "ucode": "u-10", "status": "ACTIVE"}]
    fake_hotmart.offers = {
        "u-10": [
            {"is_main_offer": False, "price": {"value": 99}},
            {"is_main_offer": True, "price": {"value": 497}},
        ]
    }

    result = sales_sync.sync_hotmart_products()

    assert result["created"] == 1
    product = Product.objects.get(hotmart_id="10")
    assert product.price == Decimal("497.00")
    assert product.default_commission_percent == Decimal("5")


@pytest.mark.django_db
def test_sync_hotmart_products_keeps_commission_on_update(fake_hotmart):
    Product.objects.create(
        name="Antigo",
        price=Decimal("10"),
        hotmart_id="10",
        default_commission_percent=Decimal("12"),
    )
    fake_hotmart.products = [{"id": 10, "name": "Imersao", "ucode": "u-10", "status": "INACTIVE"}]

    result = sales_sync.sync_hotmart_products()

    assert result["updated"] == 1
    product = Product.objects.get(hotmart_id="10")
    assert product.name == "Imersao"
    assert product.is_active is False
    assert product.default_commission_percent == Decimal("12")


@pytest.mark.django_db
def test_scheduled_hotmart_sync_writes_log(fake_hotmart):
    fake_hotmart.sales = [hotmart_item(), {"purchase": {}}]

    log = sales_sync.scheduled_hotmart_sync(now=datetime(2024, 3, 11, tzinfo=dt_timezone.utc))

    assert log.status == SyncStatus.PARTIAL
    assert log.total_fetched == 2
    assert log.records_created == 1
    assert log.records_failed == 1
    assert log.completed_at is not None


@pytest.mark.django_db
def test_scheduled_hotmart_sync_records_error(monkeypatch):
    class BrokenClient:
        def __init__(self):
            raise HotmartApiError("Credenciais recusadas", status_code=401)

    monkeypatch.setattr(sales_sync, "HotmartClient", BrokenClient)

    with pytest.raises(HotmartApiError):
        sales_sync.scheduled_hotmart_sync()

    log = HotmartSyncLog.objects.get()
    assert log.status == SyncStatus.ERROR
    assert log.error_message == "Credenciais recusadas"
