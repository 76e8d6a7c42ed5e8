"""Reconciliation of payment-gateway records into sales and installments.

Asaas and Hotmart payloads are translated through the static status tables
below, then upserted by ``Sale.external_id``. Each gateway record is applied
inside its own atomic block so one bad record does not undo the others.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from decimal import Decimal

from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_date

from .asaas_client import AsaasClient
from .commissions import build_commission, set_installment_status, to_cents
from .hotmart_client import HotmartClient, from_epoch_ms
from .models import (
    DEFAULT_COMMISSION_PERCENT,
    HotmartSyncLog,
    ImportSource,
    Installment,
    InstallmentStatus,
    Product,
    Sale,
    SalePlatform,
    SalesImportLog,
    SaleStatus,
    SyncStatus,
)
from .sales import add_months, split_installments

logger = logging.getLogger(__name__)

MAX_REPORTED_ERRORS = 10
HOTMART_PRODUCT_COMMISSION_PERCENT = Decimal("5")

ASAAS_STATUS_MAP = {
    "RECEIVED": InstallmentStatus.PAID,
    "CONFIRMED": InstallmentStatus.PAID,
    "RECEIVED_IN_CASH": InstallmentStatus.PAID,
    "DUNNING_RECEIVED": InstallmentStatus.PAID,
    "PENDING": InstallmentStatus.PENDING,
    "AWAITING_RISK_ANALYSIS": InstallmentStatus.PENDING,
    "REFUND_REQUESTED": InstallmentStatus.PENDING,
    "REFUND_IN_PROGRESS": InstallmentStatus.PENDING,
    "OVERDUE": InstallmentStatus.OVERDUE,
    "DUNNING_REQUESTED": InstallmentStatus.OVERDUE,
    "REFUNDED": InstallmentStatus.CANCELLED,
    "CHARGEBACK_REQUESTED": InstallmentStatus.CHARGEBACK,
    "CHARGEBACK_DISPUTE": InstallmentStatus.CHARGEBACK,
    "AWAITING_CHARGEBACK_REVERSAL": InstallmentStatus.CHARGEBACK,
}

ASAAS_BILLING_TYPE_MAP = {
    "BOLETO": "boleto",
    "CREDIT_CARD": "credit_card",
    "PIX": "pix",
    "DEBIT_CARD": "debit_card",
    "TRANSFER": "transfer",
    "UNDEFINED": "other",
}

HOTMART_STATUS_MAP = {
    "APPROVED": InstallmentStatus.PAID,
    "COMPLETE": InstallmentStatus.PAID,
    "COMPLETED": InstallmentStatus.PAID,
    "CANCELED": InstallmentStatus.CANCELLED,
    "CANCELLED": InstallmentStatus.CANCELLED,
    "REFUNDED": InstallmentStatus.CANCELLED,
    "CHARGEBACK": InstallmentStatus.CHARGEBACK,
    "WAITING_PAYMENT": InstallmentStatus.PENDING,
    "PENDING": InstallmentStatus.PENDING,
    "PRINTED_BILLET": InstallmentStatus.PENDING,
    "BILLET_PRINTED": InstallmentStatus.PENDING,
    "EXPIRED": InstallmentStatus.OVERDUE,
    "DELAYED": InstallmentStatus.OVERDUE,
    "PROTEST": InstallmentStatus.OVERDUE,
    "PROTESTED": InstallmentStatus.OVERDUE,
}

HOTMART_PAID_STATUSES = {"APPROVED", "COMPLETE", "COMPLETED"}
HOTMART_CANCELLED_STATUSES = {"CANCELED", "CANCELLED", "REFUNDED", "CHARGEBACK"}

ACTIVE_SALE_STATUSES = {
    InstallmentStatus.PAID,
    InstallmentStatus.PENDING,
    InstallmentStatus.OVERDUE,
}


def map_asaas_status(status: str | None) -> str:
    return ASAAS_STATUS_MAP.get((status or "").upper(), InstallmentStatus.PENDING)


def map_asaas_billing_type(billing_type: str | None) -> str:
    return ASAAS_BILLING_TYPE_MAP.get((billing_type or "").upper(), "other")


def map_hotmart_status(status: str | None) -> str:
    return HOTMART_STATUS_MAP.get((status or "").upper(), InstallmentStatus.PENDING)


def hotmart_is_paid(status: str | None) -> bool:
    return (status or "").upper() in HOTMART_PAID_STATUSES


def hotmart_is_cancelled(status: str | None) -> bool:
    return (status or "").upper() in HOTMART_CANCELLED_STATUSES


class SyncResult:
    def __init__(self) -> None:
        self.processed = 0
        self.created = 0
        self.updated = 0
        self.failed = 0
        self.errors: list[str] = []

    def add_error(self, reference: str, exc: Exception) -> None:
        self.failed += 1
        if len(self.errors) < MAX_REPORTED_ERRORS:
            self.errors.append(f"{reference}: {exc}")

    def as_dict(self) -> dict:
        return {
            "processed": self.processed,
            "created": self.created,
            "updated": self.updated,
            "failed": self.failed,
            "errors": list(self.errors),
        }

    def write_log(self, platform: str, source: str, user=None, filename: str = "") -> SalesImportLog:
        return SalesImportLog.objects.create(
            filename=filename,
            platform=platform,
            source=source,
            imported_by=user,
            records_processed=self.processed,
            records_created=self.created,
            records_updated=self.updated,
            records_failed=self.failed,
            error_log=list(self.errors),
        )


def _parse_gateway_date(value) -> date | None:
    if not value:
        return None
    if isinstance(value, date):
        return value
    return parse_date(str(value)[:10])


def _default_commission_percent() -> Decimal:
    product = Product.objects.filter(is_active=True).order_by("id").first()
    if product and product.default_commission_percent:
        return product.default_commission_percent
    return DEFAULT_COMMISSION_PERCENT


# Asaas


def _apply_asaas_payment(client: AsaasClient, payment: dict, seller, percent: Decimal) -> bool:
    """Upsert one Asaas payment. Returns True when a sale was created."""
    external_id = payment["id"]
    status = map_asaas_status(payment.get("status"))
    sale_status = SaleStatus.ACTIVE if status in ACTIVE_SALE_STATUSES else SaleStatus.CANCELLED
    payment_type = map_asaas_billing_type(payment.get("billingType"))

    with transaction.atomic():
        existing = Sale.objects.select_for_update().filter(external_id=external_id).first()
        if existing is not None:
            existing.status = sale_status
            existing.payment_type = payment_type
            existing.save(update_fields=["status", "payment_type", "updated_at"])
            return False

        client_name = payment.get("customer") or "Cliente Asaas"
        client_email = ""
        if payment.get("customer"):
            customer = client.get_customer(payment["customer"])
            client_name = customer.get("name") or client_name
            client_email = customer.get("email") or ""

        count = int(payment.get("installmentCount") or 1)
        sale_date = _parse_gateway_date(payment.get("dateCreated")) or timezone.localdate()
        sale = Sale.objects.create(
            external_id=external_id,
            client_name=client_name,
            client_email=client_email,
            product_name=payment.get("description") or "Produto Asaas",
            total_value=to_cents(payment.get("value") or 0),
            installments_count=count,
            platform=SalePlatform.ASAAS,
            seller=seller,
            commission_percent=percent,
            sale_date=sale_date,
            status=sale_status,
            payment_type=payment_type,
            proof_link=payment.get("invoiceUrl") or "",
        )

        first_due = _parse_gateway_date(payment.get("dueDate")) or sale_date
        paid_on = _parse_gateway_date(payment.get("paymentDate") or payment.get("confirmedDate"))
        values = split_installments(sale.total_value, count)
        for number, value in enumerate(values, start=1):
            installment_status = status if number == 1 else InstallmentStatus.PENDING
            installment = Installment.objects.create(
                sale=sale,
                installment_number=number,
                total_installments=count,
                value=value,
                due_date=add_months(first_due, number - 1),
                status=installment_status,
                payment_date=paid_on if number == 1 and status == InstallmentStatus.PAID else None,
            )
            build_commission(installment, seller, percent)
    return True


def sync_asaas_payments(seller, start_date: date | None = None, end_date: date | None = None, user=None) -> dict:
    if seller is None:
        raise ValueError("Vendedor obrigatorio para sincronizar o Asaas.")
    client = AsaasClient()
    percent = _default_commission_percent()
    result = SyncResult()

    for payment in client.iter_payments(start_date, end_date):
        result.processed += 1
        reference = payment.get("id") or "sem-id"
        try:
            created = _apply_asaas_payment(client, payment, seller, percent)
        except Exception as exc:
            logger.exception("Asaas: falha ao processar pagamento %s", reference)
            result.add_error(reference, exc)
            continue
        if created:
            result.created += 1
        else:
            result.updated += 1

    result.write_log(SalePlatform.ASAAS, ImportSource.API, user=user)
    logger.info("Asaas sync concluido: %s", result.as_dict())
    return result.as_dict()


def sync_asaas_installments() -> dict:
    client = AsaasClient()
    result = SyncResult()
    sales = Sale.objects.filter(
        platform=SalePlatform.ASAAS,
        status=SaleStatus.ACTIVE,
    ).prefetch_related("installments")

    for sale in sales:
        result.processed += 1
        try:
            payment = client.get_payment(sale.external_id)
        except Exception as exc:
            logger.warning("Asaas: falha ao consultar pagamento %s: %s", sale.external_id, exc)
            result.add_error(sale.external_id, exc)
            continue
        new_status = map_asaas_status(payment.get("status"))
        if new_status not in (InstallmentStatus.PAID, InstallmentStatus.CANCELLED):
            continue
        paid_on = None
        if new_status == InstallmentStatus.PAID:
            paid_on = _parse_gateway_date(payment.get("paymentDate") or payment.get("confirmedDate"))
        for installment in sale.installments.all():
            if installment.status == new_status:
                continue
            set_installment_status(installment, new_status, paid_on)
            result.updated += 1
    logger.info("Asaas parcelas sincronizadas: %s", result.as_dict())
    return result.as_dict()


# Hotmart


def _hotmart_sale_fields(item: dict) -> dict:
    purchase = item.get("purchase") or {}
    buyer = item.get("buyer") or {}
    product = item.get("product") or {}
    payment = purchase.get("payment") or {}
    tracking = purchase.get("tracking") or {}
    approved = from_epoch_ms(purchase.get("approved_date") or purchase.get("order_date"))
    sale_date = timezone.localdate(approved) if approved else timezone.localdate()
    status = map_hotmart_status(purchase.get("status"))
    linked_product = None
    if product.get("id"):
        linked_product = Product.objects.filter(hotmart_id=str(product["id"])).first()
    return {
        "client_name": buyer.get("name") or "Cliente Hotmart",
        "client_email": buyer.get("email") or "",
        "client_phone": buyer.get("phone") or "",
        "product": linked_product,
        "product_name": product.get("name") or "",
        "total_value": to_cents((purchase.get("price") or {}).get("value") or 0),
        "installments_count": int(payment.get("installments_number") or 1),
        "platform": SalePlatform.HOTMART,
        "commission_percent": Decimal("0"),
        "sale_date": sale_date,
        "status": SaleStatus.ACTIVE if status == InstallmentStatus.PAID else SaleStatus.CANCELLED,
        "payment_type": payment.get("type") or "",
        "tracking_source": tracking.get("source") or "",
        "tracking_sck": tracking.get("source_sck") or "",
        "tracking_external_code": tracking.get("external_code") or "",
    }


def _apply_hotmart_sale(item: dict) -> bool:
    purchase = item.get("purchase") or {}
    transaction_code = purchase["transaction"]
    fields = _hotmart_sale_fields(item)
    status = map_hotmart_status(purchase.get("status"))
    recurrency = int(purchase.get("recurrency_number") or 0)

    with transaction.atomic():
        sale = Sale.objects.select_for_update().filter(external_id=transaction_code).first()
        created = sale is None
        if created:
            # Seller stays empty until someone assigns it by hand.
            sale = Sale.objects.create(external_id=transaction_code, seller=None, **fields)
        else:
            fields.pop("commission_percent")
            if fields["product"] is None:
                fields.pop("product")
            for key, value in fields.items():
                setattr(sale, key, value)
            sale.save()

        count = sale.installments_count
        values = split_installments(sale.total_value, count)
        for number, value in enumerate(values, start=1):
            installment_status = status if number <= recurrency else InstallmentStatus.PENDING
            paid_on = sale.sale_date if installment_status == InstallmentStatus.PAID else None
            installment, was_created = Installment.objects.get_or_create(
                sale=sale,
                installment_number=number,
                defaults={
                    "total_installments": count,
                    "value": value,
                    "due_date": sale.sale_date + timedelta(days=30 * (number - 1)),
                    "status": installment_status,
                    "payment_date": paid_on,
                },
            )
            if not was_created:
                installment.total_installments = count
                installment.value = value
                installment.due_date = sale.sale_date + timedelta(days=30 * (number - 1))
                installment.save(update_fields=["total_installments", "value", "due_date", "updated_at"])
                if installment.status != installment_status:
                    set_installment_status(installment, installment_status, paid_on)
        stale = sale.installments.filter(installment_number__gt=count)
        if stale.exists():
            logger.info("Hotmart: removendo parcelas acima de %s da venda %s", count, transaction_code)
            stale.delete()
    return created


def sync_hotmart_sales(
    start: datetime,
    end: datetime,
    user=None,
    transaction_status: str | None = None,
    source: str = ImportSource.API,
) -> dict:
    client = HotmartClient()
    result = SyncResult()
    for item in client.iter_sales(start, end, transaction_status):
        result.processed += 1
        reference = (item.get("purchase") or {}).get("transaction") or "sem-transacao"
        try:
            created = _apply_hotmart_sale(item)
        except Exception as exc:
            logger.exception("Hotmart: falha ao processar venda %s", reference)
            result.add_error(reference, exc)
            continue
        if created:
            result.created += 1
        else:
            result.updated += 1
    result.write_log(SalePlatform.HOTMART, source, user=user)
    logger.info("Hotmart sync concluido: %s", result.as_dict())
    return result.as_dict()


def hotmart_installment_status(installment: Installment, purchase_status: str, recurrency: int) -> str:
    if installment.sale.installments_count == 1 or installment.total_installments == 1:
        paid = hotmart_is_paid(purchase_status)
    else:
        paid = installment.installment_number <= recurrency and hotmart_is_paid(purchase_status)
    if paid:
        return InstallmentStatus.PAID
    if hotmart_is_cancelled(purchase_status):
        return InstallmentStatus.CANCELLED
    return InstallmentStatus.PENDING


def sync_hotmart_installments() -> dict:
    client = HotmartClient()
    result = SyncResult()
    sales = Sale.objects.filter(platform=SalePlatform.HOTMART).prefetch_related("installments")
    for sale in sales:
        result.processed += 1
        try:
            details = client.get_sale(sale.external_id)
        except Exception as exc:
            logger.warning("Hotmart: falha ao consultar transacao %s: %s", sale.external_id, exc)
            result.add_error(sale.external_id, exc)
            continue
        if not details:
            logger.info("Hotmart: transacao %s nao encontrada", sale.external_id)
            continue
        purchase = details.get("purchase") or {}
        purchase_status = purchase.get("status") or "PENDING"
        recurrency = int(purchase.get("recurrency_number") or 0)
        for installment in sale.installments.all():
            new_status = hotmart_installment_status(installment, purchase_status, recurrency)
            if installment.status == new_status:
                continue
            paid_on = timezone.localdate() if new_status == InstallmentStatus.PAID else None
            set_installment_status(installment, new_status, paid_on)
            result.updated += 1
    logger.info("Hotmart parcelas sincronizadas: %s", result.as_dict())
    return result.as_dict()


def _offer_price(offers: list[dict]) -> Decimal:
    main = next((offer for offer in offers if offer.get("is_main_offer")), None)
    if main and (main.get("price") or {}).get("value"):
        return to_cents(main["price"]["value"])
    prices = [(offer.get("price") or {}).get("value") or 0 for offer in offers]
    return to_cents(max(prices)) if prices else Decimal("0.00")


def sync_hotmart_products(include_prices: bool = True) -> dict:
    client = HotmartClient()
    result = SyncResult()
    for item in client.iter_products():
        result.processed += 1
        hotmart_id = str(item.get("id") or "")
        if not hotmart_id:
            continue
        try:
            price = Decimal("0.00")
            if include_prices and item.get("ucode"):
                price = _offer_price(client.product_offers(item["ucode"]))
            defaults = {
                "name": item.get("name") or f"Produto {hotmart_id}",
                "hotmart_ucode": item.get("ucode") or "",
                "is_active": (item.get("status") or "ACTIVE").upper() == "ACTIVE",
            }
            if price:
                defaults["price"] = price
            product, created = Product.objects.get_or_create(
                hotmart_id=hotmart_id,
                defaults=dict(defaults, default_commission_percent=HOTMART_PRODUCT_COMMISSION_PERCENT),
            )
            if not created:
                for key, value in defaults.items():
                    setattr(product, key, value)
                product.save()
        except Exception as exc:
            logger.exception("Hotmart: falha ao processar produto %s", hotmart_id)
            result.add_error(hotmart_id, exc)
            continue
        if created:
            result.created += 1
        else:
            result.updated += 1
    logger.info("Hotmart produtos sincronizados: %s", result.as_dict())
    return result.as_dict()


def scheduled_hotmart_sync(now: datetime | None = None) -> HotmartSyncLog:
    now = now or timezone.now()
    start = now - timedelta(hours=24)
    log = HotmartSyncLog.objects.create(
        sync_type="scheduled",
        status=SyncStatus.RUNNING,
        started_at=now,
        period_start=start,
        period_end=now,
    )
    try:
        result = sync_hotmart_sales(start, now, source=ImportSource.SCHEDULED)
    except Exception as exc:
        logger.exception("Hotmart: sincronizacao agendada falhou")
        log.status = SyncStatus.ERROR
        log.error_message = str(exc)
        log.completed_at = timezone.now()
        log.save()
        raise

    log.total_fetched = result["processed"]
    log.records_created = result["created"]
    log.records_updated = result["updated"]
    log.records_failed = result["failed"]
    log.details = {"errors": result["errors"]}
    log.status = SyncStatus.PARTIAL if result["failed"] else SyncStatus.SUCCESS
    log.completed_at = timezone.now()
    log.save()
    return log
