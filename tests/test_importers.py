import io
from datetime import date
from decimal import Decimal

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import IntegrityError
from openpyxl import Workbook

from operacoes import importers
from operacoes.importers import ImportFormatError, import_installment_file, normalize_status
from operacoes.models import (
    Commission,
    CommissionStatus,
    ImportSource,
    InstallmentStatus,
    SalePlatform,
    SalesImportLog,
)


def csv_upload(text, name="parcelas.csv"):
    return SimpleUploadedFile(name, text.encode("utf-8"), content_type="text/csv")


def xlsx_upload(rows, name="parcelas.xlsx"):
    workbook = Workbook()
    sheet = workbook.active
    for row in rows:
        sheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return SimpleUploadedFile(name, buffer.getvalue())


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Pago", InstallmentStatus.PAID),
        ("  atrasado ", InstallmentStatus.OVERDUE),
        ("Estornada", InstallmentStatus.REFUNDED),
        ("cancelado", InstallmentStatus.CANCELLED),
        ("em aberto", InstallmentStatus.PENDING),
        (None, InstallmentStatus.PENDING),
    ],
)
def test_normalize_status(raw, expected):
    assert normalize_status(raw) == expected


@pytest.mark.django_db
def test_import_csv_updates_installments(sale_factory, seller, admin_user):
    sale = sale_factory(external_id="V-100", seller=seller)
    upload = csv_upload(
        "external_id;parcela;situacao;data pagamento\n"
        "V-100;1;Pago;05/02/2024\n"
        "V-100;2;atrasado;\n"
    )

    result = import_installment_file(upload, SalePlatform.MANUAL, admin_user)

    assert result["processed"] == 2
    assert result["updated"] == 2
    assert result["failed"] == 0
    first = sale.installments.get(installment_number=1)
    assert first.status == InstallmentStatus.PAID
    assert first.payment_date == date(2024, 2, 5)
    assert sale.installments.get(installment_number=2).status == InstallmentStatus.OVERDUE
    assert Commission.objects.get(installment=first).status == CommissionStatus.RELEASED
    log = SalesImportLog.objects.get(pk=result["import_id"])
    assert log.filename == "parcelas.csv"
    assert log.source == ImportSource.CSV
    assert log.imported_by == admin_user


@pytest.mark.django_db
def test_import_xlsx_creates_missing_installment(sale_factory, seller):
    sale = sale_factory(external_id="V-200", seller=seller)
    upload = xlsx_upload(
        [
            ["Codigo", "Numero da parcela", "Valor", "Status", "Data de pagamento"],
            ["V-200", 4, "R$ 1.250,50", "pago", date(2024, 5, 2)],
        ]
    )

    result = import_installment_file(upload)

    assert result["created"] == 1
    installment = sale.installments.get(installment_number=4)
    assert installment.value == Decimal("1250.50")
    assert installment.total_installments == 4
    assert installment.status == InstallmentStatus.PAID
    assert installment.payment_date == date(2024, 5, 2)
    assert Commission.objects.get(installment=installment).commission_value == Decimal("125.05")


@pytest.mark.django_db
def test_import_counts_unknown_sale_as_failure(sale_factory):
    sale_factory(external_id="V-300")
    upload = csv_upload("external_id,installment_number,status\nNAO-EXISTE,1,pago\nV-300,1,pago\n")

    result = import_installment_file(upload)

    assert result["processed"] == 2
    assert result["failed"] == 1
    assert result["updated"] == 1
    assert "NAO-EXISTE" in result["errors"][0]
    assert result["errors"][0].startswith("Linha 2")


@pytest.mark.django_db
def test_import_missing_installment_without_value_fails(sale_factory):
    sale_factory(external_id="V-400")
    upload = csv_upload("external_id,installment_number,status\nV-400,9,pago\n")

    result = import_installment_file(upload)

    assert result["failed"] == 1
    assert result["created"] == 0


@pytest.mark.django_db
def test_import_skips_blank_rows(sale_factory):
    sale_factory(external_id="V-500")
    upload = csv_upload("external_id,installment_number,status\n,,\nV-500,1,pago\n")

    result = import_installment_file(upload)

    assert result["processed"] == 1


@pytest.mark.django_db
def test_import_reads_cp1252_csv(sale_factory):
    sale = sale_factory(external_id="V-600")
    content = "external_id;parcela;situa\u00e7\u00e3o\nV-600;1;Pago\n".encode("cp1252")
    upload = SimpleUploadedFile("parcelas.csv", content, content_type="text/csv")

    result = import_installment_file(upload)

    assert result["updated"] == 1
    assert sale.installments.get(installment_number=1).status == InstallmentStatus.PAID


@pytest.mark.django_db
def test_import_rejects_non_positive_installment_and_keeps_going(sale_factory):
    sale = sale_factory(external_id="V-700")
    upload = csv_upload(
        "external_id,installment_number,value,status\n"
        "V-700,1,,pago\n"
        "V-700,-1,100,pago\n"
        "V-700,2,,pago\n"
    )

    result = import_installment_file(upload)

    assert result["processed"] == 3
    assert result["updated"] == 2
    assert result["failed"] == 1
    assert result["errors"][0].startswith("Linha 3")
    assert not sale.installments.filter(installment_number__lt=1).exists()
    assert SalesImportLog.objects.filter(pk=result["import_id"], records_failed=1).exists()


@pytest.mark.django_db
def test_import_records_database_errors_per_row(monkeypatch, sale_factory):
    sale_factory(external_id="V-800")
    original = importers._apply_row

    def flaky_apply(row):
        if row["installment_number"] == "2":
            raise IntegrityError("CHECK constraint failed")
        return original(row)

    monkeypatch.setattr(importers, "_apply_row", flaky_apply)
    upload = csv_upload("external_id,installment_number,status\nV-800,1,pago\nV-800,2,pago\nV-800,3,pago\n")

    result = import_installment_file(upload)

    assert result["updated"] == 2
    assert result["failed"] == 1
    assert "CHECK constraint failed" in result["errors"][0]


@pytest.mark.django_db
def test_import_rejects_missing_columns():
    upload = csv_upload("external_id,valor\nV-1,10\n")

    with pytest.raises(ImportFormatError, match="installment_number"):
        import_installment_file(upload)


@pytest.mark.django_db
def test_import_rejects_unknown_extension():
    upload = SimpleUploadedFile("parcelas.pdf", b"%PDF")

    with pytest.raises(ImportFormatError):
        import_installment_file(upload)

    assert not SalesImportLog.objects.exists()
