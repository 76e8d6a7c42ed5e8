from __future__ import annotations

import csv
import io
import logging
import os
import re
import unicodedata
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from django.db import DatabaseError, transaction
from openpyxl import load_workbook

from . import sdr
from .commissions import build_commission, set_installment_status, to_cents
from .models import (
    ImportSource,
    Installment,
    InstallmentStatus,
    Sale,
    SalePlatform,
)
from .sales import add_months
from .sales_sync import SyncResult

logger = logging.getLogger(__name__)

_COLUMN_MAP = {
    "external_id": "external_id",
    "id externo": "external_id",
    "id_externo": "external_id",
    "codigo": "external_id",
    "codigo da venda": "external_id",
    "transacao": "external_id",
    "transaction": "external_id",
    "installment_number": "installment_number",
    "parcela": "installment_number",
    "numero parcela": "installment_number",
    "numero da parcela": "installment_number",
    "value": "value",
    "valor": "value",
    "valor parcela": "value",
    "status": "status",
    "situacao": "status",
    "payment_date": "payment_date",
    "data pagamento": "payment_date",
    "data de pagamento": "payment_date",
}

_REQUIRED_FIELDS = {"external_id", "installment_number", "status"}

_STATUS_WORDS = {
    "pago": InstallmentStatus.PAID,
    "paga": InstallmentStatus.PAID,
    "paid": InstallmentStatus.PAID,
    "cancelado": InstallmentStatus.CANCELLED,
    "cancelada": InstallmentStatus.CANCELLED,
    "cancelled": InstallmentStatus.CANCELLED,
    "estornado": InstallmentStatus.REFUNDED,
    "estornada": InstallmentStatus.REFUNDED,
    "refunded": InstallmentStatus.REFUNDED,
    "atrasado": InstallmentStatus.OVERDUE,
    "atrasada": InstallmentStatus.OVERDUE,
    "vencido": InstallmentStatus.OVERDUE,
    "vencida": InstallmentStatus.OVERDUE,
    "overdue": InstallmentStatus.OVERDUE,
}

_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y")


class ImportFormatError(ValueError):
    pass


def import_installment_file(uploaded_file, platform: str = SalePlatform.OTHER, user=None) -> dict:
    """Apply installment statuses from a CSV or XLSX sheet.

    Each row is applied in its own transaction; failures are counted and
    described in the resulting ``SalesImportLog``.
    """
    filename = os.path.basename(getattr(uploaded_file, "name", "") or "")
    extension = os.path.splitext(filename)[1].lower()
    if extension in {".xlsx", ".xlsm"}:
        rows = _read_xlsx(uploaded_file)
    elif extension == ".csv":
        rows = _read_csv(uploaded_file)
    else:
        raise ImportFormatError("Formato de arquivo nao suportado. Use .xlsx ou .csv.")

    result = SyncResult()
    for row_index, row in rows:
        result.processed += 1
        try:
            with transaction.atomic():
                created = _apply_row(row)
        except (ValueError, DatabaseError) as exc:
            result.add_error(f"Linha {row_index}", exc)
            continue
        if created:
            result.created += 1
        else:
            result.updated += 1

    log = result.write_log(platform, ImportSource.CSV, user=user, filename=filename)
    logger.info("Importacao %s concluida: %s", filename, result.as_dict())
    payload = result.as_dict()
    payload["import_id"] = log.pk
    return payload


def normalize_status(value: object) -> str:
    return _STATUS_WORDS.get(_normalize_header(value), InstallmentStatus.PENDING)


def _apply_row(row: dict[str, object]) -> bool:
    missing = [field for field in _REQUIRED_FIELDS if _is_empty(row.get(field))]
    if missing:
        raise ValueError(f"Campos obrigatorios ausentes: {', '.join(sorted(missing))}.")

    external_id = str(row["external_id"]).strip()
    number = _to_int(row["installment_number"], "Parcela")
    status = normalize_status(row["status"])
    payment_date = _to_date(row.get("payment_date"), "Data de pagamento")

    sale = Sale.objects.select_for_update().filter(external_id=external_id).first()
    if sale is None:
        raise ValueError(f"Venda {external_id} nao encontrada.")

    installment = Installment.objects.filter(sale=sale, installment_number=number).first()
    if installment is not None:
        set_installment_status(installment, status, payment_date)
        return False

    if _is_empty(row.get("value")):
        raise ValueError(f"Parcela {number} da venda {external_id} nao existe e a linha nao informa valor.")
    installment = Installment.objects.create(
        sale=sale,
        installment_number=number,
        total_installments=max(sale.installments_count, number),
        value=to_cents(_to_decimal(row["value"], "Valor")),
        due_date=add_months(sale.sale_date, number - 1),
        status=status,
        payment_date=payment_date if status == InstallmentStatus.PAID else None,
    )
    if sale.seller_id:
        build_commission(installment, sale.seller, sale.commission_percent)
    sdr.attach_to_new_installment(installment)
    return True


def _normalize_header(value: object) -> str:
    if value is None:
        return ""
    text = str(value).strip().lower()
    text = unicodedata.normalize("NFKD", text)
    text = text.encode("ascii", "ignore").decode("ascii")
    return re.sub(r"\s+", " ", text)


def _build_header_map(headers: list[object]) -> dict[int, str]:
    header_map: dict[int, str] = {}
    for idx, header in enumerate(headers):
        normalized = _normalize_header(header)
        if normalized in _COLUMN_MAP:
            header_map[idx] = _COLUMN_MAP[normalized]
    missing = _REQUIRED_FIELDS.difference(header_map.values())
    if missing:
        missing_list = ", ".join(sorted(missing))
        raise ImportFormatError(f"Colunas obrigatorias ausentes: {missing_list}.")
    return header_map


def _rows_from(header_map: dict[int, str], rows_iter, start: int = 2):
    rows: list[tuple[int, dict[str, object]]] = []
    for row_index, row in enumerate(rows_iter, start=start):
        if not row or all(_is_empty(cell) for cell in row):
            continue
        row_data = {
            field_name: row[col_index] if col_index < len(row) else None
            for col_index, field_name in header_map.items()
        }
        rows.append((row_index, row_data))
    return rows


def _read_xlsx(uploaded_file) -> list[tuple[int, dict[str, object]]]:
    workbook = load_workbook(uploaded_file, data_only=True, read_only=True)
    sheet = workbook.active
    rows_iter = sheet.iter_rows(values_only=True)
    headers = next(rows_iter, None)
    if not headers:
        raise ImportFormatError("Planilha vazia.")
    return _rows_from(_build_header_map(list(headers)), rows_iter)


def _read_csv(uploaded_file) -> list[tuple[int, dict[str, object]]]:
    raw = uploaded_file.read()
    text = _decode_csv(raw) if isinstance(raw, bytes) else raw
    stream = io.StringIO(text)
    try:
        dialect = csv.Sniffer().sniff(text[:2048], delimiters=",;\t")
    except csv.Error:
        dialect = csv.excel
    reader = csv.reader(stream, dialect)
    headers = next(reader, None)
    if not headers:
        raise ImportFormatError("Planilha vazia.")
    return _rows_from(_build_header_map(headers), reader)


def _decode_csv(raw: bytes) -> str:
    # pt-BR Excel exports CSV as cp1252.
    for encoding in ("utf-8-sig", "cp1252"):
        try:
            return raw.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise ImportFormatError("Nao foi possivel ler o arquivo CSV. Salve-o em UTF-8.")


def _is_empty(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


def _to_int(value: object, label: str) -> int:
    if isinstance(value, (int, float)):
        number = int(value)
    else:
        text = str(value).strip()
        try:
            number = int(float(text.replace(",", ".")))
        except ValueError as exc:
            raise ValueError(f"{label} deve ser numerico.") from exc
    if number < 1:
        raise ValueError(f"{label} deve ser maior que zero.")
    return number


def _to_decimal(value: object, label: str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    text = str(value).strip().replace("R$", "").strip()
    if "," in text:
        text = text.replace(".", "").replace(",", ".")
    try:
        return Decimal(text)
    except InvalidOperation as exc:
        raise ValueError(f"{label} deve ser numerico.") from exc


def _to_date(value: object, label: str) -> date | None:
    if _is_empty(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()[:10]
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"{label} invalida: {value}.")
