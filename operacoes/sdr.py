from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from .commissions import build_sdr_commission
from .models import (
    CommissionStatus,
    Installment,
    Sale,
    SaleStatus,
    SDRAssignment,
    SDRAssignmentStatus,
    SDRCommission,
)

logger = logging.getLogger(__name__)

DEFAULT_SDR_PERCENT = Decimal("1")


def sales_without_sdr(queryset: QuerySet) -> QuerySet:
    return queryset.filter(
        seller__isnull=False,
        status=SaleStatus.ACTIVE,
        sdr_assignment__isnull=True,
    )


@transaction.atomic
def create_assignment(sale: Sale, sdr, proof_link: str, commission_percent=None, user=None) -> SDRAssignment:
    """Nominate ``sdr`` for a sale. Commissions only exist after approval."""
    sale = Sale.objects.select_for_update().get(pk=sale.pk)
    if SDRAssignment.objects.filter(sale=sale).exists():
        raise ValueError("Esta venda ja possui um SDR atribuido.")
    if sale.status != SaleStatus.ACTIVE:
        raise ValueError("Somente vendas ativas podem receber SDR.")
    if not sale.seller_id:
        raise ValueError("Atribua um vendedor antes de indicar o SDR.")
    proof_link = (proof_link or "").strip()
    if not proof_link:
        raise ValueError("Informe o link de comprovacao.")
    assignment = SDRAssignment.objects.create(
        sale=sale,
        sdr=sdr,
        proof_link=proof_link,
        commission_percent=commission_percent or DEFAULT_SDR_PERCENT,
        created_by=user,
    )
    logger.info("SDR %s indicado para a venda %s", sdr.pk, sale.external_id)
    return assignment


@transaction.atomic
def approve_assignment(assignment: SDRAssignment, user) -> SDRAssignment:
    assignment = SDRAssignment.objects.select_for_update().select_related("sdr").get(pk=assignment.pk)
    if assignment.status != SDRAssignmentStatus.PENDING:
        raise ValueError("Somente atribuicoes pendentes podem ser aprovadas.")
    assignment.status = SDRAssignmentStatus.APPROVED
    assignment.approved_by = user
    assignment.approved_at = timezone.now()
    assignment.rejection_reason = ""
    assignment.save(update_fields=["status", "approved_by", "approved_at", "rejection_reason", "updated_at"])
    installments = Installment.objects.filter(sale_id=assignment.sale_id).order_by("installment_number")
    created = [build_sdr_commission(installment, assignment) for installment in installments]
    logger.info("Atribuicao de SDR %s aprovada: %s comissoes geradas", assignment.pk, len(created))
    return assignment


@transaction.atomic
def reject_assignment(assignment: SDRAssignment, reason: str) -> SDRAssignment:
    assignment = SDRAssignment.objects.select_for_update().get(pk=assignment.pk)
    if assignment.status != SDRAssignmentStatus.PENDING:
        raise ValueError("Somente atribuicoes pendentes podem ser rejeitadas.")
    reason = (reason or "").strip()
    if not reason:
        raise ValueError("Informe o motivo da rejeicao.")
    assignment.status = SDRAssignmentStatus.REJECTED
    assignment.rejection_reason = reason
    assignment.save(update_fields=["status", "rejection_reason", "updated_at"])
    logger.info("Atribuicao de SDR %s rejeitada", assignment.pk)
    return assignment


def delete_assignment(assignment: SDRAssignment) -> None:
    if assignment.status != SDRAssignmentStatus.PENDING:
        raise ValueError("Somente atribuicoes pendentes podem ser removidas.")
    assignment.delete()


def attach_to_new_installment(installment: Installment) -> SDRCommission | None:
    """Credit the approved SDR of the sale for an installment created later."""
    assignment = SDRAssignment.objects.filter(
        sale_id=installment.sale_id,
        status=SDRAssignmentStatus.APPROVED,
    ).first()
    if assignment is None:
        return None
    return build_sdr_commission(installment, assignment)


def sdr_commission_summary(queryset: QuerySet) -> dict:
    summary = {
        "total_released": Decimal("0"),
        "total_pending": Decimal("0"),
        "total_suspended": Decimal("0"),
        "total_cancelled": Decimal("0"),
        "count": 0,
    }
    keys = {
        CommissionStatus.RELEASED: "total_released",
        CommissionStatus.PENDING: "total_pending",
        CommissionStatus.SUSPENDED: "total_suspended",
        CommissionStatus.CANCELLED: "total_cancelled",
    }
    for commission in queryset:
        summary["count"] += 1
        key = keys.get(commission.status)
        if key:
            summary[key] += commission.commission_value or Decimal("0")
    return summary
