from decimal import Decimal

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile

from operacoes import sdr
from operacoes.commissions import set_installment_status
from operacoes.importers import import_installment_file
from operacoes.models import (
    CommissionStatus,
    InstallmentStatus,
    Sale,
    SDRAssignment,
    SDRAssignmentStatus,
    SDRCommission,
)
from operacoes.sales import cancel_sale

PROOF = "https://drive.example.com/call-gravada"


@pytest.fixture
def sold(sale_factory, seller):
    return sale_factory(external_id="SDR-1", seller=seller)


@pytest.mark.django_db
def test_create_assignment_waits_for_approval(sold, collaborator, finance_user):
    assignment = sdr.create_assignment(sold, collaborator, f"  {PROOF} ", user=finance_user)

    assert assignment.status == SDRAssignmentStatus.PENDING
    assert assignment.commission_percent == Decimal("1")
    assert assignment.proof_link == PROOF
    assert assignment.created_by == finance_user
    assert not SDRCommission.objects.exists()


@pytest.mark.django_db
def test_create_assignment_rejects_invalid_sales(sale_factory, sold, seller, collaborator):
    sdr.create_assignment(sold, collaborator, PROOF)
    without_seller = sale_factory(external_id="SDR-2")
    cancelled = cancel_sale(sale_factory(external_id="SDR-3", seller=seller))

    with pytest.raises(ValueError, match="ja possui"):
        sdr.create_assignment(sold, collaborator, PROOF)
    with pytest.raises(ValueError, match="vendedor"):
        sdr.create_assignment(without_seller, collaborator, PROOF)
    with pytest.raises(ValueError, match="ativas"):
        sdr.create_assignment(cancelled, collaborator, PROOF)
    with pytest.raises(ValueError, match="comprovacao"):
        sdr.create_assignment(sale_factory(external_id="SDR-4", seller=seller), collaborator, " ")


@pytest.mark.django_db
def test_approve_creates_commission_per_installment(sold, collaborator, admin_user):
    first = sold.installments.get(installment_number=1)
    set_installment_status(first, InstallmentStatus.PAID)
    assignment = sdr.create_assignment(sold, collaborator, PROOF, Decimal("2"))

    approved = sdr.approve_assignment(assignment, admin_user)

    assert approved.status == SDRAssignmentStatus.APPROVED
    assert approved.approved_by == admin_user
    assert approved.approved_at is not None
    commissions = list(SDRCommission.objects.order_by("installment__installment_number"))
    assert [item.commission_value for item in commissions] == [Decimal("6.67")] * 3
    assert [item.status for item in commissions] == [
        CommissionStatus.RELEASED,
        CommissionStatus.PENDING,
        CommissionStatus.PENDING,
    ]
    assert commissions[0].released_at is not None
    assert {item.sdr for item in commissions} == {collaborator}

    with pytest.raises(ValueError, match="pendentes"):
        sdr.approve_assignment(assignment, admin_user)


@pytest.mark.django_db
def test_reject_requires_reason_and_blocks_approval(sold, collaborator, admin_user):
    assignment = sdr.create_assignment(sold, collaborator, PROOF)

    with pytest.raises(ValueError, match="motivo"):
        sdr.reject_assignment(assignment, "  ")
    rejected = sdr.reject_assignment(assignment, "Lead ja era do vendedor")

    assert rejected.status == SDRAssignmentStatus.REJECTED
    assert rejected.rejection_reason == "Lead ja era do vendedor"
    with pytest.raises(ValueError):
        sdr.approve_assignment(assignment, admin_user)
    assert not SDRCommission.objects.exists()


@pytest.mark.django_db
def test_installment_status_moves_sdr_commission(sold, collaborator, admin_user):
    sdr.approve_assignment(sdr.create_assignment(sold, collaborator, PROOF), admin_user)
    installment = sold.installments.get(installment_number=2)

    set_installment_status(installment, InstallmentStatus.PAID)
    released = SDRCommission.objects.get(installment=installment)
    set_installment_status(installment, InstallmentStatus.REFUNDED)
    refunded = SDRCommission.objects.get(installment=installment)

    assert released.status == CommissionStatus.RELEASED
    assert refunded.status == CommissionStatus.CANCELLED
    assert refunded.released_at is None
    assert installment.commission.status == CommissionStatus.CANCELLED


@pytest.mark.django_db
def test_cancel_sale_cancels_sdr_commissions(sold, collaborator, admin_user):
    sdr.approve_assignment(sdr.create_assignment(sold, collaborator, PROOF), admin_user)

    cancel_sale(sold)

    assert set(SDRCommission.objects.values_list("status", flat=True)) == {CommissionStatus.CANCELLED}


@pytest.mark.django_db
def test_delete_only_pending(sold, sale_factory, seller, collaborator, admin_user):
    pending = sdr.create_assignment(sold, collaborator, PROOF)
    approved = sdr.approve_assignment(
        sdr.create_assignment(sale_factory(external_id="SDR-5", seller=seller), collaborator, PROOF),
        admin_user,
    )

    sdr.delete_assignment(pending)

    assert not SDRAssignment.objects.filter(pk=pending.pk).exists()
    with pytest.raises(ValueError):
        sdr.delete_assignment(approved)


@pytest.mark.django_db
def test_summary_and_available_sales(sold, sale_factory, seller, collaborator, admin_user):
    sale_factory(external_id="SDR-6", seller=seller)
    sale_factory(external_id="SDR-7")
    sdr.approve_assignment(sdr.create_assignment(sold, collaborator, PROOF), admin_user)
    set_installment_status(sold.installments.get(installment_number=1), InstallmentStatus.PAID)

    summary = sdr.sdr_commission_summary(SDRCommission.objects.all())
    available = sdr.sales_without_sdr(Sale.objects.all())

    assert summary["count"] == 3
    assert summary["total_released"] == Decimal("3.33")
    assert summary["total_pending"] == Decimal("6.66")
    assert list(available.values_list("external_id", flat=True)) == ["SDR-6"]


@pytest.mark.django_db
def test_sdr_api_flow(api_client, sold, finance_user, seller, collaborator):
    manager = api_client(finance_user)

    forbidden = api_client(seller).post(
        "/api/sdr/",
        {"sale": sold.pk, "sdr": collaborator.pk, "proof_link": PROOF},
        format="json",
    )
    created = manager.post(
        "/api/sdr/",
        {"sale": sold.pk, "sdr": collaborator.pk, "proof_link": PROOF, "commission_percent": "1.5"},
        format="json",
    )
    approved = manager.post(f"/api/sdr/{created.data['id']}/aprovar/")
    own = api_client(collaborator).get("/api/comissoes-sdr/")
    others = api_client(seller).get("/api/comissoes-sdr/")
    summary = api_client(collaborator).get("/api/comissoes-sdr/resumo/")

    assert forbidden.status_code == 403
    assert created.status_code == 201
    assert created.data["status"] == SDRAssignmentStatus.PENDING
    assert approved.status_code == 200
    assert approved.data["status"] == SDRAssignmentStatus.APPROVED
    assert own.data["count"] == 3
    assert others.data["count"] == 0
    assert summary.data["count"] == 3


@pytest.mark.django_db
def test_sdr_api_reject_needs_reason(api_client, sold, finance_user, collaborator):
    assignment = sdr.create_assignment(sold, collaborator, PROOF)
    manager = api_client(finance_user)

    missing = manager.post(f"/api/sdr/{assignment.pk}/rejeitar/", {}, format="json")
    rejected = manager.post(f"/api/sdr/{assignment.pk}/rejeitar/", {"reason": "Sem comprovacao"}, format="json")
    approve_after = manager.post(f"/api/sdr/{assignment.pk}/aprovar/")

    assert missing.status_code == 400
    assert rejected.status_code == 200
    assert rejected.data["rejection_reason"] == "Sem comprovacao"
    assert approve_after.status_code == 400


@pytest.mark.django_db
def test_imported_installment_credits_approved_sdr(sold, collaborator, admin_user):
    sdr.approve_assignment(sdr.create_assignment(sold, collaborator, PROOF), admin_user)
    upload = SimpleUploadedFile(
        "parcelas.csv",
        b"external_id,installment_number,value,status\nSDR-1,4,200,pago\n",
        content_type="text/csv",
    )

    result = import_installment_file(upload)

    assert result["created"] == 1
    commission = SDRCommission.objects.get(installment__installment_number=4)
    assert commission.commission_value == Decimal("2.00")
    assert commission.status == CommissionStatus.RELEASED
