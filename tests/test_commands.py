from io import StringIO

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from operacoes.models import Commission, CommissionStatus, Installment, InstallmentStatus


@pytest.mark.django_db
def test_sync_commission_status_dry_run_then_commit(sale_factory, seller):
    sale = sale_factory(seller=seller)
    # Bypass the service to leave the commission out of sync.
    Installment.objects.filter(sale=sale, installment_number=1).update(status=InstallmentStatus.PAID)

    dry_out = StringIO()
    call_command("sync_commission_status", stdout=dry_out)
    assert "1 of 3 commissions would be updated" in dry_out.getvalue()
    assert not Commission.objects.filter(status=CommissionStatus.RELEASED).exists()

    out = StringIO()
    call_command("sync_commission_status", "--commit", stdout=out)
    assert "Updated 1 of 3" in out.getvalue()
    released = Commission.objects.get(status=CommissionStatus.RELEASED)
    assert released.installment.installment_number == 1
    assert released.released_at is not None


@pytest.mark.django_db
def test_sync_hotmart_command_without_credentials():
    with pytest.raises(CommandError, match="Credenciais Hotmart"):
        call_command("sync_hotmart", "--start", "2024-01-01", "--end", "2024-01-31")


@pytest.mark.django_db
def test_sync_hotmart_command_validates_period():
    with pytest.raises(CommandError):
        call_command("sync_hotmart")
    with pytest.raises(CommandError):
        call_command("sync_hotmart", "--start", "2024-02-01", "--end", "2024-01-01")


@pytest.mark.django_db
def test_process_task_recurrence_command():
    out = StringIO()

    call_command("process_task_recurrence", stdout=out)

    assert "0 tarefas avaliadas, 0 criadas" in out.getvalue()


@pytest.mark.django_db
def test_check_pdi_deadlines_command():
    out = StringIO()

    call_command("check_pdi_deadlines", stdout=out)

    assert "PDIs verificados: 0, notificacoes enviadas: 0." in out.getvalue()


@pytest.mark.django_db
def test_sync_asaas_command_requires_known_seller(settings):
    settings.ASAAS_API_KEY = "chave"

    with pytest.raises(CommandError, match="--seller"):
        call_command("sync_asaas")
    with pytest.raises(CommandError, match="nao encontrado"):
        call_command("sync_asaas", "--seller", "fantasma")
