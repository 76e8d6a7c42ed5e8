from itertools import chain

from django.core.management.base import BaseCommand

from operacoes.commissions import commission_status_for, sync_commission_status
from operacoes.models import Commission, SDRCommission


class Command(BaseCommand):
    help = "Sync seller and SDR commission status based on the status of its installment."

    def add_arguments(self, parser):
        parser.add_argument(
            "--commit",
            action="store_true",
            help="Apply changes to the database. Default is dry-run.",
        )

    def handle(self, *args, **options):
        commit = options["commit"]
        commissions = chain(
            Commission.objects.select_related("installment").order_by("id"),
            SDRCommission.objects.select_related("installment").order_by("id"),
        )
        total = 0
        updated = 0

        for commission in commissions:
            total += 1
            installment_status = commission.installment.status
            if commission.status == commission_status_for(installment_status):
                continue
            updated += 1
            if commit:
                sync_commission_status(commission, installment_status)

        if commit:
            message = f"Sync complete. Updated {updated} of {total} commissions."
            self.stdout.write(self.style.SUCCESS(message))
        else:
            message = f"Dry-run only. {updated} of {total} commissions would be updated."
            self.stdout.write(self.style.WARNING(message))
