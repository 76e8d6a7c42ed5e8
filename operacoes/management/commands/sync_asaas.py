from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.utils.dateparse import parse_date

from operacoes.integrations import IntegrationError
from operacoes.sales_sync import sync_asaas_installments, sync_asaas_payments


class Command(BaseCommand):
    help = "Import Asaas payments as sales or refresh installment status."

    def add_arguments(self, parser):
        parser.add_argument("--seller", help="Username of the seller credited with new sales.")
        parser.add_argument("--start", help="First payment day (YYYY-MM-DD).")
        parser.add_argument("--end", help="Last payment day (YYYY-MM-DD).")
        parser.add_argument(
            "--installments",
            action="store_true",
            help="Refresh installment status of stored Asaas sales.",
        )

    def handle(self, *args, **options):
        try:
            if options["installments"]:
                result = sync_asaas_installments()
                label = "Parcelas"
            else:
                seller = self._seller(options["seller"])
                start = self._date(options["start"], "--start")
                end = self._date(options["end"], "--end")
                result = sync_asaas_payments(seller, start, end)
                label = "Pagamentos"
        except IntegrationError as exc:
            raise CommandError(exc.public_message) from exc

        message = (
            f"{label}: processados={result['processed']}, criados={result['created']}, "
            f"atualizados={result['updated']}, falhas={result['failed']}"
        )
        style = self.style.WARNING if result["failed"] else self.style.SUCCESS
        self.stdout.write(style(message))
        for error in result["errors"]:
            self.stdout.write(f"  - {error}")

    def _seller(self, username):
        if not username:
            raise CommandError("Informe --seller para importar pagamentos.")
        User = get_user_model()
        try:
            return User.objects.get(username=username)
        except User.DoesNotExist as exc:
            raise CommandError(f"Usuario {username!r} nao encontrado.") from exc

    def _date(self, value, label):
        if not value:
            return None
        parsed = parse_date(value)
        if parsed is None:
            raise CommandError(f"Data invalida para {label}: {value!r}. Use AAAA-MM-DD.")
        return parsed
