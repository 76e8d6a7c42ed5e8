from datetime import datetime, time

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_date

from operacoes.integrations import IntegrationError
from operacoes.models import SyncStatus
from operacoes.sales_sync import (
    scheduled_hotmart_sync,
    sync_hotmart_installments,
    sync_hotmart_products,
    sync_hotmart_sales,
)


def _parse_day(value: str, label: str):
    parsed = parse_date(value or "")
    if parsed is None:
        raise CommandError(f"Data invalida para {label}: {value!r}. Use AAAA-MM-DD.")
    return parsed


class Command(BaseCommand):
    help = "Sync sales, installments or products from Hotmart."

    def add_arguments(self, parser):
        parser.add_argument(
            "--scheduled",
            action="store_true",
            help="Sync the last 24 hours and record a HotmartSyncLog.",
        )
        parser.add_argument("--start", help="First sale day (YYYY-MM-DD).")
        parser.add_argument("--end", help="Last sale day (YYYY-MM-DD).")
        parser.add_argument(
            "--transaction-status",
            default="",
            help="Restrict the sales history to one Hotmart status.",
        )
        parser.add_argument(
            "--products",
            action="store_true",
            help="Sync the product catalogue instead of sales.",
        )
        parser.add_argument(
            "--installments",
            action="store_true",
            help="Refresh installment status of stored Hotmart sales.",
        )

    def handle(self, *args, **options):
        try:
            if options["products"]:
                self._report("Produtos", sync_hotmart_products())
            elif options["installments"]:
                self._report("Parcelas", sync_hotmart_installments())
            elif options["scheduled"]:
                log = scheduled_hotmart_sync()
                message = (
                    f"Sincronizacao agendada: {log.get_status_display()} "
                    f"(recebidos={log.total_fetched}, criados={log.records_created}, "
                    f"atualizados={log.records_updated}, falhas={log.records_failed})"
                )
                style = self.style.SUCCESS if log.status == SyncStatus.SUCCESS else self.style.WARNING
                self.stdout.write(style(message))
            else:
                if not options["start"] or not options["end"]:
                    raise CommandError("Informe --start e --end, ou use --scheduled.")
                start_day = _parse_day(options["start"], "--start")
                end_day = _parse_day(options["end"], "--end")
                if end_day < start_day:
                    raise CommandError("--end deve ser posterior a --start.")
                tz = timezone.get_current_timezone()
                start = timezone.make_aware(datetime.combine(start_day, time.min), tz)
                end = timezone.make_aware(datetime.combine(end_day, time.max), tz)
                result = sync_hotmart_sales(
                    start,
                    end,
                    transaction_status=options["transaction_status"] or None,
                )
                self._report("Vendas", result)
        except IntegrationError as exc:
            raise CommandError(exc.public_message) from exc

    def _report(self, label: str, result: dict) -> None:
        message = (
            f"{label}: processados={result['processed']}, criados={result['created']}, "
            f"atualizados={result['updated']}, falhas={result['failed']}"
        )
        style = self.style.WARNING if result["failed"] else self.style.SUCCESS
        self.stdout.write(style(message))
        for error in result["errors"]:
            self.stdout.write(f"  - {error}")
