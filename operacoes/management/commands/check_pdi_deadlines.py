from django.core.management.base import BaseCommand

from operacoes.pdis import check_pdi_deadlines


class Command(BaseCommand):
    help = "Notify collaborators about PDIs that are due soon or overdue."

    def handle(self, *args, **options):
        result = check_pdi_deadlines()
        self.stdout.write(
            self.style.SUCCESS(
                f"PDIs verificados: {result['checked']}, notificacoes enviadas: {result['notifications']}."
            )
        )
