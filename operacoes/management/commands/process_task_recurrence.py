from django.core.management.base import BaseCommand

from operacoes.tasks import process_task_recurrence


class Command(BaseCommand):
    help = "Create the next instance of completed recurring tasks."

    def handle(self, *args, **options):
        result = process_task_recurrence()
        self.stdout.write(
            self.style.SUCCESS(
                f"Recorrencia: {result['processed']} tarefas avaliadas, {result['created']} criadas."
            )
        )
