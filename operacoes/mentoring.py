from __future__ import annotations

import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from .models import MentoringProcess, MentoringTask, MentoringTaskStatus

logger = logging.getLogger(__name__)


@transaction.atomic
def replicate_for_mentee(process: MentoringProcess, mentee_name: str) -> list[MentoringTask]:
    """Copy every template task of ``process`` into a fresh track for a mentee."""
    mentee_name = (mentee_name or "").strip()
    if not mentee_name:
        raise ValidationError({"mentee_name": "Informe o nome do mentorado."})
    already = MentoringTask.objects.filter(
        stage__process=process,
        mentee_name__iexact=mentee_name,
    ).exists()
    if already:
        raise ValidationError({"mentee_name": f"{mentee_name} ja possui tarefas neste processo."})

    created = []
    for stage in process.stages.order_by("position", "id"):
        templates = stage.tasks.filter(parent_task__isnull=True).order_by("position", "id")
        for template in templates:
            created.append(
                MentoringTask.objects.create(
                    stage=stage,
                    title=template.title,
                    description=template.description,
                    position=template.position,
                    status=MentoringTaskStatus.PENDING,
                    mentee_name=mentee_name,
                    parent_task=template,
                )
            )
    logger.info("Processo %s replicado para %s (%s tarefas)", process.pk, mentee_name, len(created))
    return created


def move_task(task: MentoringTask, status: str) -> MentoringTask:
    if status not in MentoringTaskStatus.values:
        raise ValidationError({"status": "Status invalido."})
    task.status = status
    task.completed_at = timezone.now() if status == MentoringTaskStatus.COMPLETED else None
    task.save(update_fields=["status", "completed_at", "updated_at"])
    return task
