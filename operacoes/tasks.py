from __future__ import annotations

import logging
from datetime import date, timedelta

from django.db import transaction
from django.utils import timezone

from .models import Task, TaskHistory, TaskRecurrence

logger = logging.getLogger(__name__)

RECURRENCE_DAYS = {
    TaskRecurrence.DAILY: 1,
    TaskRecurrence.WEEKLY: 7,
    TaskRecurrence.BIWEEKLY: 14,
    TaskRecurrence.MONTHLY: 30,
    TaskRecurrence.SEMIANNUAL: 182,
    TaskRecurrence.YEARLY: 365,
}

# Fields copied from a recurring task into its next instance.
_INSTANCE_FIELDS = (
    "title",
    "description",
    "priority",
    "category",
    "assignee",
    "created_by",
    "due_time",
    "recurrence",
    "recurrence_end_date",
)


def record_history(task: Task, user, action: str, field_changed: str = "", old_value="", new_value="") -> TaskHistory:
    return TaskHistory.objects.create(
        task=task,
        user=user,
        action=action,
        field_changed=field_changed,
        old_value="" if old_value is None else str(old_value),
        new_value="" if new_value is None else str(new_value),
    )


def complete_task(task: Task, user=None) -> Task:
    if task.completed:
        return task
    with transaction.atomic():
        task.completed = True
        task.completed_at = timezone.now()
        task.save(update_fields=["completed", "completed_at", "updated_at"])
        record_history(task, user, "completed", "completed", False, True)
    return task


def reopen_task(task: Task, user=None) -> Task:
    if not task.completed:
        return task
    with transaction.atomic():
        task.completed = False
        task.completed_at = None
        task.save(update_fields=["completed", "completed_at", "updated_at"])
        record_history(task, user, "reopened", "completed", True, False)
    return task


def skip_weekend(value: date) -> date:
    weekday = value.weekday()
    if weekday == 5:
        return value + timedelta(days=2)
    if weekday == 6:
        return value + timedelta(days=1)
    return value


def next_occurrence(due_date: date, recurrence: str) -> date | None:
    days = RECURRENCE_DAYS.get(recurrence)
    if days is None:
        return None
    return skip_weekend(due_date + timedelta(days=days))


def process_task_recurrence(today: date | None = None) -> dict[str, int]:
    """Create the next instance of every completed recurring task that is due."""
    today = today or timezone.localdate()
    candidates = Task.objects.filter(
        completed=True,
        due_date__lte=today,
    ).exclude(recurrence=TaskRecurrence.NONE)

    processed = 0
    created = 0
    for task in candidates:
        processed += 1
        if task.recurrence_end_date and task.recurrence_end_date < today:
            continue
        next_date = next_occurrence(task.due_date, task.recurrence)
        if next_date is None:
            continue
        if task.recurrence_end_date and next_date > task.recurrence_end_date:
            continue
        root = task.parent_task if task.is_recurring_instance and task.parent_task_id else task
        if Task.objects.filter(parent_task=root, due_date=next_date).exists():
            continue
        with transaction.atomic():
            instance = Task.objects.create(
                parent_task=root,
                is_recurring_instance=True,
                due_date=next_date,
                completed=False,
                **{field: getattr(task, field) for field in _INSTANCE_FIELDS},
            )
            record_history(instance, None, "created", "recurrence", "", f"Recorrencia de {task.pk}")
        created += 1
        logger.info("Tarefa recorrente %s criada a partir de %s para %s", instance.pk, task.pk, next_date)
    return {"processed": processed, "created": created}
