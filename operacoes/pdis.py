from __future__ import annotations

import logging
from datetime import date, timedelta

from django.db import transaction
from django.utils import timezone

from .models import PDI, NotificationType, PDILesson, PDILessonStatus, PDIStatus
from .notifications import notify, recent_similar_exists

logger = logging.getLogger(__name__)

WARNING_WINDOW_DAYS = 3


def computed_status(pdi: PDI, today: date | None = None) -> str:
    today = today or timezone.localdate()
    if pdi.status == PDIStatus.FINISHED or pdi.finished_at:
        return PDIStatus.FINISHED
    if today > pdi.deadline:
        return PDIStatus.LATE
    return PDIStatus.ACTIVE


def progress(pdi: PDI) -> int:
    lessons = list(pdi.lessons.all())
    if not lessons:
        return 0
    done = sum(1 for lesson in lessons if lesson.status == PDILessonStatus.DONE)
    return round(done / len(lessons) * 100)


@transaction.atomic
def complete_lesson(lesson: PDILesson) -> PDILesson:
    lesson.status = PDILessonStatus.DONE
    lesson.completed_at = timezone.now()
    lesson.save(update_fields=["status", "completed_at", "updated_at"])
    pdi = lesson.pdi
    remaining = pdi.lessons.exclude(status=PDILessonStatus.DONE).exists()
    if not remaining and pdi.status != PDIStatus.FINISHED:
        pdi.status = PDIStatus.FINISHED
        pdi.finished_at = timezone.now()
        pdi.save(update_fields=["status", "finished_at", "updated_at"])
        logger.info("PDI %s finalizado apos a ultima aula", pdi.pk)
    return lesson


def reopen_lesson(lesson: PDILesson) -> PDILesson:
    lesson.status = PDILessonStatus.NOT_STARTED
    lesson.completed_at = None
    lesson.save(update_fields=["status", "completed_at", "updated_at"])
    return lesson


def _deadline_message(pdi: PDI, days_left: int) -> tuple[str, str, str] | None:
    deadline = pdi.deadline.strftime("%d/%m/%Y")
    if days_left < 0:
        return (
            "PDI Atrasado",
            f'O PDI "{pdi.title}" venceu em {deadline}.',
            NotificationType.ALERT,
        )
    if days_left == 0:
        return (
            "PDI vence HOJE",
            f'O PDI "{pdi.title}" vence hoje.',
            NotificationType.ALERT,
        )
    if days_left <= WARNING_WINDOW_DAYS:
        return (
            "PDI proximo do vencimento",
            f'O PDI "{pdi.title}" vence em {days_left} dia(s), em {deadline}.',
            NotificationType.WARNING,
        )
    return None


def check_pdi_deadlines(today: date | None = None) -> dict[str, int]:
    today = today or timezone.localdate()
    limit = today + timedelta(days=WARNING_WINDOW_DAYS)
    pdis = (
        PDI.objects.exclude(status=PDIStatus.FINISHED)
        .filter(finished_at__isnull=True, deadline__lte=limit)
        .select_related("collaborator")
    )
    checked = 0
    sent = 0
    for pdi in pdis:
        checked += 1
        days_left = (pdi.deadline - today).days
        if days_left < 0 and pdi.status != PDIStatus.LATE:
            pdi.status = PDIStatus.LATE
            pdi.save(update_fields=["status", "updated_at"])
        message = _deadline_message(pdi, days_left)
        if message is None:
            continue
        title, body, notification_type = message
        if recent_similar_exists(pdi.collaborator, "PDI", message_fragment=f'"{pdi.title}"'):
            continue
        notify(pdi.collaborator, title, body, notification_type, link=f"/pdis/{pdi.pk}")
        sent += 1
    logger.info("Prazos de PDI verificados: %s analisados, %s notificacoes", checked, sent)
    return {"checked": checked, "notifications": sent}
