from datetime import date, timedelta

import pytest
from django.utils import timezone

from operacoes import pdis
from operacoes.models import PDI, Notification, NotificationType, PDILesson, PDILessonStatus, PDIStatus


@pytest.fixture
def pdi_factory(collaborator, admin_user):
    def build(**overrides):
        data = {
            "title": "Lideranca",
            "collaborator": collaborator,
            "deadline": date(2024, 6, 10),
            "created_by": admin_user,
        }
        data.update(overrides)
        return PDI.objects.create(**data)

    return build


@pytest.mark.django_db
def test_computed_status(pdi_factory):
    pdi = pdi_factory()

    assert pdis.computed_status(pdi, today=date(2024, 6, 10)) == PDIStatus.ACTIVE
    assert pdis.computed_status(pdi, today=date(2024, 6, 11)) == PDIStatus.LATE
    pdi.finished_at = timezone.now()
    assert pdis.computed_status(pdi, today=date(2024, 6, 11)) == PDIStatus.FINISHED


@pytest.mark.django_db
def test_progress_and_completion(pdi_factory):
    pdi = pdi_factory()
    first = PDILesson.objects.create(pdi=pdi, title="Aula 1", order=1)
    second = PDILesson.objects.create(pdi=pdi, title="Aula 2", order=2)
    PDILesson.objects.create(pdi=pdi, title="Aula 3", order=3)

    assert pdis.progress(pdi) == 0
    pdis.complete_lesson(first)
    assert pdis.progress(pdi) == 33
    pdis.complete_lesson(second)
    assert pdis.progress(pdi) == 67

    pdi.refresh_from_db()
    assert pdi.status == PDIStatus.ACTIVE


@pytest.mark.django_db
def test_last_lesson_finishes_pdi(pdi_factory):
    pdi = pdi_factory()
    lesson = PDILesson.objects.create(pdi=pdi, title="Unica aula")

    pdis.complete_lesson(lesson)

    pdi.refresh_from_db()
    assert pdi.status == PDIStatus.FINISHED
    assert pdi.finished_at is not None


@pytest.mark.django_db
def test_reopen_lesson(pdi_factory):
    lesson = PDILesson.objects.create(pdi=pdi_factory(), title="Aula")
    pdis.complete_lesson(lesson)

    pdis.reopen_lesson(lesson)

    lesson.refresh_from_db()
    assert lesson.status == PDILessonStatus.NOT_STARTED
    assert lesson.completed_at is None


@pytest.mark.django_db
def test_check_deadlines_notifies_by_window(pdi_factory, collaborator):
    today = date(2024, 6, 10)
    late = pdi_factory(title="Atrasado", deadline=today - timedelta(days=1))
    pdi_factory(title="Hoje", deadline=today)
    pdi_factory(title="Em breve", deadline=today + timedelta(days=3))
    pdi_factory(title="Longe", deadline=today + timedelta(days=10))

    result = pdis.check_pdi_deadlines(today=today)

    assert result == {"checked": 3, "notifications": 3}
    titles = set(Notification.objects.filter(recipient=collaborator).values_list("title", flat=True))
    assert titles == {"PDI Atrasado", "PDI vence HOJE", "PDI proximo do vencimento"}
    warning = Notification.objects.get(title="PDI proximo do vencimento")
    assert warning.notification_type == NotificationType.WARNING
    late.refresh_from_db()
    assert late.status == PDIStatus.LATE


@pytest.mark.django_db
def test_check_deadlines_does_not_repeat_within_a_day(pdi_factory):
    today = date(2024, 6, 10)
    pdi_factory(deadline=today)

    pdis.check_pdi_deadlines(today=today)
    second = pdis.check_pdi_deadlines(today=today)

    assert second["notifications"] == 0
    assert Notification.objects.count() == 1


@pytest.mark.django_db
def test_check_deadlines_notifies_each_overdue_pdi(pdi_factory, collaborator):
    today = date(2024, 6, 10)
    pdi_factory(title="Lideranca", deadline=today - timedelta(days=2))
    pdi_factory(title="Comunicacao", deadline=today - timedelta(days=1))

    result = pdis.check_pdi_deadlines(today=today)
    again = pdis.check_pdi_deadlines(today=today)

    assert result == {"checked": 2, "notifications": 2}
    assert again["notifications"] == 0
    messages = list(Notification.objects.filter(recipient=collaborator).values_list("message", flat=True))
    assert any("Lideranca" in message for message in messages)
    assert any("Comunicacao" in message for message in messages)


@pytest.mark.django_db
def test_check_deadlines_ignores_finished(pdi_factory):
    pdi_factory(deadline=date(2024, 6, 1), status=PDIStatus.FINISHED)

    assert pdis.check_pdi_deadlines(today=date(2024, 6, 10)) == {"checked": 0, "notifications": 0}
