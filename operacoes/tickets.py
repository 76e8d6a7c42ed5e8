from __future__ import annotations

import logging
from datetime import datetime, timedelta

from django.db import IntegrityError, transaction
from django.utils import timezone

from .models import (
    NotificationType,
    Task,
    TaskPriority,
    Ticket,
    TicketAttachment,
    TicketLog,
    TicketPriority,
    TicketStatus,
    display_name,
)
from .notifications import notify
from .tasks import complete_task

logger = logging.getLogger(__name__)

SLA_HOURS = {
    TicketPriority.CRITICAL: 2,
    TicketPriority.HIGH: 8,
    TicketPriority.MEDIUM: 24,
    TicketPriority.LOW: 48,
}
DEFAULT_SLA_HOURS = 24

TASK_PRIORITY_BY_TICKET = {
    TicketPriority.CRITICAL: TaskPriority.HIGH,
    TicketPriority.LOW: TaskPriority.LOW,
}

# Statuses that already count as a first answer to the client.
RESPONDED_STATUSES = {
    TicketStatus.IN_PROGRESS,
    TicketStatus.WAITING_CLIENT,
    TicketStatus.ESCALATED,
}
FINAL_STATUSES = {TicketStatus.RESOLVED, TicketStatus.CLOSED}

BULK_FIELDS = ("status", "priority", "responsible", "category")
NUMBER_ATTEMPTS = 5


def compute_sla_deadline(priority: str, now: datetime | None = None) -> datetime:
    now = now or timezone.now()
    return now + timedelta(hours=SLA_HOURS.get(priority, DEFAULT_SLA_HOURS))


def is_sla_breached(ticket: Ticket, now: datetime | None = None) -> bool:
    now = now or timezone.now()
    return ticket.is_open and ticket.sla_deadline is not None and now > ticket.sla_deadline


def log_action(
    ticket: Ticket,
    user,
    action: str,
    description: str = "",
    field_changed: str = "",
    old_value="",
    new_value="",
) -> TicketLog:
    return TicketLog.objects.create(
        ticket=ticket,
        user=user,
        action=action,
        description=description,
        field_changed=field_changed,
        old_value="" if old_value is None else str(old_value),
        new_value="" if new_value is None else str(new_value),
    )


def _insert_numbered(ticket: Ticket) -> None:
    # Concurrent requests may read the same next number; the unique index decides.
    for attempt in range(1, NUMBER_ATTEMPTS + 1):
        ticket.number = Ticket.next_number()
        try:
            with transaction.atomic():
                ticket.save()
            return
        except IntegrityError:
            if attempt == NUMBER_ATTEMPTS:
                raise
            logger.warning("Numero de ticket %s ja usado, nova tentativa", ticket.number)


@transaction.atomic
def create_ticket(data: dict, user) -> Ticket:
    """Open a ticket together with the task that tracks its resolution."""
    now = timezone.now()
    priority = data.get("priority") or TicketPriority.MEDIUM
    ticket = Ticket(created_by=user, sla_deadline=compute_sla_deadline(priority, now), **data)
    _insert_numbered(ticket)

    task = Task.objects.create(
        title=f"Resolver Ticket #{ticket.number} - {ticket.client_name}",
        description=ticket.description,
        priority=TASK_PRIORITY_BY_TICKET.get(priority, TaskPriority.MEDIUM),
        category="Suporte",
        assignee=ticket.responsible,
        created_by=user,
        due_date=timezone.localdate(ticket.sla_deadline),
        due_time=timezone.localtime(ticket.sla_deadline).time().replace(microsecond=0),
    )
    ticket.linked_task = task
    ticket.save(update_fields=["linked_task", "updated_at"])

    log_action(ticket, user, "criado", f"Ticket #{ticket.number} criado")
    if ticket.responsible and ticket.responsible != user:
        notify(
            ticket.responsible,
            "Novo ticket atribuido",
            f"Ticket #{ticket.number} de {ticket.client_name} foi atribuido a voce.",
            NotificationType.INFO,
            sender=user,
            link=f"/tickets/{ticket.pk}",
        )
    logger.info("Ticket #%s criado (prioridade=%s)", ticket.number, priority)
    return ticket


@transaction.atomic
def change_status(ticket: Ticket, status: str, user) -> Ticket:
    if status not in TicketStatus.values:
        raise ValueError(f"Status de ticket invalido: {status}")
    previous = ticket.status
    if previous == status:
        return ticket
    update_fields = ["status", "updated_at"]
    ticket.status = status
    if (
        status != TicketStatus.OPEN
        and previous not in RESPONDED_STATUSES
        and ticket.first_response_at is None
    ):
        ticket.first_response_at = timezone.now()
        update_fields.append("first_response_at")
    ticket.save(update_fields=update_fields)
    log_action(
        ticket,
        user,
        "status_alterado",
        f"Status alterado de {previous} para {status}",
        "status",
        previous,
        status,
    )
    if status in FINAL_STATUSES and ticket.linked_task:
        complete_task(ticket.linked_task, user)
    return ticket


@transaction.atomic
def transfer(ticket: Ticket, new_responsible, reason: str, user) -> Ticket:
    previous = ticket.responsible
    ticket.responsible = new_responsible
    ticket.save(update_fields=["responsible", "updated_at"])
    if ticket.linked_task:
        ticket.linked_task.assignee = new_responsible
        ticket.linked_task.save(update_fields=["assignee", "updated_at"])
    log_action(
        ticket,
        user,
        "responsavel_transferido",
        reason or "",
        "responsible",
        display_name(previous),
        display_name(new_responsible),
    )
    notify(
        new_responsible,
        "Ticket transferido para voce",
        f"Ticket #{ticket.number} de {ticket.client_name}. Motivo: {reason or 'nao informado'}",
        NotificationType.WARNING,
        sender=user,
        link=f"/tickets/{ticket.pk}",
    )
    return ticket


@transaction.atomic
def close(ticket: Ticket, solution: str, user) -> Ticket:
    now = timezone.now()
    previous = ticket.status
    ticket.status = TicketStatus.CLOSED
    ticket.solution_description = solution
    ticket.closed_at = now
    ticket.resolution_minutes = max(0, int((now - ticket.created_at).total_seconds() // 60))
    if ticket.first_response_at is None:
        ticket.first_response_at = now
    ticket.save()
    if ticket.linked_task:
        complete_task(ticket.linked_task, user)
    log_action(
        ticket,
        user,
        "encerrado",
        solution,
        "status",
        previous,
        TicketStatus.CLOSED,
    )
    return ticket


def add_comment(ticket: Ticket, text: str, user) -> TicketLog:
    return log_action(ticket, user, "comentario", text)


@transaction.atomic
def add_attachment(ticket: Ticket, uploaded_file, user) -> TicketAttachment:
    attachment = TicketAttachment.objects.create(
        ticket=ticket,
        file=uploaded_file,
        file_name=getattr(uploaded_file, "name", ""),
        uploaded_by=user,
    )
    log_action(ticket, user, "anexo_adicionado", attachment.file_name)
    return attachment


@transaction.atomic
def bulk_update(tickets, changes: dict, user) -> int:
    changes = {key: value for key, value in changes.items() if key in BULK_FIELDS}
    if not changes:
        return 0
    count = 0
    for ticket in tickets:
        described = []
        for field, value in changes.items():
            old_value = getattr(ticket, field)
            if old_value == value:
                continue
            setattr(ticket, field, value)
            if field == "responsible":
                described.append(f"responsavel: {display_name(old_value)} -> {display_name(value)}")
                if ticket.linked_task:
                    ticket.linked_task.assignee = value
                    ticket.linked_task.save(update_fields=["assignee", "updated_at"])
            else:
                described.append(f"{field}: {old_value} -> {value}")
            if field == "priority":
                ticket.sla_deadline = compute_sla_deadline(value, ticket.created_at)
        if not described:
            continue
        ticket.save()
        log_action(ticket, user, "edicao_em_massa", "; ".join(described))
        count += 1
    return count


@transaction.atomic
def delete_ticket(ticket: Ticket) -> None:
    number = ticket.number
    if ticket.linked_task_id:
        # Subtasks, comments and history cascade with the task.
        Task.objects.filter(pk=ticket.linked_task_id).delete()
    ticket.delete()
    logger.info("Ticket #%s removido", number)


def home_tickets(user):
    return (
        Ticket.objects.filter(responsible=user)
        .exclude(status__in=FINAL_STATUSES)
        .order_by("sla_deadline")
    )
