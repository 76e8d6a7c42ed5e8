from __future__ import annotations

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError as DjangoValidationError
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.response import Response

from . import (
    agenda,
    commissions,
    mentoring,
    notifications,
    okrs,
    pdis,
    reports,
    sales,
    sales_sync,
    sdr,
    tasks,
    tickets,
)
from .importers import ImportFormatError, import_installment_file
from .integrations import IntegrationConfigError, IntegrationError
from .models import (
    PDI,
    Commission,
    Event,
    Funnel,
    HotmartSyncLog,
    Installment,
    MentoringProcess,
    MentoringStage,
    MentoringTask,
    Notification,
    OKRCycle,
    OKRKeyResult,
    OKRObjective,
    PDIAccess,
    PDILesson,
    Product,
    Report,
    Sale,
    SalesImportLog,
    SDRAssignment,
    SDRCommission,
    SocialPost,
    Sponsor,
    Subtask,
    Task,
    TaskComment,
    Ticket,
)
from .roles import (
    can_manage_sales,
    can_view_sales,
    filter_commissions_for_user,
    filter_installments_for_user,
    filter_pdis_for_user,
    filter_sales_for_user,
    filter_sdr_for_user,
    filter_tickets_for_user,
    is_admin,
)
from .serializers import (
    AsaasSyncSerializer,
    AssignSellerSerializer,
    CommissionSerializer,
    EventSerializer,
    FunnelSerializer,
    GenerateReportSerializer,
    HotmartSyncLogSerializer,
    HotmartSyncSerializer,
    InstallmentImportSerializer,
    InstallmentSerializer,
    InstallmentStatusSerializer,
    KeyResultValueSerializer,
    MentoringMoveSerializer,
    MentoringProcessSerializer,
    MentoringStageSerializer,
    MentoringTaskSerializer,
    NotificationSerializer,
    OKRCycleSerializer,
    OKRKeyResultSerializer,
    OKRObjectiveSerializer,
    PDIAccessSerializer,
    PDILessonSerializer,
    PDISerializer,
    ProductSerializer,
    ReplicateSerializer,
    ReportSerializer,
    SaleSerializer,
    SalesImportLogSerializer,
    SDRAssignmentSerializer,
    SDRCommissionSerializer,
    SDRRejectSerializer,
    SocialPostSerializer,
    SponsorMoveSerializer,
    SponsorSerializer,
    SubtaskSerializer,
    TaskCommentSerializer,
    TaskHistorySerializer,
    TaskSerializer,
    TicketAttachmentSerializer,
    TicketBulkUpdateSerializer,
    TicketCloseSerializer,
    TicketCommentSerializer,
    TicketLogSerializer,
    TicketSerializer,
    TicketStatusSerializer,
    TicketTransferSerializer,
    UserSerializer,
)


User = get_user_model()

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _parse_bool(value):
    if value is None:
        return None
    normalized = value.strip().lower()
    if normalized in {"true", "1", "yes", "y", "sim"}:
        return True
    if normalized in {"false", "0", "no", "n", "nao"}:
        return False
    return None


def _require_sales_manager(user, action: str) -> None:
    if not can_manage_sales(user):
        raise PermissionDenied(f"Perfil sem permissao para {action}.")


def _require_admin(user, action: str) -> None:
    if not is_admin(user):
        raise PermissionDenied(f"Perfil sem permissao para {action}.")


def _integration_error_response(exc: IntegrationError) -> Response:
    if isinstance(exc, IntegrationConfigError):
        return Response({"ok": False, "error": exc.public_message}, status=status.HTTP_400_BAD_REQUEST)
    status_code = status.HTTP_504_GATEWAY_TIMEOUT if exc.is_timeout else status.HTTP_502_BAD_GATEWAY
    return Response({"ok": False, "error": exc.public_message}, status=status_code)


def _xlsx_response(content: bytes, filename: str) -> HttpResponse:
    response = HttpResponse(content, content_type=XLSX_CONTENT_TYPE)
    response["Content-Disposition"] = f'attachment; filename="{filename}"'
    return response


def _django_errors(exc: DjangoValidationError):
    return exc.message_dict if hasattr(exc, "error_dict") else exc.messages


class UserViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = UserSerializer
    search_fields = ("username", "first_name", "last_name", "email", "profile__full_name")
    ordering = ("username",)

    def get_queryset(self):
        queryset = User.objects.filter(is_active=True).select_related("profile")
        role = self.request.query_params.get("role")
        if role:
            queryset = queryset.filter(profile__role=role)
        return queryset.order_by("username")

    @action(detail=False, methods=["get"], url_path="eu")
    def me(self, request):
        return Response(self.get_serializer(request.user).data)


class NotificationViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = NotificationSerializer
    ordering = ("-created_at",)

    def get_queryset(self):
        queryset = Notification.objects.filter(recipient=self.request.user)
        unread = _parse_bool(self.request.query_params.get("unread"))
        if unread is True:
            queryset = queryset.filter(read_at__isnull=True)
        return queryset

    @action(detail=True, methods=["post"], url_path="marcar-lida")
    def mark_read(self, request, pk=None):
        notification = notifications.mark_read(self.get_object())
        return Response(self.get_serializer(notification).data)

    @action(detail=False, methods=["post"], url_path="marcar-todas")
    def mark_all_read(self, request):
        updated = notifications.mark_all_read(request.user)
        return Response({"ok": True, "updated": updated})

    @action(detail=False, methods=["get"], url_path="nao-lidas")
    def unread(self, request):
        return Response({"count": notifications.unread_count(request.user)})


# Vendas e comissoes


class ProductViewSet(viewsets.ModelViewSet):
    serializer_class = ProductSerializer
    search_fields = ("name", "description", "hotmart_id")
    ordering_fields = ("name", "price", "default_commission_percent", "created_at")
    ordering = ("name",)

    def get_queryset(self):
        queryset = Product.objects.all()
        is_active = _parse_bool(self.request.query_params.get("is_active"))
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active)
        return queryset.order_by("name")

    def perform_create(self, serializer):
        _require_sales_manager(self.request.user, "cadastrar produtos")
        serializer.save()

    def perform_update(self, serializer):
        _require_sales_manager(self.request.user, "alterar produtos")
        serializer.save()

    def perform_destroy(self, instance):
        _require_sales_manager(self.request.user, "excluir produtos")
        instance.delete()


class SaleViewSet(viewsets.ModelViewSet):
    serializer_class = SaleSerializer
    search_fields = ("external_id", "client_name", "client_email", "product_name")
    ordering_fields = ("sale_date", "total_value", "client_name", "created_at")
    ordering = ("-sale_date",)

    def get_queryset(self):
        queryset = filter_sales_for_user(
            Sale.objects.select_related("seller", "product").prefetch_related("installments__commission"),
            self.request.user,
        )
        params = self.request.query_params
        platform = params.get("platform")
        sale_status = params.get("status")
        seller = params.get("seller")
        start = params.get("start_date")
        end = params.get("end_date")
        without_seller = _parse_bool(params.get("without_seller"))
        if platform:
            queryset = queryset.filter(platform=platform)
        if sale_status:
            queryset = queryset.filter(status=sale_status)
        if seller:
            queryset = queryset.filter(seller_id=seller)
        if without_seller:
            queryset = queryset.filter(seller__isnull=True)
        if start:
            queryset = queryset.filter(sale_date__gte=start)
        if end:
            queryset = queryset.filter(sale_date__lte=end)
        return queryset

    def create(self, request, *args, **kwargs):
        _require_sales_manager(request.user, "cadastrar vendas")
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        sale = sales.create_sale(serializer.validated_data, user=request.user)
        return Response(self.get_serializer(sale).data, status=status.HTTP_201_CREATED)

    def perform_update(self, serializer):
        _require_sales_manager(self.request.user, "alterar vendas")
        serializer.save()

    def perform_destroy(self, instance):
        _require_sales_manager(self.request.user, "excluir vendas")
        instance.delete()

    @action(detail=True, methods=["post"], url_path="cancelar")
    def cancel(self, request, pk=None):
        _require_sales_manager(request.user, "cancelar vendas")
        sale = sales.cancel_sale(self.get_object())
        return Response(self.get_serializer(sale).data)

    @action(detail=True, methods=["post"], url_path="atribuir-vendedor")
    def assign_seller(self, request, pk=None):
        _require_sales_manager(request.user, "atribuir vendedores")
        payload = AssignSellerSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        sale = sales.assign_seller(
            self.get_object(),
            payload.validated_data["seller"],
            payload.validated_data.get("commission_percent"),
        )
        sale = self.get_queryset().get(pk=sale.pk)
        return Response(self.get_serializer(sale).data)

    @action(detail=False, methods=["post"], url_path="importar")
    def import_file(self, request):
        _require_sales_manager(request.user, "importar parcelas")
        payload = InstallmentImportSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            result = import_installment_file(
                payload.validated_data["file"],
                payload.validated_data["platform"],
                user=request.user,
            )
        except ImportFormatError as exc:
            return Response({"ok": False, "error": str(exc)}, status=status.HTTP_400_BAD_REQUEST)
        return Response({"ok": True, **result})

    @action(detail=False, methods=["post"], url_path="sincronizar-asaas")
    def sync_asaas(self, request):
        _require_sales_manager(request.user, "sincronizar o Asaas")
        payload = AsaasSyncSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data
        try:
            if data["installments"]:
                result = sales_sync.sync_asaas_installments()
            else:
                result = sales_sync.sync_asaas_payments(
                    data["seller"],
                    data.get("start_date"),
                    data.get("end_date"),
                    user=request.user,
                )
        except IntegrationError as exc:
            return _integration_error_response(exc)
        return Response({"ok": True, **result})

    @action(detail=False, methods=["post"], url_path="sincronizar-hotmart")
    def sync_hotmart(self, request):
        _require_sales_manager(request.user, "sincronizar a Hotmart")
        payload = HotmartSyncSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data
        try:
            if data["products"]:
                result = sales_sync.sync_hotmart_products()
            elif data["installments"]:
                result = sales_sync.sync_hotmart_installments()
            else:
                result = sales_sync.sync_hotmart_sales(
                    data["start"],
                    data["end"],
                    user=request.user,
                    transaction_status=data.get("transaction_status") or None,
                )
        except IntegrationError as exc:
            return _integration_error_response(exc)
        return Response({"ok": True, **result})

    @action(detail=False, methods=["get"], url_path="desempenho")
    def performance(self, request):
        _require_sales_manager(request.user, "ver o desempenho de vendas")
        rows = commissions.seller_performance(self.filter_queryset(self.get_queryset()))
        return Response(rows)

    @action(detail=False, methods=["get"], url_path="desempenho-exportar")
    def performance_export(self, request):
        _require_sales_manager(request.user, "exportar o desempenho de vendas")
        rows = commissions.seller_performance(self.filter_queryset(self.get_queryset()))
        filename = f"desempenho-vendas-{timezone.localdate():%Y%m%d}.xlsx"
        return _xlsx_response(commissions.export_seller_performance_xlsx(rows), filename)


class InstallmentViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = InstallmentSerializer
    ordering_fields = ("due_date", "value", "installment_number")
    ordering = ("due_date",)

    def get_queryset(self):
        queryset = filter_installments_for_user(
            Installment.objects.select_related("sale", "commission"),
            self.request.user,
        )
        params = self.request.query_params
        installment_status = params.get("status")
        sale = params.get("sale")
        due_from = params.get("due_from")
        due_to = params.get("due_to")
        if installment_status:
            queryset = queryset.filter(status=installment_status)
        if sale:
            queryset = queryset.filter(sale_id=sale)
        if due_from:
            queryset = queryset.filter(due_date__gte=due_from)
        if due_to:
            queryset = queryset.filter(due_date__lte=due_to)
        return queryset

    @action(detail=True, methods=["post"], url_path="alterar-status")
    def change_status(self, request, pk=None):
        _require_sales_manager(request.user, "alterar parcelas")
        payload = InstallmentStatusSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        installment = commissions.set_installment_status(
            self.get_object(),
            payload.validated_data["status"],
            payload.validated_data.get("payment_date"),
        )
        installment.refresh_from_db()
        return Response(self.get_serializer(installment).data)


class CommissionViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = CommissionSerializer
    ordering_fields = ("competence_month", "commission_value", "status")
    ordering = ("-competence_month",)

    def get_queryset(self):
        if not can_view_sales(self.request.user):
            raise PermissionDenied("Perfil sem permissao para ver comissoes.")
        queryset = filter_commissions_for_user(
            Commission.objects.select_related("seller", "installment__sale"),
            self.request.user,
        )
        params = self.request.query_params
        commission_status = params.get("status")
        seller = params.get("seller")
        month = params.get("competence_month")
        if commission_status:
            queryset = queryset.filter(status=commission_status)
        if seller:
            queryset = queryset.filter(seller_id=seller)
        if month:
            queryset = queryset.filter(competence_month=month)
        return queryset

    @action(detail=False, methods=["get"], url_path="resumo")
    def summary(self, request):
        return Response(commissions.commission_summary(self.get_queryset()))

    @action(detail=False, methods=["get"], url_path="exportar")
    def export(self, request):
        content = commissions.export_commissions_xlsx(self.filter_queryset(self.get_queryset()))
        return _xlsx_response(content, f"comissoes-{timezone.localdate():%Y%m%d}.xlsx")


class SDRAssignmentViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = SDRAssignmentSerializer
    search_fields = ("sale__external_id", "sale__client_name", "sdr__username", "sdr__profile__full_name")
    ordering_fields = ("created_at", "status")
    ordering = ("-created_at",)

    def get_queryset(self):
        queryset = filter_sdr_for_user(
            SDRAssignment.objects.select_related("sale", "sdr", "approved_by"),
            self.request.user,
        )
        assignment_status = self.request.query_params.get("status")
        if assignment_status:
            queryset = queryset.filter(status=assignment_status)
        return queryset

    def create(self, request, *args, **kwargs):
        _require_sales_manager(request.user, "indicar SDR")
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        try:
            assignment = sdr.create_assignment(
                data["sale"],
                data["sdr"],
                data["proof_link"],
                data.get("commission_percent"),
                user=request.user,
            )
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        return Response(self.get_serializer(assignment).data, status=status.HTTP_201_CREATED)

    def perform_destroy(self, instance):
        _require_sales_manager(self.request.user, "remover SDR")
        try:
            sdr.delete_assignment(instance)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

    @action(detail=True, methods=["post"], url_path="aprovar")
    def approve(self, request, pk=None):
        _require_sales_manager(request.user, "aprovar SDR")
        try:
            assignment = sdr.approve_assignment(self.get_object(), request.user)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        return Response(self.get_serializer(assignment).data)

    @action(detail=True, methods=["post"], url_path="rejeitar")
    def reject(self, request, pk=None):
        _require_sales_manager(request.user, "rejeitar SDR")
        payload = SDRRejectSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            assignment = sdr.reject_assignment(self.get_object(), payload.validated_data["reason"])
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        return Response(self.get_serializer(assignment).data)

    @action(detail=False, methods=["get"], url_path="vendas-disponiveis")
    def available_sales(self, request):
        _require_sales_manager(request.user, "indicar SDR")
        queryset = sdr.sales_without_sdr(
            Sale.objects.select_related("seller", "product").prefetch_related("installments__commission")
        ).order_by("-sale_date")
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(SaleSerializer(page, many=True).data)
        return Response(SaleSerializer(queryset, many=True).data)


class SDRCommissionViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = SDRCommissionSerializer
    ordering_fields = ("competence_month", "commission_value", "status")
    ordering = ("-competence_month",)

    def get_queryset(self):
        queryset = filter_sdr_for_user(
            SDRCommission.objects.select_related("sdr", "installment", "assignment__sale"),
            self.request.user,
        )
        params = self.request.query_params
        commission_status = params.get("status")
        sdr_id = params.get("sdr")
        month = params.get("competence_month")
        if commission_status:
            queryset = queryset.filter(status=commission_status)
        if sdr_id:
            queryset = queryset.filter(sdr_id=sdr_id)
        if month:
            queryset = queryset.filter(competence_month=month)
        return queryset

    @action(detail=False, methods=["get"], url_path="resumo")
    def summary(self, request):
        return Response(sdr.sdr_commission_summary(self.get_queryset()))


class SalesImportLogViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = SalesImportLogSerializer
    ordering = ("-created_at",)

    def get_queryset(self):
        _require_sales_manager(self.request.user, "ver importacoes")
        queryset = SalesImportLog.objects.select_related("imported_by")
        platform = self.request.query_params.get("platform")
        if platform:
            queryset = queryset.filter(platform=platform)
        return queryset


class HotmartSyncLogViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = HotmartSyncLogSerializer
    ordering = ("-started_at",)

    def get_queryset(self):
        _require_sales_manager(self.request.user, "ver sincronizacoes")
        return HotmartSyncLog.objects.all()


# Tickets


class TicketViewSet(viewsets.ModelViewSet):
    serializer_class = TicketSerializer
    search_fields = ("client_name", "client_email", "client_whatsapp", "description")
    ordering_fields = ("number", "sla_deadline", "priority", "status", "created_at")
    ordering = ("-number",)

    def get_queryset(self):
        queryset = filter_tickets_for_user(
            Ticket.objects.select_related("responsible", "created_by", "linked_task"),
            self.request.user,
        )
        params = self.request.query_params
        ticket_status = params.get("status")
        priority = params.get("priority")
        category = params.get("category")
        responsible = params.get("responsible")
        open_only = _parse_bool(params.get("open"))
        if ticket_status:
            queryset = queryset.filter(status=ticket_status)
        if priority:
            queryset = queryset.filter(priority=priority)
        if category:
            queryset = queryset.filter(category=category)
        if responsible:
            queryset = queryset.filter(responsible_id=responsible)
        if open_only:
            queryset = queryset.exclude(status__in=tickets.FINAL_STATUSES)
        return queryset

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ticket = tickets.create_ticket(serializer.validated_data, request.user)
        return Response(self.get_serializer(ticket).data, status=status.HTTP_201_CREATED)

    def perform_update(self, serializer):
        ticket = serializer.instance
        old_priority = ticket.priority
        ticket = serializer.save()
        if ticket.priority != old_priority:
            ticket.sla_deadline = tickets.compute_sla_deadline(ticket.priority, ticket.created_at)
            ticket.save(update_fields=["sla_deadline", "updated_at"])
            tickets.log_action(
                ticket,
                self.request.user,
                "prioridade_alterada",
                "",
                "priority",
                old_priority,
                ticket.priority,
            )

    def perform_destroy(self, instance):
        _require_admin(self.request.user, "excluir tickets")
        tickets.delete_ticket(instance)

    @action(detail=True, methods=["get"], url_path="historico")
    def history(self, request, pk=None):
        ticket = self.get_object()
        return Response(TicketLogSerializer(ticket.logs.select_related("user"), many=True).data)

    @action(detail=True, methods=["post"], url_path="alterar-status")
    def change_status(self, request, pk=None):
        payload = TicketStatusSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        ticket = tickets.change_status(self.get_object(), payload.validated_data["status"], request.user)
        return Response(self.get_serializer(ticket).data)

    @action(detail=True, methods=["post"], url_path="transferir")
    def transfer(self, request, pk=None):
        payload = TicketTransferSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        ticket = tickets.transfer(
            self.get_object(),
            payload.validated_data["responsible"],
            payload.validated_data["reason"],
            request.user,
        )
        return Response(self.get_serializer(ticket).data)

    @action(detail=True, methods=["post"], url_path="encerrar")
    def close(self, request, pk=None):
        payload = TicketCloseSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        ticket = tickets.close(self.get_object(), payload.validated_data["solution"], request.user)
        return Response(self.get_serializer(ticket).data)

    @action(detail=True, methods=["post"], url_path="comentar")
    def comment(self, request, pk=None):
        payload = TicketCommentSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        log = tickets.add_comment(self.get_object(), payload.validated_data["text"], request.user)
        return Response(TicketLogSerializer(log).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"], url_path="anexar")
    def attach(self, request, pk=None):
        uploaded = request.FILES.get("file")
        if not uploaded:
            raise ValidationError({"file": "Arquivo obrigatorio."})
        attachment = tickets.add_attachment(self.get_object(), uploaded, request.user)
        return Response(TicketAttachmentSerializer(attachment).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"], url_path="edicao-em-massa")
    def bulk_edit(self, request):
        _require_admin(request.user, "editar tickets em massa")
        payload = TicketBulkUpdateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = dict(payload.validated_data)
        ids = data.pop("ids")
        selected = self.get_queryset().filter(pk__in=ids)
        updated = tickets.bulk_update(selected, data, request.user)
        return Response({"ok": True, "updated": updated})

    @action(detail=False, methods=["get"], url_path="meus")
    def mine(self, request):
        queryset = tickets.home_tickets(request.user)
        return Response(self.get_serializer(queryset, many=True).data)


# Tarefas


class TaskViewSet(viewsets.ModelViewSet):
    serializer_class = TaskSerializer
    search_fields = ("title", "description", "category")
    ordering_fields = ("due_date", "priority", "position", "created_at")
    ordering = ("completed", "due_date", "position")

    def get_queryset(self):
        queryset = Task.objects.select_related("assignee").prefetch_related("subtasks")
        params = self.request.query_params
        assignee = params.get("assignee")
        completed = _parse_bool(params.get("completed"))
        priority = params.get("priority")
        due_from = params.get("due_from")
        due_to = params.get("due_to")
        mine = _parse_bool(params.get("mine"))
        if assignee:
            queryset = queryset.filter(assignee_id=assignee)
        if mine:
            queryset = queryset.filter(assignee=self.request.user)
        if completed is not None:
            queryset = queryset.filter(completed=completed)
        if priority:
            queryset = queryset.filter(priority=priority)
        if due_from:
            queryset = queryset.filter(due_date__gte=due_from)
        if due_to:
            queryset = queryset.filter(due_date__lte=due_to)
        return queryset

    def perform_create(self, serializer):
        task = serializer.save(created_by=self.request.user)
        tasks.record_history(task, self.request.user, "created")

    def perform_update(self, serializer):
        before = {field: getattr(serializer.instance, field) for field in serializer.validated_data}
        task = serializer.save()
        for field, old_value in before.items():
            new_value = getattr(task, field)
            if old_value != new_value:
                tasks.record_history(task, self.request.user, "updated", field, old_value, new_value)

    @action(detail=True, methods=["post"], url_path="concluir")
    def complete(self, request, pk=None):
        task = tasks.complete_task(self.get_object(), request.user)
        return Response(self.get_serializer(task).data)

    @action(detail=True, methods=["post"], url_path="reabrir")
    def reopen(self, request, pk=None):
        task = tasks.reopen_task(self.get_object(), request.user)
        return Response(self.get_serializer(task).data)

    @action(detail=True, methods=["get"], url_path="historico")
    def history(self, request, pk=None):
        task = self.get_object()
        return Response(TaskHistorySerializer(task.history.all(), many=True).data)


class SubtaskViewSet(viewsets.ModelViewSet):
    serializer_class = SubtaskSerializer
    ordering = ("position",)

    def get_queryset(self):
        queryset = Subtask.objects.all()
        task = self.request.query_params.get("task")
        if task:
            queryset = queryset.filter(task_id=task)
        return queryset


class TaskCommentViewSet(viewsets.ModelViewSet):
    serializer_class = TaskCommentSerializer
    ordering = ("created_at",)

    def get_queryset(self):
        queryset = TaskComment.objects.select_related("author")
        task = self.request.query_params.get("task")
        if task:
            queryset = queryset.filter(task_id=task)
        return queryset

    def perform_create(self, serializer):
        serializer.save(author=self.request.user)

    def perform_update(self, serializer):
        if serializer.instance.author_id != self.request.user.pk:
            raise PermissionDenied("Apenas o autor pode editar o comentario.")
        serializer.save()

    def perform_destroy(self, instance):
        if instance.author_id != self.request.user.pk and not is_admin(self.request.user):
            raise PermissionDenied("Apenas o autor pode excluir o comentario.")
        instance.delete()


# OKRs


class OKRCycleViewSet(viewsets.ModelViewSet):
    serializer_class = OKRCycleSerializer
    search_fields = ("name",)
    ordering = ("-start_date",)

    def get_queryset(self):
        queryset = OKRCycle.objects.all()
        is_active = _parse_bool(self.request.query_params.get("is_active"))
        if is_active is not None:
            queryset = queryset.filter(is_active=is_active)
        return queryset


class OKRObjectiveViewSet(viewsets.ModelViewSet):
    serializer_class = OKRObjectiveSerializer
    ordering = ("order_index",)

    def get_queryset(self):
        queryset = OKRObjective.objects.prefetch_related("key_results")
        cycle = self.request.query_params.get("cycle")
        if cycle:
            queryset = queryset.filter(cycle_id=cycle)
        return queryset


class OKRKeyResultViewSet(viewsets.ModelViewSet):
    serializer_class = OKRKeyResultSerializer
    ordering = ("order_index",)

    def get_queryset(self):
        queryset = OKRKeyResult.objects.all()
        objective = self.request.query_params.get("objective")
        if objective:
            queryset = queryset.filter(objective_id=objective)
        return queryset

    @action(detail=True, methods=["post"], url_path="atualizar-valor")
    def update_value(self, request, pk=None):
        payload = KeyResultValueSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        key_result = okrs.update_key_result_value(self.get_object(), payload.validated_data["current_value"])
        return Response(self.get_serializer(key_result).data)


# Mentoria


class MentoringProcessViewSet(viewsets.ModelViewSet):
    serializer_class = MentoringProcessSerializer
    search_fields = ("name", "description")
    ordering = ("name",)

    def get_queryset(self):
        return MentoringProcess.objects.prefetch_related("stages")

    def perform_create(self, serializer):
        serializer.save(created_by=self.request.user)

    @action(detail=True, methods=["post"], url_path="replicar")
    def replicate(self, request, pk=None):
        payload = ReplicateSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        try:
            created = mentoring.replicate_for_mentee(self.get_object(), payload.validated_data["mentee_name"])
        except DjangoValidationError as exc:
            raise ValidationError(_django_errors(exc)) from exc
        return Response(
            MentoringTaskSerializer(created, many=True).data,
            status=status.HTTP_201_CREATED,
        )


class MentoringStageViewSet(viewsets.ModelViewSet):
    serializer_class = MentoringStageSerializer
    ordering = ("position",)

    def get_queryset(self):
        queryset = MentoringStage.objects.all()
        process = self.request.query_params.get("process")
        if process:
            queryset = queryset.filter(process_id=process)
        return queryset


class MentoringTaskViewSet(viewsets.ModelViewSet):
    serializer_class = MentoringTaskSerializer
    search_fields = ("title", "mentee_name")
    ordering = ("position",)

    def get_queryset(self):
        queryset = MentoringTask.objects.select_related("stage")
        params = self.request.query_params
        process = params.get("process")
        stage = params.get("stage")
        mentee = params.get("mentee")
        templates = _parse_bool(params.get("templates"))
        if process:
            queryset = queryset.filter(stage__process_id=process)
        if stage:
            queryset = queryset.filter(stage_id=stage)
        if mentee:
            queryset = queryset.filter(mentee_name__iexact=mentee)
        if templates is True:
            queryset = queryset.filter(parent_task__isnull=True)
        return queryset

    @action(detail=True, methods=["post"], url_path="mover")
    def move(self, request, pk=None):
        payload = MentoringMoveSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        task = mentoring.move_task(self.get_object(), payload.validated_data["status"])
        return Response(self.get_serializer(task).data)


# PDIs


class PDIViewSet(viewsets.ModelViewSet):
    serializer_class = PDISerializer
    search_fields = ("title", "description")
    ordering_fields = ("deadline", "created_at")
    ordering = ("deadline",)

    def get_queryset(self):
        queryset = filter_pdis_for_user(
            PDI.objects.select_related("collaborator").prefetch_related("lessons", "accesses"),
            self.request.user,
        )
        collaborator = self.request.query_params.get("collaborator")
        if collaborator:
            queryset = queryset.filter(collaborator_id=collaborator)
        return queryset

    def perform_create(self, serializer):
        _require_admin(self.request.user, "criar PDIs")
        serializer.save(created_by=self.request.user)

    def perform_update(self, serializer):
        _require_admin(self.request.user, "alterar PDIs")
        serializer.save()

    def perform_destroy(self, instance):
        _require_admin(self.request.user, "excluir PDIs")
        instance.delete()

    @action(detail=False, methods=["post"], url_path="verificar-prazos")
    def check_deadlines(self, request):
        _require_admin(request.user, "verificar prazos de PDI")
        return Response({"ok": True, **pdis.check_pdi_deadlines()})


class PDILessonViewSet(viewsets.ModelViewSet):
    serializer_class = PDILessonSerializer
    ordering = ("order",)

    def get_queryset(self):
        queryset = filter_pdis_for_user(
            PDILesson.objects.select_related("pdi"),
            self.request.user,
            field_name="pdi__collaborator",
        )
        pdi = self.request.query_params.get("pdi")
        if pdi:
            queryset = queryset.filter(pdi_id=pdi)
        return queryset

    def perform_create(self, serializer):
        _require_admin(self.request.user, "adicionar aulas")
        serializer.save()

    def perform_destroy(self, instance):
        _require_admin(self.request.user, "excluir aulas")
        instance.delete()

    @action(detail=True, methods=["post"], url_path="concluir")
    def complete(self, request, pk=None):
        lesson = pdis.complete_lesson(self.get_object())
        return Response(self.get_serializer(lesson).data)

    @action(detail=True, methods=["post"], url_path="reabrir")
    def reopen(self, request, pk=None):
        lesson = pdis.reopen_lesson(self.get_object())
        return Response(self.get_serializer(lesson).data)


class PDIAccessViewSet(viewsets.ModelViewSet):
    serializer_class = PDIAccessSerializer
    ordering = ("name",)

    def get_queryset(self):
        queryset = filter_pdis_for_user(
            PDIAccess.objects.select_related("pdi"),
            self.request.user,
            field_name="pdi__collaborator",
        )
        pdi = self.request.query_params.get("pdi")
        if pdi:
            queryset = queryset.filter(pdi_id=pdi)
        return queryset

    def perform_create(self, serializer):
        _require_admin(self.request.user, "adicionar acessos")
        serializer.save()


# Agenda, patrocinios, conteudo e funis


class EventViewSet(viewsets.ModelViewSet):
    serializer_class = EventSerializer
    search_fields = ("title", "description", "location")
    ordering_fields = ("event_date", "event_time", "title")
    ordering = ("event_date", "event_time")

    def get_queryset(self):
        queryset = Event.objects.prefetch_related("participants")
        params = self.request.query_params
        start = params.get("start_date")
        end = params.get("end_date")
        event_type = params.get("event_type")
        if start:
            queryset = queryset.filter(event_date__gte=start)
        if end:
            queryset = queryset.filter(event_date__lte=end)
        if event_type:
            queryset = queryset.filter(event_type=event_type)
        return queryset

    def perform_create(self, serializer):
        serializer.save(created_by=self.request.user)


class SponsorViewSet(viewsets.ModelViewSet):
    serializer_class = SponsorSerializer
    search_fields = ("name", "contact_name", "segment", "city")
    ordering_fields = ("name", "next_followup_date", "proposal_value")
    ordering = ("name",)

    def get_queryset(self):
        queryset = Sponsor.objects.prefetch_related("stage_history", "events")
        stage = self.request.query_params.get("stage")
        if stage:
            queryset = queryset.filter(stage=stage)
        return queryset

    @action(detail=True, methods=["post"], url_path="mover-etapa")
    def move_stage(self, request, pk=None):
        payload = SponsorMoveSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        sponsor = agenda.move_sponsor_stage(self.get_object(), payload.validated_data["stage"], request.user)
        sponsor = self.get_queryset().get(pk=sponsor.pk)
        return Response(self.get_serializer(sponsor).data)


class SocialPostViewSet(viewsets.ModelViewSet):
    serializer_class = SocialPostSerializer
    search_fields = ("theme", "profile", "caption")
    ordering_fields = ("scheduled_date", "status")
    ordering = ("scheduled_date",)

    def get_queryset(self):
        queryset = SocialPost.objects.select_related("assignee")
        params = self.request.query_params
        month = params.get("month")
        post_status = params.get("status")
        profile = params.get("profile")
        if month:
            try:
                year, month_number = (int(part) for part in month.split("-", 1))
            except ValueError as exc:
                raise ValidationError({"month": "Use o formato AAAA-MM."}) from exc
            queryset = queryset.filter(scheduled_date__year=year, scheduled_date__month=month_number)
        if post_status:
            queryset = queryset.filter(status=post_status)
        if profile:
            queryset = queryset.filter(profile__iexact=profile)
        return queryset


class FunnelViewSet(viewsets.ModelViewSet):
    serializer_class = FunnelSerializer
    search_fields = ("name", "status")
    ordering = ("-capture_start",)

    def get_queryset(self):
        return Funnel.objects.all()


# Relatorios


class ReportViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = ReportSerializer
    search_fields = ("title",)
    ordering_fields = ("created_at", "period_start")
    ordering = ("-created_at",)

    def get_queryset(self):
        queryset = Report.objects.select_related("generated_by")
        if not is_admin(self.request.user):
            queryset = queryset.filter(generated_by=self.request.user)
        report_type = self.request.query_params.get("report_type")
        if report_type:
            queryset = queryset.filter(report_type=report_type)
        return queryset

    @action(detail=False, methods=["post"], url_path="gerar")
    def generate(self, request):
        payload = GenerateReportSerializer(data=request.data)
        payload.is_valid(raise_exception=True)
        data = payload.validated_data
        try:
            report = reports.generate_report(
                data["title"],
                data["report_type"],
                data["period_start"],
                data["period_end"],
                data["scope"],
                data.get("filters"),
                user=request.user,
            )
        except DjangoValidationError as exc:
            raise ValidationError(_django_errors(exc)) from exc
        return Response({"id": report.pk, "status": report.status}, status=status.HTTP_201_CREATED)
