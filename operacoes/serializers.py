from django.contrib.auth import get_user_model
from rest_framework import serializers

from . import pdis
from .models import (
    PDI,
    Commission,
    Event,
    Funnel,
    HotmartSyncLog,
    Installment,
    InstallmentStatus,
    MentoringProcess,
    MentoringStage,
    MentoringTask,
    MentoringTaskStatus,
    Notification,
    OKRCycle,
    OKRKeyResult,
    OKRObjective,
    PDIAccess,
    PDILesson,
    Product,
    Report,
    ReportScope,
    ReportType,
    Sale,
    SalePlatform,
    SalesImportLog,
    SDRAssignment,
    SDRCommission,
    SocialPost,
    Sponsor,
    SponsorStage,
    SponsorStageHistory,
    Subtask,
    Task,
    TaskComment,
    TaskHistory,
    TaskRecurrence,
    Ticket,
    TicketAttachment,
    TicketCategory,
    TicketLog,
    TicketPriority,
    TicketStatus,
    capped_progress,
    display_name,
)
from .roles import resolve_user_role
from .tickets import is_sla_breached

User = get_user_model()

READ_ONLY = ("id", "created_at", "updated_at")


class UserSerializer(serializers.ModelSerializer):
    name = serializers.SerializerMethodField()
    role = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ("id", "username", "email", "name", "role")
        read_only_fields = fields

    def get_name(self, obj):
        return display_name(obj)

    def get_role(self, obj):
        return resolve_user_role(obj)


class NotificationSerializer(serializers.ModelSerializer):
    is_read = serializers.BooleanField(read_only=True)

    class Meta:
        model = Notification
        fields = "__all__"
        read_only_fields = READ_ONLY + ("recipient", "sender", "read_at")


# Vendas


class ProductSerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = "__all__"
        read_only_fields = READ_ONLY


class CommissionSerializer(serializers.ModelSerializer):
    seller_name = serializers.SerializerMethodField()
    status_display = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = Commission
        fields = "__all__"
        read_only_fields = READ_ONLY

    def get_seller_name(self, obj):
        return display_name(obj.seller)


class InstallmentSerializer(serializers.ModelSerializer):
    commission = CommissionSerializer(read_only=True)

    class Meta:
        model = Installment
        fields = "__all__"
        read_only_fields = READ_ONLY + ("status", "payment_date")


class SaleSerializer(serializers.ModelSerializer):
    installments = InstallmentSerializer(many=True, read_only=True)
    seller_name = serializers.SerializerMethodField()

    class Meta:
        model = Sale
        fields = "__all__"
        read_only_fields = READ_ONLY + ("created_by", "status")

    def get_seller_name(self, obj):
        return display_name(obj.seller) if obj.seller else None


class InstallmentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=InstallmentStatus.choices)
    payment_date = serializers.DateField(required=False, allow_null=True)


class AssignSellerSerializer(serializers.Serializer):
    seller = serializers.PrimaryKeyRelatedField(queryset=User.objects.all())
    commission_percent = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=0,
        max_value=100,
        required=False,
    )


class SDRCommissionSerializer(serializers.ModelSerializer):
    sdr_name = serializers.SerializerMethodField()
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    installment_number = serializers.IntegerField(source="installment.installment_number", read_only=True)
    sale_external_id = serializers.CharField(source="assignment.sale.external_id", read_only=True)

    class Meta:
        model = SDRCommission
        fields = "__all__"
        read_only_fields = [field.name for field in SDRCommission._meta.fields]

    def get_sdr_name(self, obj):
        return display_name(obj.sdr)


class SDRAssignmentSerializer(serializers.ModelSerializer):
    sdr_name = serializers.SerializerMethodField()
    approved_by_name = serializers.SerializerMethodField()
    sale_external_id = serializers.CharField(source="sale.external_id", read_only=True)
    sale_client_name = serializers.CharField(source="sale.client_name", read_only=True)
    commission_percent = serializers.DecimalField(
        max_digits=5,
        decimal_places=2,
        min_value=0,
        max_value=100,
        required=False,
    )

    class Meta:
        model = SDRAssignment
        fields = "__all__"
        read_only_fields = READ_ONLY + (
            "status",
            "approved_by",
            "approved_at",
            "rejection_reason",
            "created_by",
        )

    def get_sdr_name(self, obj):
        return display_name(obj.sdr)

    def get_approved_by_name(self, obj):
        return display_name(obj.approved_by) if obj.approved_by else None


class SDRRejectSerializer(serializers.Serializer):
    reason = serializers.CharField()


class InstallmentImportSerializer(serializers.Serializer):
    file = serializers.FileField()
    platform = serializers.ChoiceField(choices=SalePlatform.choices, default=SalePlatform.OTHER)


class AsaasSyncSerializer(serializers.Serializer):
    seller = serializers.PrimaryKeyRelatedField(queryset=User.objects.all())
    start_date = serializers.DateField(required=False, allow_null=True)
    end_date = serializers.DateField(required=False, allow_null=True)
    installments = serializers.BooleanField(default=False)


class HotmartSyncSerializer(serializers.Serializer):
    start = serializers.DateTimeField(required=False)
    end = serializers.DateTimeField(required=False)
    transaction_status = serializers.CharField(required=False, allow_blank=True)
    installments = serializers.BooleanField(default=False)
    products = serializers.BooleanField(default=False)

    def validate(self, attrs):
        if attrs["products"] or attrs["installments"]:
            return attrs
        start = attrs.get("start")
        end = attrs.get("end")
        if not start or not end:
            raise serializers.ValidationError("Informe inicio e fim do periodo.")
        if end < start:
            raise serializers.ValidationError({"end": "Fim deve ser posterior ao inicio."})
        return attrs


class SalesImportLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = SalesImportLog
        fields = "__all__"
        read_only_fields = [field.name for field in SalesImportLog._meta.fields]


class HotmartSyncLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = HotmartSyncLog
        fields = "__all__"
        read_only_fields = [field.name for field in HotmartSyncLog._meta.fields]


# Tarefas


class SubtaskSerializer(serializers.ModelSerializer):
    class Meta:
        model = Subtask
        fields = "__all__"
        read_only_fields = READ_ONLY


class TaskCommentSerializer(serializers.ModelSerializer):
    class Meta:
        model = TaskComment
        fields = "__all__"
        read_only_fields = READ_ONLY + ("author",)


class TaskHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = TaskHistory
        fields = "__all__"
        read_only_fields = READ_ONLY


class TaskSerializer(serializers.ModelSerializer):
    subtasks = SubtaskSerializer(many=True, read_only=True)
    assignee_name = serializers.SerializerMethodField()

    class Meta:
        model = Task
        fields = "__all__"
        read_only_fields = READ_ONLY + (
            "created_by",
            "completed",
            "completed_at",
            "is_recurring_instance",
            "parent_task",
        )

    def get_assignee_name(self, obj):
        return display_name(obj.assignee) if obj.assignee else None

    def validate(self, attrs):
        due_date = attrs.get("due_date", getattr(self.instance, "due_date", None))
        recurrence = attrs.get("recurrence", getattr(self.instance, "recurrence", TaskRecurrence.NONE))
        end_date = attrs.get("recurrence_end_date", getattr(self.instance, "recurrence_end_date", None))
        errors = {}
        if end_date and due_date and end_date < due_date:
            errors["recurrence_end_date"] = "Fim da recorrencia deve ser posterior ao prazo."
        if recurrence != TaskRecurrence.NONE and not due_date:
            errors["due_date"] = "Tarefas recorrentes precisam de prazo."
        if errors:
            raise serializers.ValidationError(errors)
        return attrs


# Tickets


class TicketLogSerializer(serializers.ModelSerializer):
    user_name = serializers.SerializerMethodField()

    class Meta:
        model = TicketLog
        fields = "__all__"

    def get_user_name(self, obj):
        return display_name(obj.user) if obj.user else None


class TicketAttachmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = TicketAttachment
        fields = "__all__"
        read_only_fields = READ_ONLY + ("ticket", "uploaded_by", "file_name")


class TicketSerializer(serializers.ModelSerializer):
    responsible_name = serializers.SerializerMethodField()
    sla_breached = serializers.SerializerMethodField()

    class Meta:
        model = Ticket
        fields = "__all__"
        read_only_fields = READ_ONLY + (
            "number",
            "status",
            "created_by",
            "sla_deadline",
            "first_response_at",
            "closed_at",
            "resolution_minutes",
            "solution_description",
            "linked_task",
        )

    def get_responsible_name(self, obj):
        return display_name(obj.responsible) if obj.responsible else None

    def get_sla_breached(self, obj):
        return is_sla_breached(obj)


class TicketStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=TicketStatus.choices)


class TicketTransferSerializer(serializers.Serializer):
    responsible = serializers.PrimaryKeyRelatedField(queryset=User.objects.all())
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class TicketCloseSerializer(serializers.Serializer):
    solution = serializers.CharField()


class TicketCommentSerializer(serializers.Serializer):
    text = serializers.CharField()


class TicketBulkUpdateSerializer(serializers.Serializer):
    ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)
    status = serializers.ChoiceField(choices=TicketStatus.choices, required=False)
    priority = serializers.ChoiceField(choices=TicketPriority.choices, required=False)
    category = serializers.ChoiceField(choices=TicketCategory.choices, required=False)
    responsible = serializers.PrimaryKeyRelatedField(queryset=User.objects.all(), required=False)

    def validate(self, attrs):
        if not any(key in attrs for key in ("status", "priority", "category", "responsible")):
            raise serializers.ValidationError("Informe ao menos um campo para alterar.")
        return attrs


# OKRs


class OKRKeyResultSerializer(serializers.ModelSerializer):
    progress = serializers.SerializerMethodField()
    progress_display = serializers.SerializerMethodField()

    class Meta:
        model = OKRKeyResult
        fields = "__all__"
        read_only_fields = READ_ONLY

    def get_progress(self, obj):
        return round(obj.progress(), 2)

    def get_progress_display(self, obj):
        return capped_progress(obj.progress())

    def validate_target_value(self, value):
        if value <= 0:
            raise serializers.ValidationError("A meta deve ser maior que zero.")
        return value


class OKRObjectiveSerializer(serializers.ModelSerializer):
    key_results = OKRKeyResultSerializer(many=True, read_only=True)
    progress = serializers.SerializerMethodField()
    progress_display = serializers.SerializerMethodField()

    class Meta:
        model = OKRObjective
        fields = "__all__"
        read_only_fields = READ_ONLY

    def get_progress(self, obj):
        return round(obj.progress(), 2)

    def get_progress_display(self, obj):
        return capped_progress(obj.progress())


class OKRCycleSerializer(serializers.ModelSerializer):
    progress = serializers.SerializerMethodField()

    class Meta:
        model = OKRCycle
        fields = "__all__"
        read_only_fields = READ_ONLY

    def get_progress(self, obj):
        return capped_progress(obj.progress())

    def validate(self, attrs):
        start = attrs.get("start_date", getattr(self.instance, "start_date", None))
        end = attrs.get("end_date", getattr(self.instance, "end_date", None))
        if start and end and end < start:
            raise serializers.ValidationError({"end_date": "Data final deve ser posterior a data inicial."})
        return attrs


class KeyResultValueSerializer(serializers.Serializer):
    current_value = serializers.DecimalField(max_digits=14, decimal_places=2)


# Mentoria


class MentoringTaskSerializer(serializers.ModelSerializer):
    class Meta:
        model = MentoringTask
        fields = "__all__"
        read_only_fields = READ_ONLY + ("completed_at",)


class MentoringStageSerializer(serializers.ModelSerializer):
    class Meta:
        model = MentoringStage
        fields = "__all__"
        read_only_fields = READ_ONLY


class MentoringProcessSerializer(serializers.ModelSerializer):
    stages = MentoringStageSerializer(many=True, read_only=True)
    mentees = serializers.SerializerMethodField()

    class Meta:
        model = MentoringProcess
        fields = "__all__"
        read_only_fields = READ_ONLY + ("created_by",)

    def get_mentees(self, obj):
        names = (
            MentoringTask.objects.filter(stage__process=obj)
            .exclude(mentee_name="")
            .values_list("mentee_name", flat=True)
            .distinct()
        )
        return sorted(names)


class ReplicateSerializer(serializers.Serializer):
    mentee_name = serializers.CharField(max_length=200)


class MentoringMoveSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=MentoringTaskStatus.choices)


# PDIs


class PDILessonSerializer(serializers.ModelSerializer):
    class Meta:
        model = PDILesson
        fields = "__all__"
        read_only_fields = READ_ONLY + ("status", "completed_at")


class PDIAccessSerializer(serializers.ModelSerializer):
    class Meta:
        model = PDIAccess
        fields = "__all__"
        read_only_fields = READ_ONLY


class PDISerializer(serializers.ModelSerializer):
    lessons = PDILessonSerializer(many=True, read_only=True)
    accesses = PDIAccessSerializer(many=True, read_only=True)
    computed_status = serializers.SerializerMethodField()
    progress = serializers.SerializerMethodField()

    class Meta:
        model = PDI
        fields = "__all__"
        read_only_fields = READ_ONLY + ("created_by", "finished_at")

    def get_computed_status(self, obj):
        return pdis.computed_status(obj)

    def get_progress(self, obj):
        return pdis.progress(obj)


# Agenda, patrocinios, conteudo e funis


class EventSerializer(serializers.ModelSerializer):
    class Meta:
        model = Event
        fields = "__all__"
        read_only_fields = READ_ONLY + ("created_by",)


class SponsorStageHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = SponsorStageHistory
        fields = "__all__"


class SponsorSerializer(serializers.ModelSerializer):
    stage_history = SponsorStageHistorySerializer(many=True, read_only=True)

    class Meta:
        model = Sponsor
        fields = "__all__"
        read_only_fields = READ_ONLY


class SponsorMoveSerializer(serializers.Serializer):
    stage = serializers.ChoiceField(choices=SponsorStage.choices)


class SocialPostSerializer(serializers.ModelSerializer):
    class Meta:
        model = SocialPost
        fields = "__all__"
        read_only_fields = READ_ONLY


class FunnelSerializer(serializers.ModelSerializer):
    class Meta:
        model = Funnel
        fields = "__all__"
        read_only_fields = READ_ONLY


# Relatorios


class ReportSerializer(serializers.ModelSerializer):
    class Meta:
        model = Report
        fields = "__all__"
        read_only_fields = [field.name for field in Report._meta.fields]


class GenerateReportSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=200)
    report_type = serializers.ChoiceField(choices=ReportType.choices, default=ReportType.CUSTOM)
    period_start = serializers.DateField()
    period_end = serializers.DateField()
    scope = serializers.ListField(
        child=serializers.ChoiceField(choices=ReportScope.choices),
        allow_empty=False,
    )
    filters = serializers.DictField(required=False, default=dict)

    def validate(self, attrs):
        if attrs["period_end"] < attrs["period_start"]:
            raise serializers.ValidationError({"period_end": "Fim do periodo deve ser posterior ao inicio."})
        return attrs
