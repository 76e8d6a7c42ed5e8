from django.contrib import admin

from .commissions import set_installment_status
from .models import (
    PDI,
    Commission,
    Event,
    Funnel,
    HotmartSyncLog,
    Installment,
    IntegrationSettings,
    LLMSettings,
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
    SponsorStageHistory,
    Subtask,
    Task,
    TaskComment,
    Ticket,
    TicketAttachment,
    TicketLog,
    UserProfile,
)


class InstallmentInline(admin.TabularInline):
    model = Installment
    extra = 0
    readonly_fields = ("status", "payment_date")


class SubtaskInline(admin.TabularInline):
    model = Subtask
    extra = 0


class TaskCommentInline(admin.TabularInline):
    model = TaskComment
    extra = 0


class TicketLogInline(admin.TabularInline):
    model = TicketLog
    extra = 0
    can_delete = False
    readonly_fields = ("user", "action", "description", "field_changed", "old_value", "new_value", "created_at")


class TicketAttachmentInline(admin.TabularInline):
    model = TicketAttachment
    extra = 0


class OKRKeyResultInline(admin.TabularInline):
    model = OKRKeyResult
    extra = 0


class MentoringStageInline(admin.TabularInline):
    model = MentoringStage
    extra = 0


class PDILessonInline(admin.TabularInline):
    model = PDILesson
    extra = 0


class PDIAccessInline(admin.TabularInline):
    model = PDIAccess
    extra = 0


class SponsorStageHistoryInline(admin.TabularInline):
    model = SponsorStageHistory
    extra = 0
    can_delete = False
    readonly_fields = ("from_stage", "to_stage", "changed_by", "changed_at")


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "full_name", "role", "job_title", "updated_at")
    search_fields = ("user__username", "user__first_name", "user__last_name", "full_name")
    list_filter = ("role",)


@admin.register(LLMSettings)
class LLMSettingsAdmin(admin.ModelAdmin):
    list_display = ("id", "api_model", "created_at", "updated_at")


@admin.register(IntegrationSettings)
class IntegrationSettingsAdmin(admin.ModelAdmin):
    list_display = ("id", "asaas_env", "created_at", "updated_at")


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("title", "recipient", "notification_type", "read_at", "created_at")
    search_fields = ("title", "message", "recipient__username")
    list_filter = ("notification_type",)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "price", "default_commission_percent", "is_active", "hotmart_id")
    search_fields = ("name", "hotmart_id")
    list_filter = ("is_active",)


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = (
        "external_id",
        "client_name",
        "product_name",
        "total_value",
        "installments_count",
        "platform",
        "seller",
        "sale_date",
        "status",
    )
    search_fields = ("external_id", "client_name", "client_email", "product_name")
    list_filter = ("platform", "status", "seller")
    date_hierarchy = "sale_date"
    inlines = [InstallmentInline]


@admin.register(Installment)
class InstallmentAdmin(admin.ModelAdmin):
    list_display = ("sale", "installment_number", "total_installments", "value", "due_date", "status", "payment_date")
    search_fields = ("sale__external_id", "sale__client_name")
    list_filter = ("status", "due_date")

    def save_model(self, request, obj, form, change):
        # Status edits must go through the service so the commission follows.
        if change and "status" in form.changed_data:
            new_status = obj.status
            payment_date = obj.payment_date
            obj.status = form.initial.get("status")
            super().save_model(request, obj, form, change)
            set_installment_status(obj, new_status, payment_date)
            return
        super().save_model(request, obj, form, change)


@admin.register(Commission)
class CommissionAdmin(admin.ModelAdmin):
    list_display = ("seller", "installment", "commission_percent", "commission_value", "competence_month", "status")
    search_fields = ("seller__username", "installment__sale__external_id")
    list_filter = ("status", "competence_month")


@admin.register(SDRAssignment)
class SDRAssignmentAdmin(admin.ModelAdmin):
    list_display = ("sale", "sdr", "commission_percent", "status", "approved_by", "approved_at")
    search_fields = ("sale__external_id", "sale__client_name", "sdr__username")
    list_filter = ("status",)
    readonly_fields = ("status", "approved_by", "approved_at")


@admin.register(SDRCommission)
class SDRCommissionAdmin(admin.ModelAdmin):
    list_display = ("sdr", "installment", "commission_percent", "commission_value", "competence_month", "status")
    search_fields = ("sdr__username", "installment__sale__external_id")
    list_filter = ("status", "competence_month")


@admin.register(SalesImportLog)
class SalesImportLogAdmin(admin.ModelAdmin):
    list_display = (
        "filename",
        "platform",
        "source",
        "records_processed",
        "records_created",
        "records_updated",
        "records_failed",
        "created_at",
    )
    list_filter = ("platform", "source")


@admin.register(HotmartSyncLog)
class HotmartSyncLogAdmin(admin.ModelAdmin):
    list_display = ("sync_type", "status", "started_at", "completed_at", "total_fetched", "records_failed")
    list_filter = ("status", "sync_type")


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ("title", "assignee", "priority", "due_date", "completed", "recurrence")
    search_fields = ("title", "description", "category")
    list_filter = ("priority", "completed", "recurrence")
    inlines = [SubtaskInline, TaskCommentInline]


@admin.register(Ticket)
class TicketAdmin(admin.ModelAdmin):
    list_display = ("number", "client_name", "category", "priority", "status", "responsible", "sla_deadline")
    search_fields = ("client_name", "client_email", "client_whatsapp", "description")
    list_filter = ("status", "priority", "category", "origin")
    readonly_fields = ("number", "first_response_at", "closed_at", "resolution_minutes")
    inlines = [TicketAttachmentInline, TicketLogInline]


@admin.register(OKRCycle)
class OKRCycleAdmin(admin.ModelAdmin):
    list_display = ("name", "start_date", "end_date", "is_active")
    list_filter = ("is_active",)


@admin.register(OKRObjective)
class OKRObjectiveAdmin(admin.ModelAdmin):
    list_display = ("title", "cycle", "owner", "order_index")
    list_filter = ("cycle",)
    inlines = [OKRKeyResultInline]


@admin.register(MentoringProcess)
class MentoringProcessAdmin(admin.ModelAdmin):
    list_display = ("name", "created_by", "created_at")
    search_fields = ("name",)
    inlines = [MentoringStageInline]


@admin.register(MentoringTask)
class MentoringTaskAdmin(admin.ModelAdmin):
    list_display = ("title", "stage", "mentee_name", "status", "position")
    search_fields = ("title", "mentee_name")
    list_filter = ("status", "stage__process")


@admin.register(PDI)
class PDIAdmin(admin.ModelAdmin):
    list_display = ("title", "collaborator", "deadline", "status")
    search_fields = ("title", "collaborator__username")
    list_filter = ("status",)
    inlines = [PDILessonInline, PDIAccessInline]


@admin.register(Event)
class EventAdmin(admin.ModelAdmin):
    list_display = ("title", "event_date", "event_time", "event_type", "location")
    search_fields = ("title", "location")
    list_filter = ("event_type",)
    date_hierarchy = "event_date"
    filter_horizontal = ("participants",)


@admin.register(Sponsor)
class SponsorAdmin(admin.ModelAdmin):
    list_display = ("name", "contact_name", "segment", "stage", "proposal_value", "next_followup_date")
    search_fields = ("name", "contact_name", "segment", "city")
    list_filter = ("stage",)
    inlines = [SponsorStageHistoryInline]


@admin.register(SocialPost)
class SocialPostAdmin(admin.ModelAdmin):
    list_display = ("theme", "profile", "post_type", "status", "scheduled_date", "assignee")
    search_fields = ("theme", "profile")
    list_filter = ("status", "post_type")


@admin.register(Funnel)
class FunnelAdmin(admin.ModelAdmin):
    list_display = ("name", "status", "capture_start", "capture_end")
    search_fields = ("name",)


@admin.register(Report)
class ReportAdmin(admin.ModelAdmin):
    list_display = ("title", "report_type", "period_start", "period_end", "status", "generated_by", "generated_at")
    list_filter = ("report_type", "status")
    readonly_fields = ("content_markdown", "consolidated_data", "ai_suggestions", "error_message")
