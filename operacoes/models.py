from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Max
from django.utils import timezone


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Criado em")
    updated_at = models.DateTimeField(auto_now=True, verbose_name="Atualizado em")

    class Meta:
        abstract = True


class UserRole(models.TextChoices):
    ADMIN = "admin", "Administrador"
    FINANCE = "financeiro", "Financeiro"
    SELLER = "vendedor", "Vendedor"
    COLLABORATOR = "colaborador", "Colaborador"


class UserProfile(TimeStampedModel):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="profile",
        verbose_name="Usuario",
    )
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.COLLABORATOR,
        verbose_name="Perfil",
    )
    full_name = models.CharField(max_length=200, blank=True, verbose_name="Nome completo")
    job_title = models.CharField(max_length=120, blank=True, verbose_name="Cargo")
    phone = models.CharField(max_length=30, blank=True, verbose_name="Telefone")

    class Meta:
        verbose_name = "Perfil de usuario"
        verbose_name_plural = "Perfis de usuario"

    def __str__(self) -> str:
        return f"{self.user} ({self.get_role_display()})"


def display_name(user) -> str:
    if not user:
        return ""
    try:
        full_name = (user.profile.full_name or "").strip()
    except UserProfile.DoesNotExist:
        full_name = ""
    return full_name or user.get_full_name() or user.get_username()


class LLMSettings(TimeStampedModel):
    api_url = models.CharField(
        max_length=200,
        blank=True,
        default="",
        verbose_name="API URL",
        help_text="Ex.: https://api.openai.com/v1/chat/completions",
    )
    api_key = models.CharField(
        max_length=200,
        blank=True,
        default="",
        verbose_name="API Key",
        help_text="Chave de acesso da API.",
    )
    api_model = models.CharField(
        max_length=120,
        blank=True,
        default="",
        verbose_name="Modelo",
        help_text="Ex.: gpt-4o-mini",
    )
    request_timeout = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name="Timeout (segundos)",
        help_text="Tempo maximo de espera da requisicao.",
    )
    system_prompt = models.TextField(
        blank=True,
        default="",
        verbose_name="Prompt de sistema",
        help_text="Deixe em branco para usar o prompt padrao do analista.",
    )
    report_prompt = models.TextField(
        blank=True,
        default="",
        verbose_name="Prompt do relatorio",
        help_text=(
            "Placeholders: {{PERIODO_INICIO}}, {{PERIODO_FIM}}, {{TIPO}}, "
            "{{ESCOPOS}}, {{DADOS}}."
        ),
    )

    class Meta:
        verbose_name = "Configuracao de IA"
        verbose_name_plural = "Configuracoes de IA"

    def __str__(self) -> str:
        return "Configuracao de IA"


class AsaasEnvironment(models.TextChoices):
    PRODUCTION = "production", "Producao"
    SANDBOX = "sandbox", "Sandbox"


class IntegrationSettings(TimeStampedModel):
    asaas_api_key = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Asaas API Key",
    )
    asaas_env = models.CharField(
        max_length=20,
        choices=AsaasEnvironment.choices,
        blank=True,
        default="",
        verbose_name="Ambiente Asaas",
    )
    hotmart_client_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Hotmart Client ID",
    )
    hotmart_client_secret = models.CharField(
        max_length=255,
        blank=True,
        default="",
        verbose_name="Hotmart Client Secret",
    )

    class Meta:
        verbose_name = "Configuracao de integracoes"
        verbose_name_plural = "Configuracoes de integracoes"

    def __str__(self) -> str:
        return "Configuracao de integracoes"


class NotificationType(models.TextChoices):
    INFO = "info", "Informacao"
    SUCCESS = "success", "Sucesso"
    WARNING = "warning", "Aviso"
    ALERT = "alert", "Alerta"


class Notification(TimeStampedModel):
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
        verbose_name="Destinatario",
    )
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sent_notifications",
        verbose_name="Remetente",
    )
    title = models.CharField(max_length=200, verbose_name="Titulo")
    message = models.TextField(blank=True, verbose_name="Mensagem")
    notification_type = models.CharField(
        max_length=20,
        choices=NotificationType.choices,
        default=NotificationType.INFO,
        verbose_name="Tipo",
    )
    link = models.CharField(max_length=255, blank=True, verbose_name="Link")
    read_at = models.DateTimeField(null=True, blank=True, verbose_name="Lida em")

    class Meta:
        ordering = ("-created_at",)
        verbose_name = "Notificacao"
        verbose_name_plural = "Notificacoes"

    def __str__(self) -> str:
        return self.title

    @property
    def is_read(self) -> bool:
        return self.read_at is not None


# Vendas e comissoes


DEFAULT_COMMISSION_PERCENT = Decimal("10")


class Product(TimeStampedModel):
    name = models.CharField(max_length=200, verbose_name="Nome")
    description = models.TextField(blank=True, verbose_name="Descricao")
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        verbose_name="Preco",
    )
    default_commission_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=DEFAULT_COMMISSION_PERCENT,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
        verbose_name="Comissao padrao (%)",
    )
    is_active = models.BooleanField(default=True, verbose_name="Ativo")
    hotmart_id = models.CharField(
        max_length=60,
        blank=True,
        default="",
        db_index=True,
        verbose_name="ID Hotmart",
    )
    hotmart_ucode = models.CharField(
        max_length=80,
        blank=True,
        default="",
        verbose_name="UCode Hotmart",
    )

    class Meta:
        ordering = ("name",)
        verbose_name = "Produto"
        verbose_name_plural = "Produtos"

    def __str__(self) -> str:
        return self.name


class SalePlatform(models.TextChoices):
    HOTMART = "hotmart", "Hotmart"
    ASAAS = "asaas", "Asaas"
    MANUAL = "manual", "Manual"
    OTHER = "outro", "Outro"


class SaleStatus(models.TextChoices):
    ACTIVE = "active", "Ativa"
    CANCELLED = "cancelled", "Cancelada"


class Sale(TimeStampedModel):
    external_id = models.CharField(
        max_length=120,
        unique=True,
        verbose_name="ID externo",
    )
    client_name = models.CharField(max_length=200, verbose_name="Cliente")
    client_email = models.EmailField(blank=True, verbose_name="E-mail do cliente")
    client_phone = models.CharField(max_length=40, blank=True, verbose_name="Telefone do cliente")
    product = models.ForeignKey(
        Product,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales",
        verbose_name="Produto",
    )
    product_name = models.CharField(max_length=200, blank=True, verbose_name="Nome do produto")
    total_value = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
        verbose_name="Valor total",
    )
    installments_count = models.PositiveSmallIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
        verbose_name="Quantidade de parcelas",
    )
    platform = models.CharField(
        max_length=20,
        choices=SalePlatform.choices,
        default=SalePlatform.MANUAL,
        verbose_name="Plataforma",
    )
    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales",
        verbose_name="Vendedor",
    )
    commission_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=DEFAULT_COMMISSION_PERCENT,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
        verbose_name="Comissao (%)",
    )
    sale_date = models.DateField(verbose_name="Data da venda")
    status = models.CharField(
        max_length=20,
        choices=SaleStatus.choices,
        default=SaleStatus.ACTIVE,
        verbose_name="Status",
    )
    proof_link = models.URLField(blank=True, verbose_name="Comprovante")
    payment_type = models.CharField(max_length=40, blank=True, verbose_name="Forma de pagamento")
    tracking_source = models.CharField(max_length=120, blank=True, verbose_name="Origem (source)")
    tracking_sck = models.CharField(max_length=120, blank=True, verbose_name="SCK")
    tracking_external_code = models.CharField(
        max_length=120,
        blank=True,
        verbose_name="Codigo externo de rastreio",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales_created",
        verbose_name="Criado por",
    )

    class Meta:
        ordering = ("-sale_date", "-id")
        verbose_name = "Venda"
        verbose_name_plural = "Vendas"

    def __str__(self) -> str:
        return f"{self.external_id} - {self.client_name}"


class InstallmentStatus(models.TextChoices):
    PENDING = "pending", "Pendente"
    PAID = "paid", "Paga"
    OVERDUE = "overdue", "Atrasada"
    CANCELLED = "cancelled", "Cancelada"
    REFUNDED = "refunded", "Estornada"
    CHARGEBACK = "chargeback", "Chargeback"


class Installment(TimeStampedModel):
    sale = models.ForeignKey(
        Sale,
        on_delete=models.CASCADE,
        related_name="installments",
        verbose_name="Venda",
    )
    installment_number = models.PositiveSmallIntegerField(verbose_name="Parcela")
    total_installments = models.PositiveSmallIntegerField(default=1, verbose_name="Total de parcelas")
    value = models.DecimalField(max_digits=12, decimal_places=2, verbose_name="Valor")
    due_date = models.DateField(verbose_name="Vencimento")
    status = models.CharField(
        max_length=20,
        choices=InstallmentStatus.choices,
        default=InstallmentStatus.PENDING,
        verbose_name="Status",
    )
    payment_date = models.DateField(null=True, blank=True, verbose_name="Data de pagamento")

    class Meta:
        ordering = ("sale", "installment_number")
        constraints = [
            models.UniqueConstraint(
                fields=("sale", "installment_number"),
                name="unique_installment_per_sale",
            )
        ]
        verbose_name = "Parcela"
        verbose_name_plural = "Parcelas"

    def __str__(self) -> str:
        return f"{self.sale.external_id} {self.installment_number}/{self.total_installments}"


class CommissionStatus(models.TextChoices):
    PENDING = "pending", "Pendente"
    RELEASED = "released", "Liberada"
    SUSPENDED = "suspended", "Suspensa"
    CANCELLED = "cancelled", "Cancelada"


class Commission(TimeStampedModel):
    installment = models.OneToOneField(
        Installment,
        on_delete=models.CASCADE,
        related_name="commission",
        verbose_name="Parcela",
    )
    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="commissions",
        verbose_name="Vendedor",
    )
    installment_value = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        verbose_name="Valor da parcela",
    )
    commission_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        verbose_name="Comissao (%)",
    )
    commission_value = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        verbose_name="Valor da comissao",
    )
    competence_month = models.DateField(verbose_name="Competencia")
    status = models.CharField(
        max_length=20,
        choices=CommissionStatus.choices,
        default=CommissionStatus.PENDING,
        verbose_name="Status",
    )
    released_at = models.DateTimeField(null=True, blank=True, verbose_name="Liberada em")

    class Meta:
        ordering = ("-competence_month", "-id")
        verbose_name = "Comissao"
        verbose_name_plural = "Comissoes"

    def __str__(self) -> str:
        return f"{self.seller} - {self.commission_value}"


class SDRAssignmentStatus(models.TextChoices):
    PENDING = "pending", "Aguardando aprovacao"
    APPROVED = "approved", "Aprovada"
    REJECTED = "rejected", "Rejeitada"


class SDRAssignment(TimeStampedModel):
    sale = models.OneToOneField(
        Sale,
        on_delete=models.CASCADE,
        related_name="sdr_assignment",
        verbose_name="Venda",
    )
    sdr = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sdr_assignments",
        verbose_name="SDR",
    )
    proof_link = models.URLField(max_length=500, verbose_name="Link de comprovacao")
    commission_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("1"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
        verbose_name="Comissao (%)",
    )
    status = models.CharField(
        max_length=20,
        choices=SDRAssignmentStatus.choices,
        default=SDRAssignmentStatus.PENDING,
        verbose_name="Status",
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sdr_approvals",
        verbose_name="Aprovado por",
    )
    approved_at = models.DateTimeField(null=True, blank=True, verbose_name="Aprovado em")
    rejection_reason = models.TextField(blank=True, verbose_name="Motivo da rejeicao")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sdr_assignments_created",
        verbose_name="Criado por",
    )

    class Meta:
        ordering = ("-created_at",)
        verbose_name = "Atribuicao de SDR"
        verbose_name_plural = "Atribuicoes de SDR"

    def __str__(self) -> str:
        return f"{self.sale.external_id} - {self.sdr}"


class SDRCommission(TimeStampedModel):
    assignment = models.ForeignKey(
        SDRAssignment,
        on_delete=models.CASCADE,
        related_name="commissions",
        verbose_name="Atribuicao",
    )
    installment = models.OneToOneField(
        Installment,
        on_delete=models.CASCADE,
        related_name="sdr_commission",
        verbose_name="Parcela",
    )
    sdr = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sdr_commissions",
        verbose_name="SDR",
    )
    installment_value = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        verbose_name="Valor da parcela",
    )
    commission_percent = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        verbose_name="Comissao (%)",
    )
    commission_value = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        verbose_name="Valor da comissao",
    )
    competence_month = models.DateField(verbose_name="Competencia")
    status = models.CharField(
        max_length=20,
        choices=CommissionStatus.choices,
        default=CommissionStatus.PENDING,
        verbose_name="Status",
    )
    released_at = models.DateTimeField(null=True, blank=True, verbose_name="Liberada em")

    class Meta:
        ordering = ("-competence_month", "-id")
        verbose_name = "Comissao de SDR"
        verbose_name_plural = "Comissoes de SDR"

    def __str__(self) -> str:
        return f"{self.sdr} - {self.commission_value}"


class ImportSource(models.TextChoices):
    CSV = "csv", "Arquivo"
    API = "api", "API"
    SCHEDULED = "scheduled", "Agendada"


class SalesImportLog(TimeStampedModel):
    filename = models.CharField(max_length=255, blank=True, verbose_name="Arquivo")
    platform = models.CharField(
        max_length=20,
        choices=SalePlatform.choices,
        verbose_name="Plataforma",
    )
    source = models.CharField(
        max_length=20,
        choices=ImportSource.choices,
        default=ImportSource.CSV,
        verbose_name="Origem",
    )
    imported_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sales_imports",
        verbose_name="Importado por",
    )
    records_processed = models.PositiveIntegerField(default=0, verbose_name="Processados")
    records_created = models.PositiveIntegerField(default=0, verbose_name="Criados")
    records_updated = models.PositiveIntegerField(default=0, verbose_name="Atualizados")
    records_failed = models.PositiveIntegerField(default=0, verbose_name="Falhas")
    error_log = models.JSONField(default=list, blank=True, verbose_name="Erros")

    class Meta:
        ordering = ("-created_at",)
        verbose_name = "Importacao de vendas"
        verbose_name_plural = "Importacoes de vendas"

    def __str__(self) -> str:
        return f"{self.get_platform_display()} {self.created_at:%d/%m/%Y %H:%M}"


class SyncStatus(models.TextChoices):
    RUNNING = "running", "Em execucao"
    SUCCESS = "success", "Sucesso"
    PARTIAL = "partial", "Parcial"
    ERROR = "error", "Erro"


class HotmartSyncLog(TimeStampedModel):
    sync_type = models.CharField(max_length=30, default="scheduled", verbose_name="Tipo")
    status = models.CharField(
        max_length=20,
        choices=SyncStatus.choices,
        default=SyncStatus.RUNNING,
        verbose_name="Status",
    )
    started_at = models.DateTimeField(default=timezone.now, verbose_name="Inicio")
    completed_at = models.DateTimeField(null=True, blank=True, verbose_name="Fim")
    period_start = models.DateTimeField(null=True, blank=True, verbose_name="Periodo inicio")
    period_end = models.DateTimeField(null=True, blank=True, verbose_name="Periodo fim")
    total_fetched = models.PositiveIntegerField(default=0, verbose_name="Recebidos")
    records_created = models.PositiveIntegerField(default=0, verbose_name="Criados")
    records_updated = models.PositiveIntegerField(default=0, verbose_name="Atualizados")
    records_failed = models.PositiveIntegerField(default=0, verbose_name="Falhas")
    error_message = models.TextField(blank=True, verbose_name="Erro")
    details = models.JSONField(default=dict, blank=True, verbose_name="Detalhes")

    class Meta:
        ordering = ("-started_at",)
        verbose_name = "Log de sincronizacao Hotmart"
        verbose_name_plural = "Logs de sincronizacao Hotmart"

    def __str__(self) -> str:
        return f"{self.sync_type} {self.get_status_display()}"


# Tarefas


class TaskPriority(models.TextChoices):
    HIGH = "alta", "Alta"
    MEDIUM = "media", "Media"
    LOW = "baixa", "Baixa"


class TaskRecurrence(models.TextChoices):
    NONE = "none", "Sem recorrencia"
    DAILY = "daily", "Diaria"
    WEEKLY = "weekly", "Semanal"
    BIWEEKLY = "biweekly", "Quinzenal"
    MONTHLY = "monthly", "Mensal"
    SEMIANNUAL = "semiannual", "Semestral"
    YEARLY = "yearly", "Anual"


class Task(TimeStampedModel):
    title = models.CharField(max_length=255, verbose_name="Titulo")
    description = models.TextField(blank=True, verbose_name="Descricao")
    priority = models.CharField(
        max_length=10,
        choices=TaskPriority.choices,
        default=TaskPriority.MEDIUM,
        verbose_name="Prioridade",
    )
    category = models.CharField(max_length=80, blank=True, verbose_name="Categoria")
    assignee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="assigned_tasks",
        verbose_name="Responsavel",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_tasks",
        verbose_name="Criado por",
    )
    due_date = models.DateField(null=True, blank=True, verbose_name="Prazo")
    due_time = models.TimeField(null=True, blank=True, verbose_name="Horario")
    completed = models.BooleanField(default=False, verbose_name="Concluida")
    completed_at = models.DateTimeField(null=True, blank=True, verbose_name="Concluida em")
    position = models.PositiveIntegerField(default=0, verbose_name="Ordem")
    recurrence = models.CharField(
        max_length=20,
        choices=TaskRecurrence.choices,
        default=TaskRecurrence.NONE,
        verbose_name="Recorrencia",
    )
    recurrence_end_date = models.DateField(
        null=True,
        blank=True,
        verbose_name="Fim da recorrencia",
    )
    parent_task = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="recurring_instances",
        verbose_name="Tarefa de origem",
    )
    is_recurring_instance = models.BooleanField(default=False, verbose_name="Instancia recorrente")

    class Meta:
        ordering = ("completed", "due_date", "position", "id")
        verbose_name = "Tarefa"
        verbose_name_plural = "Tarefas"

    def __str__(self) -> str:
        return self.title

    def clean(self):
        errors = {}
        if (
            self.recurrence_end_date
            and self.due_date
            and self.recurrence_end_date < self.due_date
        ):
            errors["recurrence_end_date"] = "Fim da recorrencia deve ser posterior ao prazo."
        if self.recurrence != TaskRecurrence.NONE and not self.due_date:
            errors["due_date"] = "Tarefas recorrentes precisam de prazo."
        if errors:
            raise ValidationError(errors)


class Subtask(TimeStampedModel):
    task = models.ForeignKey(
        Task,
        on_delete=models.CASCADE,
        related_name="subtasks",
        verbose_name="Tarefa",
    )
    title = models.CharField(max_length=255, verbose_name="Titulo")
    completed = models.BooleanField(default=False, verbose_name="Concluida")
    position = models.PositiveIntegerField(default=0, verbose_name="Ordem")

    class Meta:
        ordering = ("position", "id")
        verbose_name = "Subtarefa"
        verbose_name_plural = "Subtarefas"

    def __str__(self) -> str:
        return self.title


class TaskComment(TimeStampedModel):
    task = models.ForeignKey(
        Task,
        on_delete=models.CASCADE,
        related_name="comments",
        verbose_name="Tarefa",
    )
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="task_comments",
        verbose_name="Autor",
    )
    content = models.TextField(verbose_name="Comentario")

    class Meta:
        ordering = ("created_at",)
        verbose_name = "Comentario de tarefa"
        verbose_name_plural = "Comentarios de tarefa"

    def __str__(self) -> str:
        return f"{self.task} - {self.author}"


class TaskHistory(TimeStampedModel):
    task = models.ForeignKey(
        Task,
        on_delete=models.CASCADE,
        related_name="history",
        verbose_name="Tarefa",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="task_history",
        verbose_name="Usuario",
    )
    action = models.CharField(max_length=40, verbose_name="Acao")
    field_changed = models.CharField(max_length=60, blank=True, verbose_name="Campo")
    old_value = models.TextField(blank=True, verbose_name="Valor anterior")
    new_value = models.TextField(blank=True, verbose_name="Novo valor")

    class Meta:
        ordering = ("-created_at",)
        verbose_name = "Historico de tarefa"
        verbose_name_plural = "Historico de tarefas"

    def __str__(self) -> str:
        return f"{self.task} - {self.action}"


# Tickets


class TicketOrigin(models.TextChoices):
    WHATSAPP = "whatsapp", "WhatsApp"
    EMAIL = "email", "E-mail"
    INSTAGRAM = "instagram", "Instagram"
    PHONE = "telefone", "Telefone"
    SITE = "site", "Site"
    OTHER = "outro", "Outro"


class TicketCategory(models.TextChoices):
    QUESTION = "duvida", "Duvida"
    TECH_SUPPORT = "suporte_tecnico", "Suporte tecnico"
    FINANCIAL = "financeiro", "Financeiro"
    ACCESS = "acesso", "Acesso"
    COMPLAINT = "reclamacao", "Reclamacao"
    SUGGESTION = "sugestao", "Sugestao"
    OTHER = "outro", "Outro"


class TicketPriority(models.TextChoices):
    CRITICAL = "critica", "Critica"
    HIGH = "alta", "Alta"
    MEDIUM = "media", "Media"
    LOW = "baixa", "Baixa"


class TicketStatus(models.TextChoices):
    OPEN = "aberto", "Aberto"
    IN_PROGRESS = "em_atendimento", "Em atendimento"
    WAITING_CLIENT = "aguardando_cliente", "Aguardando cliente"
    ESCALATED = "escalado", "Escalado"
    RESOLVED = "resolvido", "Resolvido"
    CLOSED = "encerrado", "Encerrado"


class Ticket(TimeStampedModel):
    number = models.PositiveIntegerField(unique=True, editable=False, verbose_name="Numero")
    client_name = models.CharField(max_length=200, verbose_name="Cliente")
    client_email = models.EmailField(blank=True, verbose_name="E-mail do cliente")
    client_whatsapp = models.CharField(max_length=40, blank=True, verbose_name="WhatsApp do cliente")
    client_instagram = models.CharField(max_length=80, blank=True, verbose_name="Instagram do cliente")
    origin = models.CharField(
        max_length=20,
        choices=TicketOrigin.choices,
        default=TicketOrigin.WHATSAPP,
        verbose_name="Origem",
    )
    category = models.CharField(
        max_length=30,
        choices=TicketCategory.choices,
        default=TicketCategory.QUESTION,
        verbose_name="Categoria",
    )
    description = models.TextField(verbose_name="Descricao")
    priority = models.CharField(
        max_length=10,
        choices=TicketPriority.choices,
        default=TicketPriority.MEDIUM,
        verbose_name="Prioridade",
    )
    status = models.CharField(
        max_length=30,
        choices=TicketStatus.choices,
        default=TicketStatus.OPEN,
        verbose_name="Status",
    )
    responsible = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="tickets_responsible",
        verbose_name="Responsavel",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="tickets_created",
        verbose_name="Criado por",
    )
    sla_deadline = models.DateTimeField(null=True, blank=True, verbose_name="Limite SLA")
    first_response_at = models.DateTimeField(null=True, blank=True, verbose_name="Primeira resposta em")
    closed_at = models.DateTimeField(null=True, blank=True, verbose_name="Encerrado em")
    resolution_minutes = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name="Tempo de resolucao (min)",
    )
    solution_description = models.TextField(blank=True, verbose_name="Solucao")
    linked_task = models.OneToOneField(
        Task,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="ticket",
        verbose_name="Tarefa vinculada",
    )

    class Meta:
        ordering = ("-number",)
        verbose_name = "Ticket"
        verbose_name_plural = "Tickets"

    def __str__(self) -> str:
        return f"#{self.number} - {self.client_name}"

    @classmethod
    def next_number(cls) -> int:
        last = cls.objects.aggregate(last=Max("number"))["last"] or 0
        return last + 1

    def save(self, *args, **kwargs):
        if not self.number:
            self.number = Ticket.next_number()
        super().save(*args, **kwargs)

    @property
    def is_open(self) -> bool:
        return self.status not in (TicketStatus.RESOLVED, TicketStatus.CLOSED)


class TicketLog(models.Model):
    ticket = models.ForeignKey(
        Ticket,
        on_delete=models.CASCADE,
        related_name="logs",
        verbose_name="Ticket",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="ticket_logs",
        verbose_name="Usuario",
    )
    action = models.CharField(max_length=40, verbose_name="Acao")
    description = models.TextField(blank=True, verbose_name="Descricao")
    field_changed = models.CharField(max_length=60, blank=True, verbose_name="Campo")
    old_value = models.TextField(blank=True, verbose_name="Valor anterior")
    new_value = models.TextField(blank=True, verbose_name="Novo valor")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Criado em")

    class Meta:
        ordering = ("-created_at", "-id")
        verbose_name = "Log de ticket"
        verbose_name_plural = "Logs de ticket"

    def __str__(self) -> str:
        return f"#{self.ticket.number} {self.action}"


class TicketAttachment(TimeStampedModel):
    ticket = models.ForeignKey(
        Ticket,
        on_delete=models.CASCADE,
        related_name="attachments",
        verbose_name="Ticket",
    )
    file = models.FileField(upload_to="tickets/anexos/", verbose_name="Arquivo")
    file_name = models.CharField(max_length=255, blank=True, verbose_name="Nome do arquivo")
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="ticket_attachments",
        verbose_name="Enviado por",
    )

    class Meta:
        verbose_name = "Anexo de ticket"
        verbose_name_plural = "Anexos de ticket"

    def __str__(self) -> str:
        return self.file_name or self.file.name


# OKRs


class OKRCycle(TimeStampedModel):
    name = models.CharField(max_length=120, verbose_name="Nome")
    start_date = models.DateField(verbose_name="Inicio")
    end_date = models.DateField(verbose_name="Fim")
    is_active = models.BooleanField(default=True, verbose_name="Ativo")

    class Meta:
        ordering = ("-start_date",)
        verbose_name = "Ciclo de OKR"
        verbose_name_plural = "Ciclos de OKR"

    def __str__(self) -> str:
        return self.name

    def clean(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError({"end_date": "Data final deve ser posterior a data inicial."})

    def progress(self) -> float:
        objectives = list(self.objectives.prefetch_related("key_results"))
        if not objectives:
            return 0.0
        return sum(objective.progress() for objective in objectives) / len(objectives)


class OKRObjective(TimeStampedModel):
    cycle = models.ForeignKey(
        OKRCycle,
        on_delete=models.CASCADE,
        related_name="objectives",
        verbose_name="Ciclo",
    )
    title = models.CharField(max_length=255, verbose_name="Titulo")
    description = models.TextField(blank=True, verbose_name="Descricao")
    color = models.CharField(max_length=20, default="#3b82f6", verbose_name="Cor")
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="okr_objectives",
        verbose_name="Dono",
    )
    order_index = models.PositiveIntegerField(default=0, verbose_name="Ordem")

    class Meta:
        ordering = ("order_index", "id")
        verbose_name = "Objetivo"
        verbose_name_plural = "Objetivos"

    def __str__(self) -> str:
        return self.title

    def progress(self) -> float:
        key_results = list(self.key_results.all())
        if not key_results:
            return 0.0
        return sum(kr.progress() for kr in key_results) / len(key_results)


class OKRKeyResult(TimeStampedModel):
    objective = models.ForeignKey(
        OKRObjective,
        on_delete=models.CASCADE,
        related_name="key_results",
        verbose_name="Objetivo",
    )
    title = models.CharField(max_length=255, verbose_name="Titulo")
    target_value = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("100"),
        verbose_name="Meta",
    )
    current_value = models.DecimalField(
        max_digits=14,
        decimal_places=2,
        default=Decimal("0"),
        verbose_name="Valor atual",
    )
    unit = models.CharField(max_length=30, blank=True, default="%", verbose_name="Unidade")
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="okr_key_results",
        verbose_name="Dono",
    )
    order_index = models.PositiveIntegerField(default=0, verbose_name="Ordem")

    class Meta:
        ordering = ("order_index", "id")
        verbose_name = "Resultado-chave"
        verbose_name_plural = "Resultados-chave"

    def __str__(self) -> str:
        return self.title

    def clean(self):
        if self.target_value is not None and self.target_value <= 0:
            raise ValidationError({"target_value": "A meta deve ser maior que zero."})

    def progress(self) -> float:
        if not self.target_value or self.target_value <= 0:
            return 0.0
        return float(self.current_value / self.target_value * 100)


def capped_progress(value: float) -> int:
    return max(0, min(100, round(value)))


# Mentoria


class MentoringProcess(TimeStampedModel):
    name = models.CharField(max_length=200, verbose_name="Nome")
    description = models.TextField(blank=True, verbose_name="Descricao")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="mentoring_processes",
        verbose_name="Criado por",
    )

    class Meta:
        ordering = ("name",)
        verbose_name = "Processo de mentoria"
        verbose_name_plural = "Processos de mentoria"

    def __str__(self) -> str:
        return self.name


class MentoringStage(TimeStampedModel):
    process = models.ForeignKey(
        MentoringProcess,
        on_delete=models.CASCADE,
        related_name="stages",
        verbose_name="Processo",
    )
    name = models.CharField(max_length=200, verbose_name="Nome")
    position = models.PositiveIntegerField(default=0, verbose_name="Ordem")

    class Meta:
        ordering = ("position", "id")
        verbose_name = "Etapa de mentoria"
        verbose_name_plural = "Etapas de mentoria"

    def __str__(self) -> str:
        return f"{self.process} - {self.name}"


class MentoringTaskStatus(models.TextChoices):
    PENDING = "pending", "Pendente"
    IN_PROGRESS = "in_progress", "Em andamento"
    COMPLETED = "completed", "Concluida"


class MentoringTask(TimeStampedModel):
    stage = models.ForeignKey(
        MentoringStage,
        on_delete=models.CASCADE,
        related_name="tasks",
        verbose_name="Etapa",
    )
    title = models.CharField(max_length=255, verbose_name="Titulo")
    description = models.TextField(blank=True, verbose_name="Descricao")
    position = models.PositiveIntegerField(default=0, verbose_name="Ordem")
    status = models.CharField(
        max_length=20,
        choices=MentoringTaskStatus.choices,
        default=MentoringTaskStatus.PENDING,
        verbose_name="Status",
    )
    mentee_name = models.CharField(max_length=200, blank=True, verbose_name="Mentorado")
    parent_task = models.ForeignKey(
        "self",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="copies",
        verbose_name="Tarefa modelo",
    )
    completed_at = models.DateTimeField(null=True, blank=True, verbose_name="Concluida em")

    class Meta:
        ordering = ("position", "id")
        verbose_name = "Tarefa de mentoria"
        verbose_name_plural = "Tarefas de mentoria"

    def __str__(self) -> str:
        if self.mentee_name:
            return f"{self.title} ({self.mentee_name})"
        return self.title


# PDIs


class PDIStatus(models.TextChoices):
    ACTIVE = "ativo", "Ativo"
    FINISHED = "finalizado", "Finalizado"
    LATE = "atrasado", "Atrasado"


class PDI(TimeStampedModel):
    title = models.CharField(max_length=200, verbose_name="Titulo")
    description = models.TextField(blank=True, verbose_name="Descricao")
    collaborator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="pdis",
        verbose_name="Colaborador",
    )
    deadline = models.DateField(verbose_name="Data limite")
    status = models.CharField(
        max_length=20,
        choices=PDIStatus.choices,
        default=PDIStatus.ACTIVE,
        verbose_name="Status",
    )
    finished_at = models.DateTimeField(null=True, blank=True, verbose_name="Finalizado em")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="pdis_created",
        verbose_name="Criado por",
    )

    class Meta:
        ordering = ("deadline", "id")
        verbose_name = "PDI"
        verbose_name_plural = "PDIs"

    def __str__(self) -> str:
        return self.title


class PDILessonOrigin(models.TextChoices):
    INTERNAL = "interna", "Interna"
    EXTERNAL = "externa", "Externa"


class PDILessonStatus(models.TextChoices):
    NOT_STARTED = "nao_iniciada", "Nao iniciada"
    DONE = "concluida", "Concluida"


class PDILesson(TimeStampedModel):
    pdi = models.ForeignKey(
        PDI,
        on_delete=models.CASCADE,
        related_name="lessons",
        verbose_name="PDI",
    )
    title = models.CharField(max_length=200, verbose_name="Titulo")
    origin = models.CharField(
        max_length=20,
        choices=PDILessonOrigin.choices,
        default=PDILessonOrigin.INTERNAL,
        verbose_name="Origem",
    )
    link = models.URLField(blank=True, verbose_name="Link")
    duration_minutes = models.PositiveIntegerField(null=True, blank=True, verbose_name="Duracao (min)")
    status = models.CharField(
        max_length=20,
        choices=PDILessonStatus.choices,
        default=PDILessonStatus.NOT_STARTED,
        verbose_name="Status",
    )
    order = models.PositiveIntegerField(default=0, verbose_name="Ordem")
    completed_at = models.DateTimeField(null=True, blank=True, verbose_name="Concluida em")

    class Meta:
        ordering = ("order", "id")
        verbose_name = "Aula de PDI"
        verbose_name_plural = "Aulas de PDI"

    def __str__(self) -> str:
        return self.title


class PDIAccess(TimeStampedModel):
    pdi = models.ForeignKey(
        PDI,
        on_delete=models.CASCADE,
        related_name="accesses",
        verbose_name="PDI",
    )
    name = models.CharField(max_length=200, verbose_name="Nome")
    category = models.CharField(max_length=80, blank=True, verbose_name="Categoria")
    link = models.URLField(blank=True, verbose_name="Link")

    class Meta:
        ordering = ("name",)
        verbose_name = "Acesso de PDI"
        verbose_name_plural = "Acessos de PDI"

    def __str__(self) -> str:
        return self.name


# Agenda, patrocinios, conteudo e funis


class EventType(models.TextChoices):
    MEETING = "reuniao", "Reuniao"
    EVENT = "evento", "Evento"
    LIVE = "live", "Live"
    WORKSHOP = "workshop", "Workshop"
    OTHER = "outro", "Outro"


class Event(TimeStampedModel):
    title = models.CharField(max_length=200, verbose_name="Titulo")
    description = models.TextField(blank=True, verbose_name="Descricao")
    event_date = models.DateField(verbose_name="Data")
    event_time = models.TimeField(null=True, blank=True, verbose_name="Horario")
    duration_minutes = models.PositiveIntegerField(default=60, verbose_name="Duracao (min)")
    event_type = models.CharField(
        max_length=20,
        choices=EventType.choices,
        default=EventType.MEETING,
        verbose_name="Tipo",
    )
    location = models.CharField(max_length=200, blank=True, verbose_name="Local")
    meeting_link = models.URLField(blank=True, verbose_name="Link da reuniao")
    color = models.CharField(max_length=20, default="#3b82f6", verbose_name="Cor")
    participants = models.ManyToManyField(
        settings.AUTH_USER_MODEL,
        blank=True,
        related_name="events",
        verbose_name="Participantes",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="events_created",
        verbose_name="Criado por",
    )

    class Meta:
        ordering = ("event_date", "event_time", "id")
        verbose_name = "Evento"
        verbose_name_plural = "Eventos"

    def __str__(self) -> str:
        return f"{self.title} ({self.event_date:%d/%m/%Y})"


class SponsorStage(models.TextChoices):
    PROSPECTS = "possiveis_patrocinadores", "Possiveis patrocinadores"
    FIRST_CONTACT = "primeiro_contato", "Primeiro contato"
    FOLLOWUP = "followup", "Follow-up"
    SCHEDULING = "agendamento", "Agendamento"
    LAST_CONTACT = "ultimo_contato", "Ultimo contato"
    CLOSING = "contrato_fechamento", "Contrato / fechamento"


class Sponsor(TimeStampedModel):
    name = models.CharField(max_length=200, verbose_name="Nome")
    contact_name = models.CharField(max_length=200, blank=True, verbose_name="Contato")
    contact_email = models.EmailField(blank=True, verbose_name="E-mail")
    contact_phone = models.CharField(max_length=40, blank=True, verbose_name="Telefone")
    segment = models.CharField(max_length=120, blank=True, verbose_name="Segmento")
    city = models.CharField(max_length=120, blank=True, verbose_name="Cidade")
    stage = models.CharField(
        max_length=40,
        choices=SponsorStage.choices,
        default=SponsorStage.PROSPECTS,
        verbose_name="Etapa",
    )
    proposal_value = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name="Valor da proposta",
    )
    next_followup_date = models.DateField(null=True, blank=True, verbose_name="Proximo follow-up")
    notes = models.TextField(blank=True, verbose_name="Observacoes")
    events = models.ManyToManyField(
        Event,
        blank=True,
        related_name="sponsors",
        verbose_name="Eventos",
    )

    class Meta:
        ordering = ("name",)
        verbose_name = "Patrocinador"
        verbose_name_plural = "Patrocinadores"

    def __str__(self) -> str:
        return self.name


class SponsorStageHistory(models.Model):
    sponsor = models.ForeignKey(
        Sponsor,
        on_delete=models.CASCADE,
        related_name="stage_history",
        verbose_name="Patrocinador",
    )
    from_stage = models.CharField(
        max_length=40,
        choices=SponsorStage.choices,
        blank=True,
        verbose_name="Etapa anterior",
    )
    to_stage = models.CharField(
        max_length=40,
        choices=SponsorStage.choices,
        verbose_name="Nova etapa",
    )
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sponsor_stage_changes",
        verbose_name="Alterado por",
    )
    changed_at = models.DateTimeField(auto_now_add=True, verbose_name="Alterado em")

    class Meta:
        ordering = ("-changed_at", "-id")
        verbose_name = "Historico de etapa"
        verbose_name_plural = "Historico de etapas"

    def __str__(self) -> str:
        return f"{self.sponsor}: {self.from_stage} -> {self.to_stage}"


class PostType(models.TextChoices):
    FEED = "feed", "Feed"
    REELS = "reels", "Reels"
    STORIES = "stories", "Stories"
    CAROUSEL = "carrossel", "Carrossel"


class PostStatus(models.TextChoices):
    IDEA = "ideia", "Ideia"
    SCRIPT = "roteiro", "Roteiro"
    RECORDING = "gravacao", "Gravacao"
    EDITING = "edicao", "Edicao"
    SCHEDULED = "agendado", "Agendado"
    PUBLISHED = "publicado", "Publicado"


class SocialPost(TimeStampedModel):
    profile = models.CharField(max_length=120, blank=True, verbose_name="Perfil")
    theme = models.CharField(max_length=255, verbose_name="Tema")
    post_type = models.CharField(
        max_length=20,
        choices=PostType.choices,
        default=PostType.FEED,
        verbose_name="Formato",
    )
    status = models.CharField(
        max_length=20,
        choices=PostStatus.choices,
        default=PostStatus.IDEA,
        verbose_name="Status",
    )
    scheduled_date = models.DateField(null=True, blank=True, verbose_name="Data de publicacao")
    assignee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="social_posts",
        verbose_name="Responsavel",
    )
    caption = models.TextField(blank=True, verbose_name="Legenda")

    class Meta:
        ordering = ("scheduled_date", "id")
        verbose_name = "Post"
        verbose_name_plural = "Posts"

    def __str__(self) -> str:
        return self.theme


class Funnel(TimeStampedModel):
    name = models.CharField(max_length=200, verbose_name="Nome")
    status = models.CharField(max_length=60, blank=True, verbose_name="Status")
    capture_start = models.DateField(null=True, blank=True, verbose_name="Inicio da captacao")
    capture_end = models.DateField(null=True, blank=True, verbose_name="Fim da captacao")
    notes = models.TextField(blank=True, verbose_name="Observacoes")

    class Meta:
        ordering = ("-capture_start", "name")
        verbose_name = "Funil"
        verbose_name_plural = "Funis"

    def __str__(self) -> str:
        return self.name

    def clean(self):
        if self.capture_start and self.capture_end and self.capture_end < self.capture_start:
            raise ValidationError({"capture_end": "Fim da captacao deve ser posterior ao inicio."})


# Relatorios


class ReportType(models.TextChoices):
    WEEKLY = "weekly", "Semanal"
    EVENT = "event", "Evento"
    COMMERCIAL = "commercial", "Comercial"
    OPERATIONAL = "operational", "Operacional"
    CUSTOM = "custom", "Personalizado"


class ReportScope(models.TextChoices):
    EVENTS = "events", "Eventos"
    FUNNELS = "funnels", "Funis"
    SALES = "sales", "Vendas"
    TASKS = "tasks", "Tarefas"
    SPONSORS = "sponsors", "Patrocinadores"
    CONTENT = "content", "Conteudo"


class ReportStatus(models.TextChoices):
    GENERATING = "generating", "Gerando"
    COMPLETED = "completed", "Concluido"
    ERROR = "error", "Erro"


class Report(TimeStampedModel):
    title = models.CharField(max_length=200, verbose_name="Titulo")
    report_type = models.CharField(
        max_length=20,
        choices=ReportType.choices,
        default=ReportType.CUSTOM,
        verbose_name="Tipo",
    )
    period_start = models.DateField(verbose_name="Inicio do periodo")
    period_end = models.DateField(verbose_name="Fim do periodo")
    scope = models.JSONField(default=list, verbose_name="Escopo")
    filters = models.JSONField(default=dict, blank=True, verbose_name="Filtros")
    content_markdown = models.TextField(blank=True, verbose_name="Conteudo")
    consolidated_data = models.JSONField(default=dict, blank=True, verbose_name="Dados consolidados")
    ai_suggestions = models.JSONField(default=list, blank=True, verbose_name="Sugestoes")
    status = models.CharField(
        max_length=20,
        choices=ReportStatus.choices,
        default=ReportStatus.GENERATING,
        verbose_name="Status",
    )
    error_message = models.TextField(blank=True, verbose_name="Erro")
    generated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reports",
        verbose_name="Gerado por",
    )
    generated_at = models.DateTimeField(null=True, blank=True, verbose_name="Gerado em")

    class Meta:
        ordering = ("-created_at",)
        verbose_name = "Relatorio"
        verbose_name_plural = "Relatorios"

    def __str__(self) -> str:
        return self.title

    def clean(self):
        if self.period_start and self.period_end and self.period_end < self.period_start:
            raise ValidationError({"period_end": "Fim do periodo deve ser posterior ao inicio."})
