from decimal import Decimal

import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


def _id():
    return (
        "id",
        models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID"),
    )


def _timestamps():
    return [
        ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Criado em")),
        ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Atualizado em")),
    ]


def _user_fk(related_name, verbose_name, on_delete=django.db.models.deletion.SET_NULL, nullable=True):
    options = {"null": True, "blank": True} if nullable else {}
    return models.ForeignKey(
        on_delete=on_delete,
        related_name=related_name,
        to=settings.AUTH_USER_MODEL,
        verbose_name=verbose_name,
        **options,
    )


PERCENT_VALIDATORS = [
    django.core.validators.MinValueValidator(Decimal("0")),
    django.core.validators.MaxValueValidator(Decimal("100")),
]

SALE_PLATFORM_CHOICES = [
    ("hotmart", "Hotmart"),
    ("asaas", "Asaas"),
    ("manual", "Manual"),
    ("outro", "Outro"),
]

SPONSOR_STAGE_CHOICES = [
    ("possiveis_patrocinadores", "Possiveis patrocinadores"),
    ("primeiro_contato", "Primeiro contato"),
    ("followup", "Follow-up"),
    ("agendamento", "Agendamento"),
    ("ultimo_contato", "Ultimo contato"),
    ("contrato_fechamento", "Contrato / fechamento"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="UserProfile",
            fields=[
                _id(),
                *_timestamps(),
                (
                    "role",
                    models.CharField(
                        choices=[
                            ("admin", "Administrador"),
                            ("financeiro", "Financeiro"),
                            ("vendedor", "Vendedor"),
                            ("colaborador", "Colaborador"),
                        ],
                        default="colaborador",
                        max_length=20,
                        verbose_name="Perfil",
                    ),
                ),
                ("full_name", models.CharField(blank=True, max_length=200, verbose_name="Nome completo")),
                ("job_title", models.CharField(blank=True, max_length=120, verbose_name="Cargo")),
                ("phone", models.CharField(blank=True, max_length=30, verbose_name="Telefone")),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="profile",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Usuario",
                    ),
                ),
            ],
            options={
                "verbose_name": "Perfil de usuario",
                "verbose_name_plural": "Perfis de usuario",
            },
        ),
        migrations.CreateModel(
            name="LLMSettings",
            fields=[
                _id(),
                *_timestamps(),
                (
                    "api_url",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Ex.: https://api.openai.com/v1/chat/completions",
                        max_length=200,
                        verbose_name="API URL",
                    ),
                ),
                (
                    "api_key",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Chave de acesso da API.",
                        max_length=200,
                        verbose_name="API Key",
                    ),
                ),
                (
                    "api_model",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Ex.: gpt-4o-mini",
                        max_length=120,
                        verbose_name="Modelo",
                    ),
                ),
                (
                    "request_timeout",
                    models.PositiveIntegerField(
                        blank=True,
                        help_text="Tempo maximo de espera da requisicao.",
                        null=True,
                        verbose_name="Timeout (segundos)",
                    ),
                ),
                (
                    "system_prompt",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text="Deixe em branco para usar o prompt padrao do analista.",
                        verbose_name="Prompt de sistema",
                    ),
                ),
                (
                    "report_prompt",
                    models.TextField(
                        blank=True,
                        default="",
                        help_text=(
                            "Placeholders: {{PERIODO_INICIO}}, {{PERIODO_FIM}}, {{TIPO}}, "
                            "{{ESCOPOS}}, {{DADOS}}."
                        ),
                        verbose_name="Prompt do relatorio",
                    ),
                ),
            ],
            options={
                "verbose_name": "Configuracao de IA",
                "verbose_name_plural": "Configuracoes de IA",
            },
        ),
        migrations.CreateModel(
            name="IntegrationSettings",
            fields=[
                _id(),
                *_timestamps(),
                (
                    "asaas_api_key",
                    models.CharField(blank=True, default="", max_length=255, verbose_name="Asaas API Key"),
                ),
                (
                    "asaas_env",
                    models.CharField(
                        blank=True,
                        choices=[("production", "Producao"), ("sandbox", "Sandbox")],
                        default="",
                        max_length=20,
                        verbose_name="Ambiente Asaas",
                    ),
                ),
                (
                    "hotmart_client_id",
                    models.CharField(blank=True, default="", max_length=255, verbose_name="Hotmart Client ID"),
                ),
                (
                    "hotmart_client_secret",
                    models.CharField(blank=True, default="", max_length=255, verbose_name="Hotmart Client Secret"),
                ),
            ],
            options={
                "verbose_name": "Configuracao de integracoes",
                "verbose_name_plural": "Configuracoes de integracoes",
            },
        ),
        migrations.CreateModel(
            name="Notification",
            fields=[
                _id(),
                *_timestamps(),
                ("title", models.CharField(max_length=200, verbose_name="Titulo")),
                ("message", models.TextField(blank=True, verbose_name="Mensagem")),
                (
                    "notification_type",
                    models.CharField(
                        choices=[
                            ("info", "Informacao"),
                            ("success", "Sucesso"),
                            ("warning", "Aviso"),
                            ("alert", "Alerta"),
                        ],
                        default="info",
                        max_length=20,
                        verbose_name="Tipo",
                    ),
                ),
                ("link", models.CharField(blank=True, max_length=255, verbose_name="Link")),
                ("read_at", models.DateTimeField(blank=True, null=True, verbose_name="Lida em")),
                (
                    "recipient",
                    _user_fk(
                        "notifications",
                        "Destinatario",
                        on_delete=django.db.models.deletion.CASCADE,
                        nullable=False,
                    ),
                ),
                ("sender", _user_fk("sent_notifications", "Remetente")),
            ],
            options={
                "verbose_name": "Notificacao",
                "verbose_name_plural": "Notificacoes",
                "ordering": ("-created_at",),
            },
        ),
        migrations.CreateModel(
            name="Product",
            fields=[
                _id(),
                *_timestamps(),
                ("name", models.CharField(max_length=200, verbose_name="Nome")),
                ("description", models.TextField(blank=True, verbose_name="Descricao")),
                (
                    "price",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12, verbose_name="Preco"),
                ),
                (
                    "default_commission_percent",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("10"),
                        max_digits=5,
                        validators=PERCENT_VALIDATORS,
                        verbose_name="Comissao padrao (%)",
                    ),
                ),
                ("is_active", models.BooleanField(default=True, verbose_name="Ativo")),
                (
                    "hotmart_id",
                    models.CharField(blank=True, db_index=True, default="", max_length=60, verbose_name="ID Hotmart"),
                ),
                (
                    "hotmart_ucode",
                    models.CharField(blank=True, default="", max_length=80, verbose_name="UCode Hotmart"),
                ),
            ],
            options={
                "verbose_name": "Produto",
                "verbose_name_plural": "Produtos",
                "ordering": ("name",),
            },
        ),
        migrations.CreateModel(
            name="Sale",
            fields=[
                _id(),
                *_timestamps(),
                ("external_id", models.CharField(max_length=120, unique=True, verbose_name="ID externo")),
                ("client_name", models.CharField(max_length=200, verbose_name="Cliente")),
                ("client_email", models.EmailField(blank=True, max_length=254, verbose_name="E-mail do cliente")),
                ("client_phone", models.CharField(blank=True, max_length=40, verbose_name="Telefone do cliente")),
                ("product_name", models.CharField(blank=True, max_length=200, verbose_name="Nome do produto")),
                (
                    "total_value",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=12,
                        validators=[django.core.validators.MinValueValidator(Decimal("0"))],
                        verbose_name="Valor total",
                    ),
                ),
                (
                    "installments_count",
                    models.PositiveSmallIntegerField(
                        default=1,
                        validators=[django.core.validators.MinValueValidator(1)],
                        verbose_name="Quantidade de parcelas",
                    ),
                ),
                (
                    "platform",
                    models.CharField(
                        choices=SALE_PLATFORM_CHOICES,
                        default="manual",
                        max_length=20,
                        verbose_name="Plataforma",
                    ),
                ),
                (
                    "commission_percent",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("10"),
                        max_digits=5,
                        validators=PERCENT_VALIDATORS,
                        verbose_name="Comissao (%)",
                    ),
                ),
                ("sale_date", models.DateField(verbose_name="Data da venda")),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Ativa"), ("cancelled", "Cancelada")],
                        default="active",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                ("proof_link", models.URLField(blank=True, verbose_name="Comprovante")),
                ("payment_type", models.CharField(blank=True, max_length=40, verbose_name="Forma de pagamento")),
                ("tracking_source", models.CharField(blank=True, max_length=120, verbose_name="Origem (source)")),
                ("tracking_sck", models.CharField(blank=True, max_length=120, verbose_name="SCK")),
                (
                    "tracking_external_code",
                    models.CharField(blank=True, max_length=120, verbose_name="Codigo externo de rastreio"),
                ),
                (
                    "product",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sales",
                        to="operacoes.product",
                        verbose_name="Produto",
                    ),
                ),
                ("seller", _user_fk("sales", "Vendedor")),
                ("created_by", _user_fk("sales_created", "Criado por")),
            ],
            options={
                "verbose_name": "Venda",
                "verbose_name_plural": "Vendas",
                "ordering": ("-sale_date", "-id"),
            },
        ),
        migrations.CreateModel(
            name="Installment",
            fields=[
                _id(),
                *_timestamps(),
                ("installment_number", models.PositiveSmallIntegerField(verbose_name="Parcela")),
                ("total_installments", models.PositiveSmallIntegerField(default=1, verbose_name="Total de parcelas")),
                ("value", models.DecimalField(decimal_places=2, max_digits=12, verbose_name="Valor")),
                ("due_date", models.DateField(verbose_name="Vencimento")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pendente"),
                            ("paid", "Paga"),
                            ("overdue", "Atrasada"),
                            ("cancelled", "Cancelada"),
                            ("refunded", "Estornada"),
                            ("chargeback", "Chargeback"),
                        ],
                        default="pending",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                ("payment_date", models.DateField(blank=True, null=True, verbose_name="Data de pagamento")),
                (
                    "sale",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="installments",
                        to="operacoes.sale",
                        verbose_name="Venda",
                    ),
                ),
            ],
            options={
                "verbose_name": "Parcela",
                "verbose_name_plural": "Parcelas",
                "ordering": ("sale", "installment_number"),
                "constraints": [
                    models.UniqueConstraint(
                        fields=("sale", "installment_number"),
                        name="unique_installment_per_sale",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Commission",
            fields=[
                _id(),
                *_timestamps(),
                (
                    "installment_value",
                    models.DecimalField(decimal_places=2, max_digits=12, verbose_name="Valor da parcela"),
                ),
                ("commission_percent", models.DecimalField(decimal_places=2, max_digits=5, verbose_name="Comissao (%)")),
                (
                    "commission_value",
                    models.DecimalField(decimal_places=2, max_digits=12, verbose_name="Valor da comissao"),
                ),
                ("competence_month", models.DateField(verbose_name="Competencia")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pendente"),
                            ("released", "Liberada"),
                            ("suspended", "Suspensa"),
                            ("cancelled", "Cancelada"),
                        ],
                        default="pending",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                ("released_at", models.DateTimeField(blank=True, null=True, verbose_name="Liberada em")),
                (
                    "installment",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="commission",
                        to="operacoes.installment",
                        verbose_name="Parcela",
                    ),
                ),
                (
                    "seller",
                    _user_fk(
                        "commissions",
                        "Vendedor",
                        on_delete=django.db.models.deletion.CASCADE,
                        nullable=False,
                    ),
                ),
            ],
            options={
                "verbose_name": "Comissao",
                "verbose_name_plural": "Comissoes",
                "ordering": ("-competence_month", "-id"),
            },
        ),
        migrations.CreateModel(
            name="SalesImportLog",
            fields=[
                _id(),
                *_timestamps(),
                ("filename", models.CharField(blank=True, max_length=255, verbose_name="Arquivo")),
                (
                    "platform",
                    models.CharField(choices=SALE_PLATFORM_CHOICES, max_length=20, verbose_name="Plataforma"),
                ),
                (
                    "source",
                    models.CharField(
                        choices=[("csv", "Arquivo"), ("api", "API"), ("scheduled", "Agendada")],
                        default="csv",
                        max_length=20,
                        verbose_name="Origem",
                    ),
                ),
                ("records_processed", models.PositiveIntegerField(default=0, verbose_name="Processados")),
                ("records_created", models.PositiveIntegerField(default=0, verbose_name="Criados")),
                ("records_updated", models.PositiveIntegerField(default=0, verbose_name="Atualizados")),
                ("records_failed", models.PositiveIntegerField(default=0, verbose_name="Falhas")),
                ("error_log", models.JSONField(blank=True, default=list, verbose_name="Erros")),
                ("imported_by", _user_fk("sales_imports", "Importado por")),
            ],
            options={
                "verbose_name": "Importacao de vendas",
                "verbose_name_plural": "Importacoes de vendas",
                "ordering": ("-created_at",),
            },
        ),
        migrations.CreateModel(
            name="HotmartSyncLog",
            fields=[
                _id(),
                *_timestamps(),
                ("sync_type", models.CharField(default="scheduled", max_length=30, verbose_name="Tipo")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("running", "Em execucao"),
                            ("success", "Sucesso"),
                            ("partial", "Parcial"),
                            ("error", "Erro"),
                        ],
                        default="running",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                ("started_at", models.DateTimeField(default=django.utils.timezone.now, verbose_name="Inicio")),
                ("completed_at", models.DateTimeField(blank=True, null=True, verbose_name="Fim")),
                ("period_start", models.DateTimeField(blank=True, null=True, verbose_name="Periodo inicio")),
                ("period_end", models.DateTimeField(blank=True, null=True, verbose_name="Periodo fim")),
                ("total_fetched", models.PositiveIntegerField(default=0, verbose_name="Recebidos")),
                ("records_created", models.PositiveIntegerField(default=0, verbose_name="Criados")),
                ("records_updated", models.PositiveIntegerField(default=0, verbose_name="Atualizados")),
                ("records_failed", models.PositiveIntegerField(default=0, verbose_name="Falhas")),
                ("error_message", models.TextField(blank=True, verbose_name="Erro")),
                ("details", models.JSONField(blank=True, default=dict, verbose_name="Detalhes")),
            ],
            options={
                "verbose_name": "Log de sincronizacao Hotmart",
                "verbose_name_plural": "Logs de sincronizacao Hotmart",
                "ordering": ("-started_at",),
            },
        ),
        migrations.CreateModel(
            name="Task",
            fields=[
                _id(),
                *_timestamps(),
                ("title", models.CharField(max_length=255, verbose_name="Titulo")),
                ("description", models.TextField(blank=True, verbose_name="Descricao")),
                (
                    "priority",
                    models.CharField(
                        choices=[("alta", "Alta"), ("media", "Media"), ("baixa", "Baixa")],
                        default="media",
                        max_length=10,
                        verbose_name="Prioridade",
                    ),
                ),
                ("category", models.CharField(blank=True, max_length=80, verbose_name="Categoria")),
                ("due_date", models.DateField(blank=True, null=True, verbose_name="Prazo")),
                ("due_time", models.TimeField(blank=True, null=True, verbose_name="Horario")),
                ("completed", models.BooleanField(default=False, verbose_name="Concluida")),
                ("completed_at", models.DateTimeField(blank=True, null=True, verbose_name="Concluida em")),
                ("position", models.PositiveIntegerField(default=0, verbose_name="Ordem")),
                (
                    "recurrence",
                    models.CharField(
                        choices=[
                            ("none", "Sem recorrencia"),
                            ("daily", "Diaria"),
                            ("weekly", "Semanal"),
                            ("biweekly", "Quinzenal"),
                            ("monthly", "Mensal"),
                            ("semiannual", "Semestral"),
                            ("yearly", "Anual"),
                        ],
                        default="none",
                        max_length=20,
                        verbose_name="Recorrencia",
                    ),
                ),
                ("recurrence_end_date", models.DateField(blank=True, null=True, verbose_name="Fim da recorrencia")),
                ("is_recurring_instance", models.BooleanField(default=False, verbose_name="Instancia recorrente")),
                ("assignee", _user_fk("assigned_tasks", "Responsavel")),
                ("created_by", _user_fk("created_tasks", "Criado por")),
                (
                    "parent_task",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="recurring_instances",
                        to="operacoes.task",
                        verbose_name="Tarefa de origem",
                    ),
                ),
            ],
            options={
                "verbose_name": "Tarefa",
                "verbose_name_plural": "Tarefas",
                "ordering": ("completed", "due_date", "position", "id"),
            },
        ),
        migrations.CreateModel(
            name="Subtask",
            fields=[
                _id(),
                *_timestamps(),
                ("title", models.CharField(max_length=255, verbose_name="Titulo")),
                ("completed", models.BooleanField(default=False, verbose_name="Concluida")),
                ("position", models.PositiveIntegerField(default=0, verbose_name="Ordem")),
                (
                    "task",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="subtasks",
                        to="operacoes.task",
                        verbose_name="Tarefa",
                    ),
                ),
            ],
            options={
                "verbose_name": "Subtarefa",
                "verbose_name_plural": "Subtarefas",
                "ordering": ("position", "id"),
            },
        ),
        migrations.CreateModel(
            name="TaskComment",
            fields=[
                _id(),
                *_timestamps(),
                ("content", models.TextField(verbose_name="Comentario")),
                ("author", _user_fk("task_comments", "Autor")),
                (
                    "task",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="comments",
                        to="operacoes.task",
                        verbose_name="Tarefa",
                    ),
                ),
            ],
            options={
                "verbose_name": "Comentario de tarefa",
                "verbose_name_plural": "Comentarios de tarefa",
                "ordering": ("created_at",),
            },
        ),
        migrations.CreateModel(
            name="TaskHistory",
            fields=[
                _id(),
                *_timestamps(),
                ("action", models.CharField(max_length=40, verbose_name="Acao")),
                ("field_changed", models.CharField(blank=True, max_length=60, verbose_name="Campo")),
                ("old_value", models.TextField(blank=True, verbose_name="Valor anterior")),
                ("new_value", models.TextField(blank=True, verbose_name="Novo valor")),
                (
                    "task",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="history",
                        to="operacoes.task",
                        verbose_name="Tarefa",
                    ),
                ),
                ("user", _user_fk("task_history", "Usuario")),
            ],
            options={
                "verbose_name": "Historico de tarefa",
                "verbose_name_plural": "Historico de tarefas",
                "ordering": ("-created_at",),
            },
        ),
        migrations.CreateModel(
            name="Ticket",
            fields=[
                _id(),
                *_timestamps(),
                ("number", models.PositiveIntegerField(editable=False, unique=True, verbose_name="Numero")),
                ("client_name", models.CharField(max_length=200, verbose_name="Cliente")),
                ("client_email", models.EmailField(blank=True, max_length=254, verbose_name="E-mail do cliente")),
                ("client_whatsapp", models.CharField(blank=True, max_length=40, verbose_name="WhatsApp do cliente")),
                (
                    "client_instagram",
                    models.CharField(blank=True, max_length=80, verbose_name="Instagram do cliente"),
                ),
                (
                    "origin",
                    models.CharField(
                        choices=[
                            ("whatsapp", "WhatsApp"),
                            ("email", "E-mail"),
                            ("instagram", "Instagram"),
                            ("telefone", "Telefone"),
                            ("site", "Site"),
                            ("outro", "Outro"),
                        ],
                        default="whatsapp",
                        max_length=20,
                        verbose_name="Origem",
                    ),
                ),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("duvida", "Duvida"),
                            ("suporte_tecnico", "Suporte tecnico"),
                            ("financeiro", "Financeiro"),
                            ("acesso", "Acesso"),
                            ("reclamacao", "Reclamacao"),
                            ("sugestao", "Sugestao"),
                            ("outro", "Outro"),
                        ],
                        default="duvida",
                        max_length=30,
                        verbose_name="Categoria",
                    ),
                ),
                ("description", models.TextField(verbose_name="Descricao")),
                (
                    "priority",
                    models.CharField(
                        choices=[("critica", "Critica"), ("alta", "Alta"), ("media", "Media"), ("baixa", "Baixa")],
                        default="media",
                        max_length=10,
                        verbose_name="Prioridade",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("aberto", "Aberto"),
                            ("em_atendimento", "Em atendimento"),
                            ("aguardando_cliente", "Aguardando cliente"),
                            ("escalado", "Escalado"),
                            ("resolvido", "Resolvido"),
                            ("encerrado", "Encerrado"),
                        ],
                        default="aberto",
                        max_length=30,
                        verbose_name="Status",
                    ),
                ),
                ("sla_deadline", models.DateTimeField(blank=True, null=True, verbose_name="Limite SLA")),
                (
                    "first_response_at",
                    models.DateTimeField(blank=True, null=True, verbose_name="Primeira resposta em"),
                ),
                ("closed_at", models.DateTimeField(blank=True, null=True, verbose_name="Encerrado em")),
                (
                    "resolution_minutes",
                    models.PositiveIntegerField(blank=True, null=True, verbose_name="Tempo de resolucao (min)"),
                ),
                ("solution_description", models.TextField(blank=True, verbose_name="Solucao")),
                ("responsible", _user_fk("tickets_responsible", "Responsavel")),
                ("created_by", _user_fk("tickets_created", "Criado por")),
                (
                    "linked_task",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="ticket",
                        to="operacoes.task",
                        verbose_name="Tarefa vinculada",
                    ),
                ),
            ],
            options={
                "verbose_name": "Ticket",
                "verbose_name_plural": "Tickets",
                "ordering": ("-number",),
            },
        ),
        migrations.CreateModel(
            name="TicketLog",
            fields=[
                _id(),
                ("action", models.CharField(max_length=40, verbose_name="Acao")),
                ("description", models.TextField(blank=True, verbose_name="Descricao")),
                ("field_changed", models.CharField(blank=True, max_length=60, verbose_name="Campo")),
                ("old_value", models.TextField(blank=True, verbose_name="Valor anterior")),
                ("new_value", models.TextField(blank=True, verbose_name="Novo valor")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Criado em")),
                (
                    "ticket",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="logs",
                        to="operacoes.ticket",
                        verbose_name="Ticket",
                    ),
                ),
                ("user", _user_fk("ticket_logs", "Usuario")),
            ],
            options={
                "verbose_name": "Log de ticket",
                "verbose_name_plural": "Logs de ticket",
                "ordering": ("-created_at", "-id"),
            },
        ),
        migrations.CreateModel(
            name="TicketAttachment",
            fields=[
                _id(),
                *_timestamps(),
                ("file", models.FileField(upload_to="tickets/anexos/", verbose_name="Arquivo")),
                ("file_name", models.CharField(blank=True, max_length=255, verbose_name="Nome do arquivo")),
                (
                    "ticket",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="attachments",
                        to="operacoes.ticket",
                        verbose_name="Ticket",
                    ),
                ),
                ("uploaded_by", _user_fk("ticket_attachments", "Enviado por")),
            ],
            options={
                "verbose_name": "Anexo de ticket",
                "verbose_name_plural": "Anexos de ticket",
            },
        ),
        migrations.CreateModel(
            name="OKRCycle",
            fields=[
                _id(),
                *_timestamps(),
                ("name", models.CharField(max_length=120, verbose_name="Nome")),
                ("start_date", models.DateField(verbose_name="Inicio")),
                ("end_date", models.DateField(verbose_name="Fim")),
                ("is_active", models.BooleanField(default=True, verbose_name="Ativo")),
            ],
            options={
                "verbose_name": "Ciclo de OKR",
                "verbose_name_plural": "Ciclos de OKR",
                "ordering": ("-start_date",),
            },
        ),
        migrations.CreateModel(
            name="OKRObjective",
            fields=[
                _id(),
                *_timestamps(),
                ("title", models.CharField(max_length=255, verbose_name="Titulo")),
                ("description", models.TextField(blank=True, verbose_name="Descricao")),
                ("color", models.CharField(default="#3b82f6", max_length=20, verbose_name="Cor")),
                ("order_index", models.PositiveIntegerField(default=0, verbose_name="Ordem")),
                (
                    "cycle",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="objectives",
                        to="operacoes.okrcycle",
                        verbose_name="Ciclo",
                    ),
                ),
                ("owner", _user_fk("okr_objectives", "Dono")),
            ],
            options={
                "verbose_name": "Objetivo",
                "verbose_name_plural": "Objetivos",
                "ordering": ("order_index", "id"),
            },
        ),
        migrations.CreateModel(
            name="OKRKeyResult",
            fields=[
                _id(),
                *_timestamps(),
                ("title", models.CharField(max_length=255, verbose_name="Titulo")),
                (
                    "target_value",
                    models.DecimalField(decimal_places=2, default=Decimal("100"), max_digits=14, verbose_name="Meta"),
                ),
                (
                    "current_value",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0"),
                        max_digits=14,
                        verbose_name="Valor atual",
                    ),
                ),
                ("unit", models.CharField(blank=True, default="%", max_length=30, verbose_name="Unidade")),
                ("order_index", models.PositiveIntegerField(default=0, verbose_name="Ordem")),
                (
                    "objective",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="key_results",
                        to="operacoes.okrobjective",
                        verbose_name="Objetivo",
                    ),
                ),
                ("owner", _user_fk("okr_key_results", "Dono")),
            ],
            options={
                "verbose_name": "Resultado-chave",
                "verbose_name_plural": "Resultados-chave",
                "ordering": ("order_index", "id"),
            },
        ),
        migrations.CreateModel(
            name="MentoringProcess",
            fields=[
                _id(),
                *_timestamps(),
                ("name", models.CharField(max_length=200, verbose_name="Nome")),
                ("description", models.TextField(blank=True, verbose_name="Descricao")),
                ("created_by", _user_fk("mentoring_processes", "Criado por")),
            ],
            options={
                "verbose_name": "Processo de mentoria",
                "verbose_name_plural": "Processos de mentoria",
                "ordering": ("name",),
            },
        ),
        migrations.CreateModel(
            name="MentoringStage",
            fields=[
                _id(),
                *_timestamps(),
                ("name", models.CharField(max_length=200, verbose_name="Nome")),
                ("position", models.PositiveIntegerField(default=0, verbose_name="Ordem")),
                (
                    "process",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stages",
                        to="operacoes.mentoringprocess",
                        verbose_name="Processo",
                    ),
                ),
            ],
            options={
                "verbose_name": "Etapa de mentoria",
                "verbose_name_plural": "Etapas de mentoria",
                "ordering": ("position", "id"),
            },
        ),
        migrations.CreateModel(
            name="MentoringTask",
            fields=[
                _id(),
                *_timestamps(),
                ("title", models.CharField(max_length=255, verbose_name="Titulo")),
                ("description", models.TextField(blank=True, verbose_name="Descricao")),
                ("position", models.PositiveIntegerField(default=0, verbose_name="Ordem")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pendente"),
                            ("in_progress", "Em andamento"),
                            ("completed", "Concluida"),
                        ],
                        default="pending",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                ("mentee_name", models.CharField(blank=True, max_length=200, verbose_name="Mentorado")),
                ("completed_at", models.DateTimeField(blank=True, null=True, verbose_name="Concluida em")),
                (
                    "parent_task",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="copies",
                        to="operacoes.mentoringtask",
                        verbose_name="Tarefa modelo",
                    ),
                ),
                (
                    "stage",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="tasks",
                        to="operacoes.mentoringstage",
                        verbose_name="Etapa",
                    ),
                ),
            ],
            options={
                "verbose_name": "Tarefa de mentoria",
                "verbose_name_plural": "Tarefas de mentoria",
                "ordering": ("position", "id"),
            },
        ),
        migrations.CreateModel(
            name="PDI",
            fields=[
                _id(),
                *_timestamps(),
                ("title", models.CharField(max_length=200, verbose_name="Titulo")),
                ("description", models.TextField(blank=True, verbose_name="Descricao")),
                ("deadline", models.DateField(verbose_name="Data limite")),
                (
                    "status",
                    models.CharField(
                        choices=[("ativo", "Ativo"), ("finalizado", "Finalizado"), ("atrasado", "Atrasado")],
                        default="ativo",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                ("finished_at", models.DateTimeField(blank=True, null=True, verbose_name="Finalizado em")),
                (
                    "collaborator",
                    _user_fk(
                        "pdis",
                        "Colaborador",
                        on_delete=django.db.models.deletion.CASCADE,
                        nullable=False,
                    ),
                ),
                ("created_by", _user_fk("pdis_created", "Criado por")),
            ],
            options={
                "verbose_name": "PDI",
                "verbose_name_plural": "PDIs",
                "ordering": ("deadline", "id"),
            },
        ),
        migrations.CreateModel(
            name="PDILesson",
            fields=[
                _id(),
                *_timestamps(),
                ("title", models.CharField(max_length=200, verbose_name="Titulo")),
                (
                    "origin",
                    models.CharField(
                        choices=[("interna", "Interna"), ("externa", "Externa")],
                        default="interna",
                        max_length=20,
                        verbose_name="Origem",
                    ),
                ),
                ("link", models.URLField(blank=True, verbose_name="Link")),
                ("duration_minutes", models.PositiveIntegerField(blank=True, null=True, verbose_name="Duracao (min)")),
                (
                    "status",
                    models.CharField(
                        choices=[("nao_iniciada", "Nao iniciada"), ("concluida", "Concluida")],
                        default="nao_iniciada",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                ("order", models.PositiveIntegerField(default=0, verbose_name="Ordem")),
                ("completed_at", models.DateTimeField(blank=True, null=True, verbose_name="Concluida em")),
                (
                    "pdi",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lessons",
                        to="operacoes.pdi",
                        verbose_name="PDI",
                    ),
                ),
            ],
            options={
                "verbose_name": "Aula de PDI",
                "verbose_name_plural": "Aulas de PDI",
                "ordering": ("order", "id"),
            },
        ),
        migrations.CreateModel(
            name="PDIAccess",
            fields=[
                _id(),
                *_timestamps(),
                ("name", models.CharField(max_length=200, verbose_name="Nome")),
                ("category", models.CharField(blank=True, max_length=80, verbose_name="Categoria")),
                ("link", models.URLField(blank=True, verbose_name="Link")),
                (
                    "pdi",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="accesses",
                        to="operacoes.pdi",
                        verbose_name="PDI",
                    ),
                ),
            ],
            options={
                "verbose_name": "Acesso de PDI",
                "verbose_name_plural": "Acessos de PDI",
                "ordering": ("name",),
            },
        ),
        migrations.CreateModel(
            name="Event",
            fields=[
                _id(),
                *_timestamps(),
                ("title", models.CharField(max_length=200, verbose_name="Titulo")),
                ("description", models.TextField(blank=True, verbose_name="Descricao")),
                ("event_date", models.DateField(verbose_name="Data")),
                ("event_time", models.TimeField(blank=True, null=True, verbose_name="Horario")),
                ("duration_minutes", models.PositiveIntegerField(default=60, verbose_name="Duracao (min)")),
                (
                    "event_type",
                    models.CharField(
                        choices=[
                            ("reuniao", "Reuniao"),
                            ("evento", "Evento"),
                            ("live", "Live"),
                            ("workshop", "Workshop"),
                            ("outro", "Outro"),
                        ],
                        default="reuniao",
                        max_length=20,
                        verbose_name="Tipo",
                    ),
                ),
                ("location", models.CharField(blank=True, max_length=200, verbose_name="Local")),
                ("meeting_link", models.URLField(blank=True, verbose_name="Link da reuniao")),
                ("color", models.CharField(default="#3b82f6", max_length=20, verbose_name="Cor")),
                ("created_by", _user_fk("events_created", "Criado por")),
                (
                    "participants",
                    models.ManyToManyField(
                        blank=True,
                        related_name="events",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Participantes",
                    ),
                ),
            ],
            options={
                "verbose_name": "Evento",
                "verbose_name_plural": "Eventos",
                "ordering": ("event_date", "event_time", "id"),
            },
        ),
        migrations.CreateModel(
            name="Sponsor",
            fields=[
                _id(),
                *_timestamps(),
                ("name", models.CharField(max_length=200, verbose_name="Nome")),
                ("contact_name", models.CharField(blank=True, max_length=200, verbose_name="Contato")),
                ("contact_email", models.EmailField(blank=True, max_length=254, verbose_name="E-mail")),
                ("contact_phone", models.CharField(blank=True, max_length=40, verbose_name="Telefone")),
                ("segment", models.CharField(blank=True, max_length=120, verbose_name="Segmento")),
                ("city", models.CharField(blank=True, max_length=120, verbose_name="Cidade")),
                (
                    "stage",
                    models.CharField(
                        choices=SPONSOR_STAGE_CHOICES,
                        default="possiveis_patrocinadores",
                        max_length=40,
                        verbose_name="Etapa",
                    ),
                ),
                (
                    "proposal_value",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        max_digits=12,
                        null=True,
                        verbose_name="Valor da proposta",
                    ),
                ),
                ("next_followup_date", models.DateField(blank=True, null=True, verbose_name="Proximo follow-up")),
                ("notes", models.TextField(blank=True, verbose_name="Observacoes")),
                (
                    "events",
                    models.ManyToManyField(
                        blank=True,
                        related_name="sponsors",
                        to="operacoes.event",
                        verbose_name="Eventos",
                    ),
                ),
            ],
            options={
                "verbose_name": "Patrocinador",
                "verbose_name_plural": "Patrocinadores",
                "ordering": ("name",),
            },
        ),
        migrations.CreateModel(
            name="SponsorStageHistory",
            fields=[
                _id(),
                (
                    "from_stage",
                    models.CharField(
                        blank=True,
                        choices=SPONSOR_STAGE_CHOICES,
                        max_length=40,
                        verbose_name="Etapa anterior",
                    ),
                ),
                (
                    "to_stage",
                    models.CharField(choices=SPONSOR_STAGE_CHOICES, max_length=40, verbose_name="Nova etapa"),
                ),
                ("changed_at", models.DateTimeField(auto_now_add=True, verbose_name="Alterado em")),
                ("changed_by", _user_fk("sponsor_stage_changes", "Alterado por")),
                (
                    "sponsor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stage_history",
                        to="operacoes.sponsor",
                        verbose_name="Patrocinador",
                    ),
                ),
            ],
            options={
                "verbose_name": "Historico de etapa",
                "verbose_name_plural": "Historico de etapas",
                "ordering": ("-changed_at", "-id"),
            },
        ),
        migrations.CreateModel(
            name="SocialPost",
            fields=[
                _id(),
                *_timestamps(),
                ("profile", models.CharField(blank=True, max_length=120, verbose_name="Perfil")),
                ("theme", models.CharField(max_length=255, verbose_name="Tema")),
                (
                    "post_type",
                    models.CharField(
                        choices=[
                            ("feed", "Feed"),
                            ("reels", "Reels"),
                            ("stories", "Stories"),
                            ("carrossel", "Carrossel"),
                        ],
                        default="feed",
                        max_length=20,
                        verbose_name="Formato",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("ideia", "Ideia"),
                            ("roteiro", "Roteiro"),
                            ("gravacao", "Gravacao"),
                            ("edicao", "Edicao"),
                            ("agendado", "Agendado"),
                            ("publicado", "Publicado"),
                        ],
                        default="ideia",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                ("scheduled_date", models.DateField(blank=True, null=True, verbose_name="Data de publicacao")),
                ("caption", models.TextField(blank=True, verbose_name="Legenda")),
                ("assignee", _user_fk("social_posts", "Responsavel")),
            ],
            options={
                "verbose_name": "Post",
                "verbose_name_plural": "Posts",
                "ordering": ("scheduled_date", "id"),
            },
        ),
        migrations.CreateModel(
            name="Funnel",
            fields=[
                _id(),
                *_timestamps(),
                ("name", models.CharField(max_length=200, verbose_name="Nome")),
                ("status", models.CharField(blank=True, max_length=60, verbose_name="Status")),
                ("capture_start", models.DateField(blank=True, null=True, verbose_name="Inicio da captacao")),
                ("capture_end", models.DateField(blank=True, null=True, verbose_name="Fim da captacao")),
                ("notes", models.TextField(blank=True, verbose_name="Observacoes")),
            ],
            options={
                "verbose_name": "Funil",
                "verbose_name_plural": "Funis",
                "ordering": ("-capture_start", "name"),
            },
        ),
        migrations.CreateModel(
            name="Report",
            fields=[
                _id(),
                *_timestamps(),
                ("title", models.CharField(max_length=200, verbose_name="Titulo")),
                (
                    "report_type",
                    models.CharField(
                        choices=[
                            ("weekly", "Semanal"),
                            ("event", "Evento"),
                            ("commercial", "Comercial"),
                            ("operational", "Operacional"),
                            ("custom", "Personalizado"),
                        ],
                        default="custom",
                        max_length=20,
                        verbose_name="Tipo",
                    ),
                ),
                ("period_start", models.DateField(verbose_name="Inicio do periodo")),
                ("period_end", models.DateField(verbose_name="Fim do periodo")),
                ("scope", models.JSONField(default=list, verbose_name="Escopo")),
                ("filters", models.JSONField(blank=True, default=dict, verbose_name="Filtros")),
                ("content_markdown", models.TextField(blank=True, verbose_name="Conteudo")),
                (
                    "consolidated_data",
                    models.JSONField(blank=True, default=dict, verbose_name="Dados consolidados"),
                ),
                ("ai_suggestions", models.JSONField(blank=True, default=list, verbose_name="Sugestoes")),
                (
                    "status",
                    models.CharField(
                        choices=[("generating", "Gerando"), ("completed", "Concluido"), ("error", "Erro")],
                        default="generating",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                ("error_message", models.TextField(blank=True, verbose_name="Erro")),
                ("generated_at", models.DateTimeField(blank=True, null=True, verbose_name="Gerado em")),
                ("generated_by", _user_fk("reports", "Gerado por")),
            ],
            options={
                "verbose_name": "Relatorio",
                "verbose_name_plural": "Relatorios",
                "ordering": ("-created_at",),
            },
        ),
    ]
