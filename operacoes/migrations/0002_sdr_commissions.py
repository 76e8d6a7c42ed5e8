from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

COMMISSION_STATUS_CHOICES = [
    ("pending", "Pendente"),
    ("released", "Liberada"),
    ("suspended", "Suspensa"),
    ("cancelled", "Cancelada"),
]


class Migration(migrations.Migration):

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("operacoes", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="SDRAssignment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Criado em")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Atualizado em")),
                ("proof_link", models.URLField(max_length=500, verbose_name="Link de comprovacao")),
                (
                    "commission_percent",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("1"),
                        max_digits=5,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0")),
                            django.core.validators.MaxValueValidator(Decimal("100")),
                        ],
                        verbose_name="Comissao (%)",
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Aguardando aprovacao"),
                            ("approved", "Aprovada"),
                            ("rejected", "Rejeitada"),
                        ],
                        default="pending",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                ("approved_at", models.DateTimeField(blank=True, null=True, verbose_name="Aprovado em")),
                ("rejection_reason", models.TextField(blank=True, verbose_name="Motivo da rejeicao")),
                (
                    "approved_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sdr_approvals",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Aprovado por",
                    ),
                ),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="sdr_assignments_created",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Criado por",
                    ),
                ),
                (
                    "sale",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sdr_assignment",
                        to="operacoes.sale",
                        verbose_name="Venda",
                    ),
                ),
                (
                    "sdr",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sdr_assignments",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="SDR",
                    ),
                ),
            ],
            options={
                "verbose_name": "Atribuicao de SDR",
                "verbose_name_plural": "Atribuicoes de SDR",
                "ordering": ("-created_at",),
            },
        ),
        migrations.CreateModel(
            name="SDRCommission",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Criado em")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Atualizado em")),
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
                        choices=COMMISSION_STATUS_CHOICES,
                        default="pending",
                        max_length=20,
                        verbose_name="Status",
                    ),
                ),
                ("released_at", models.DateTimeField(blank=True, null=True, verbose_name="Liberada em")),
                (
                    "assignment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="commissions",
                        to="operacoes.sdrassignment",
                        verbose_name="Atribuicao",
                    ),
                ),
                (
                    "installment",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sdr_commission",
                        to="operacoes.installment",
                        verbose_name="Parcela",
                    ),
                ),
                (
                    "sdr",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="sdr_commissions",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="SDR",
                    ),
                ),
            ],
            options={
                "verbose_name": "Comissao de SDR",
                "verbose_name_plural": "Comissoes de SDR",
                "ordering": ("-competence_month", "-id"),
            },
        ),
    ]
