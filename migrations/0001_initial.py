"""
Initial migration for Batchline.

Creates:
- CodeSequence
- Recipe, RecipeIngredient
- Run, Batch, ConsumptionEntry
- AdjustmentOrder, AdjustmentMaterial
- ProductionEvent
- History tracking for Recipe, Run, Batch and AdjustmentOrder
"""

import uuid

import django.db.models.deletion
import simple_history.models
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


RUN_STATUS = [
    ("planned", "Planejada"),
    ("ongoing", "Em Produção"),
    ("paused", "Pausada"),
    ("completed", "Concluída"),
]
BATCH_STATUS = [
    ("planned", "Planejado"),
    ("ongoing", "Em Andamento"),
    ("completed", "Concluído"),
]
NIRS_STATUS = [
    ("pending", "Pendente"),
    ("ok", "Aprovado"),
    ("nok", "Reprovado"),
]
SAMPLING_STATUS = [
    ("pending", "Pendente"),
    ("ok", "Coletada"),
]
ADJUSTMENT_STATUS = [
    ("planned", "Planejada"),
    ("material_picking", "Separação de Material"),
    ("processing", "Em Processamento"),
    ("completed", "Concluída"),
    ("cancelled", "Cancelada"),
]
EVENT_TYPES = [
    ("problem", "Problema"),
    ("downtime", "Parada"),
    ("shift_change", "Troca de Turno"),
    ("transition", "Transição"),
    ("breakdown", "Quebra"),
    ("other", "Outro"),
]


def history_fields():
    return [
        ("history_id", models.AutoField(primary_key=True, serialize=False)),
        ("history_date", models.DateTimeField(db_index=True)),
        ("history_change_reason", models.CharField(max_length=100, null=True)),
        (
            "history_type",
            models.CharField(
                choices=[("+", "Created"), ("~", "Changed"), ("-", "Deleted")],
                max_length=1,
            ),
        ),
        (
            "history_user",
            models.ForeignKey(
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="+",
                to=settings.AUTH_USER_MODEL,
            ),
        ),
    ]


def history_options(name, name_plural):
    return {
        "verbose_name": f"historical {name}",
        "verbose_name_plural": f"historical {name_plural}",
        "ordering": ("-history_date", "-history_id"),
        "get_latest_by": ("history_date", "history_id"),
    }


def history_fk(to):
    return models.ForeignKey(
        blank=True,
        db_constraint=False,
        null=True,
        on_delete=django.db.models.deletion.DO_NOTHING,
        related_name="+",
        to=to,
    )


def qty(verbose_name, **kwargs):
    return models.DecimalField(decimal_places=3, max_digits=12, verbose_name=verbose_name, **kwargs)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        # ══════════════════════════════════════════════════════════════
        # CODE SEQUENCE
        # ══════════════════════════════════════════════════════════════
        migrations.CreateModel(
            name="CodeSequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("prefix", models.CharField(max_length=50, unique=True, verbose_name="Prefixo")),
                ("last_value", models.PositiveIntegerField(default=0, verbose_name="Último valor")),
            ],
            options={
                "verbose_name": "Sequência de Código",
                "verbose_name_plural": "Sequências de Código",
                "db_table": "batchline_code_sequence",
            },
        ),
        # ══════════════════════════════════════════════════════════════
        # RECIPE
        # ══════════════════════════════════════════════════════════════
        migrations.CreateModel(
            name="Recipe",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True, verbose_name="UUID")),
                ("code", models.SlugField(unique=True, verbose_name="Código")),
                ("name", models.CharField(max_length=200, verbose_name="Nome")),
                ("is_active", models.BooleanField(default=True, verbose_name="Ativa")),
                ("notes", models.TextField(blank=True, verbose_name="Observações")),
                ("metadata", models.JSONField(blank=True, default=dict, verbose_name="Metadados")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Criado em")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Atualizado em")),
            ],
            options={
                "verbose_name": "Receita",
                "verbose_name_plural": "Receitas",
                "db_table": "batchline_recipe",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="RecipeIngredient",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, verbose_name="Ingrediente")),
                ("quantity", qty("Quantidade")),
                ("unit", models.CharField(default="kg", max_length=20, verbose_name="Unidade")),
                ("sort_order", models.PositiveSmallIntegerField(default=0, verbose_name="Ordem")),
                (
                    "recipe",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="ingredients",
                        to="batchline.recipe",
                        verbose_name="Receita",
                    ),
                ),
            ],
            options={
                "verbose_name": "Ingrediente da Receita",
                "verbose_name_plural": "Ingredientes da Receita",
                "db_table": "batchline_recipe_ingredient",
                "ordering": ["sort_order", "id"],
                "unique_together": {("recipe", "name")},
            },
        ),
        # ══════════════════════════════════════════════════════════════
        # RUN
        # ══════════════════════════════════════════════════════════════
        migrations.CreateModel(
            name="Run",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True, verbose_name="UUID")),
                ("code", models.CharField(blank=True, max_length=50, unique=True, verbose_name="Código")),
                ("target_weight", qty("Peso Total")),
                ("batch_size", qty("Tamanho do Lote", blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=RUN_STATUS, db_index=True, default="planned", max_length=20, verbose_name="Status"
                    ),
                ),
                ("started_at", models.DateTimeField(blank=True, null=True, verbose_name="Início Real")),
                ("completed_at", models.DateTimeField(blank=True, null=True, verbose_name="Fim Real")),
                ("metadata", models.JSONField(blank=True, default=dict, verbose_name="Metadados")),
                ("notes", models.TextField(blank=True, verbose_name="Observações")),
                ("created_by", models.CharField(blank=True, max_length=255, verbose_name="Criado por")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Criado em")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Atualizado em")),
                (
                    "recipe",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="runs",
                        to="batchline.recipe",
                        verbose_name="Receita",
                    ),
                ),
            ],
            options={
                "verbose_name": "Produção",
                "verbose_name_plural": "Produções",
                "db_table": "batchline_run",
                "ordering": ["-created_at"],
                "indexes": [models.Index(fields=["recipe", "status"], name="batchline_run_recipe_idx")],
            },
        ),
        migrations.CreateModel(
            name="ProductionEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("event_type", models.CharField(choices=EVENT_TYPES, max_length=20, verbose_name="Tipo")),
                ("description", models.TextField(blank=True, verbose_name="Descrição")),
                ("author", models.CharField(blank=True, max_length=255, verbose_name="Autor")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Criado em")),
                (
                    "run",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="events",
                        to="batchline.run",
                        verbose_name="Produção",
                    ),
                ),
            ],
            options={
                "verbose_name": "Evento de Produção",
                "verbose_name_plural": "Eventos de Produção",
                "db_table": "batchline_production_event",
                "ordering": ["created_at", "id"],
            },
        ),
        # ══════════════════════════════════════════════════════════════
        # BATCH
        # ══════════════════════════════════════════════════════════════
        migrations.CreateModel(
            name="Batch",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("number", models.PositiveIntegerField(verbose_name="Número")),
                ("target_weight", qty("Peso Alvo")),
                (
                    "status",
                    models.CharField(
                        choices=BATCH_STATUS, db_index=True, default="planned", max_length=20, verbose_name="Status"
                    ),
                ),
                ("nirs_status", models.CharField(choices=NIRS_STATUS, default="pending", max_length=10, verbose_name="NIRS")),
                ("nirs_recorded_at", models.DateTimeField(blank=True, null=True, verbose_name="NIRS registrado em")),
                (
                    "sampling_status",
                    models.CharField(choices=SAMPLING_STATUS, default="pending", max_length=10, verbose_name="Amostragem"),
                ),
                ("weighing_finished", models.JSONField(blank=True, default=list, verbose_name="Pesagem Concluída")),
                ("started_at", models.DateTimeField(blank=True, null=True, verbose_name="Início")),
                ("completed_at", models.DateTimeField(blank=True, null=True, verbose_name="Fim")),
                ("metadata", models.JSONField(blank=True, default=dict, verbose_name="Metadados")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Criado em")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Atualizado em")),
                (
                    "run",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="batches",
                        to="batchline.run",
                        verbose_name="Produção",
                    ),
                ),
            ],
            options={
                "verbose_name": "Lote",
                "verbose_name_plural": "Lotes",
                "db_table": "batchline_batch",
                "ordering": ["run", "number"],
                "constraints": [
                    models.UniqueConstraint(fields=("run", "number"), name="batchline_batch_unique_number"),
                    models.UniqueConstraint(
                        condition=models.Q(status="ongoing"),
                        fields=("run",),
                        name="batchline_batch_one_ongoing_per_run",
                    ),
                ],
            },
        ),
        # ══════════════════════════════════════════════════════════════
        # ADJUSTMENT ORDER
        # ══════════════════════════════════════════════════════════════
        migrations.CreateModel(
            name="AdjustmentOrder",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(blank=True, max_length=50, unique=True, verbose_name="Código")),
                (
                    "status",
                    models.CharField(
                        choices=ADJUSTMENT_STATUS, db_index=True, default="planned", max_length=20, verbose_name="Status"
                    ),
                ),
                ("staging_location", models.CharField(blank=True, max_length=100, verbose_name="Local de Preparação")),
                ("reason", models.TextField(blank=True, verbose_name="Motivo")),
                ("completed_at", models.DateTimeField(blank=True, null=True, verbose_name="Concluída em")),
                ("cancelled_at", models.DateTimeField(blank=True, null=True, verbose_name="Cancelada em")),
                ("metadata", models.JSONField(blank=True, default=dict, verbose_name="Metadados")),
                ("created_by", models.CharField(blank=True, max_length=255, verbose_name="Criado por")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Criado em")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Atualizado em")),
                (
                    "batch",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="adjustments",
                        to="batchline.batch",
                        verbose_name="Lote",
                    ),
                ),
            ],
            options={
                "verbose_name": "Ordem de Ajuste",
                "verbose_name_plural": "Ordens de Ajuste",
                "db_table": "batchline_adjustment_order",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="AdjustmentMaterial",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("ingredient", models.CharField(max_length=100, verbose_name="Ingrediente")),
                ("required_quantity", qty("Quantidade Necessária")),
                ("picked_quantity", qty("Quantidade Separada", default=Decimal("0"))),
                ("source_ref", models.CharField(blank=True, max_length=100, verbose_name="Origem")),
                ("sort_order", models.PositiveSmallIntegerField(default=0, verbose_name="Ordem")),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="materials",
                        to="batchline.adjustmentorder",
                        verbose_name="Ordem de Ajuste",
                    ),
                ),
            ],
            options={
                "verbose_name": "Material de Ajuste",
                "verbose_name_plural": "Materiais de Ajuste",
                "db_table": "batchline_adjustment_material",
                "ordering": ["sort_order", "id"],
            },
        ),
        # ══════════════════════════════════════════════════════════════
        # CONSUMPTION LEDGER
        # ══════════════════════════════════════════════════════════════
        migrations.CreateModel(
            name="ConsumptionEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("uuid", models.UUIDField(default=uuid.uuid4, editable=False, unique=True, verbose_name="UUID")),
                ("ingredient", models.CharField(db_index=True, max_length=100, verbose_name="Ingrediente")),
                ("source_ref", models.CharField(max_length=100, verbose_name="Origem")),
                ("quantity", qty("Quantidade")),
                ("is_annulled", models.BooleanField(default=False, verbose_name="Anulado")),
                ("annulled_at", models.DateTimeField(blank=True, null=True, verbose_name="Anulado em")),
                ("annulled_by", models.CharField(blank=True, max_length=255, verbose_name="Anulado por")),
                ("created_by", models.CharField(blank=True, max_length=255, verbose_name="Criado por")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="Criado em")),
                (
                    "batch",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="consumption_entries",
                        to="batchline.batch",
                        verbose_name="Lote",
                    ),
                ),
                (
                    "adjustment",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="entries",
                        to="batchline.adjustmentorder",
                        verbose_name="Ordem de Ajuste",
                    ),
                ),
            ],
            options={
                "verbose_name": "Lançamento de Consumo",
                "verbose_name_plural": "Lançamentos de Consumo",
                "db_table": "batchline_consumption_entry",
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(
                        fields=["batch", "ingredient", "is_annulled"],
                        name="batchline_entry_ledger_idx",
                    )
                ],
            },
        ),
        # ══════════════════════════════════════════════════════════════
        # HISTORY
        # ══════════════════════════════════════════════════════════════
        migrations.CreateModel(
            name="HistoricalRecipe",
            fields=[
                ("id", models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name="ID")),
                ("uuid", models.UUIDField(db_index=True, default=uuid.uuid4, editable=False, verbose_name="UUID")),
                ("code", models.SlugField(verbose_name="Código")),
                ("name", models.CharField(max_length=200, verbose_name="Nome")),
                ("is_active", models.BooleanField(default=True, verbose_name="Ativa")),
                ("notes", models.TextField(blank=True, verbose_name="Observações")),
                ("metadata", models.JSONField(blank=True, default=dict, verbose_name="Metadados")),
                ("created_at", models.DateTimeField(blank=True, editable=False, verbose_name="Criado em")),
                ("updated_at", models.DateTimeField(blank=True, editable=False, verbose_name="Atualizado em")),
                *history_fields(),
            ],
            options=history_options("Receita", "Receitas"),
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
        migrations.CreateModel(
            name="HistoricalRun",
            fields=[
                ("id", models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name="ID")),
                ("uuid", models.UUIDField(db_index=True, default=uuid.uuid4, editable=False, verbose_name="UUID")),
                ("code", models.CharField(blank=True, db_index=True, max_length=50, verbose_name="Código")),
                ("target_weight", qty("Peso Total")),
                ("batch_size", qty("Tamanho do Lote", blank=True, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=RUN_STATUS, db_index=True, default="planned", max_length=20, verbose_name="Status"
                    ),
                ),
                ("started_at", models.DateTimeField(blank=True, null=True, verbose_name="Início Real")),
                ("completed_at", models.DateTimeField(blank=True, null=True, verbose_name="Fim Real")),
                ("metadata", models.JSONField(blank=True, default=dict, verbose_name="Metadados")),
                ("notes", models.TextField(blank=True, verbose_name="Observações")),
                ("created_by", models.CharField(blank=True, max_length=255, verbose_name="Criado por")),
                ("created_at", models.DateTimeField(blank=True, editable=False, verbose_name="Criado em")),
                ("updated_at", models.DateTimeField(blank=True, editable=False, verbose_name="Atualizado em")),
                *history_fields(),
                ("recipe", history_fk("batchline.recipe")),
            ],
            options=history_options("Produção", "Produções"),
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
        migrations.CreateModel(
            name="HistoricalBatch",
            fields=[
                ("id", models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name="ID")),
                ("number", models.PositiveIntegerField(verbose_name="Número")),
                ("target_weight", qty("Peso Alvo")),
                (
                    "status",
                    models.CharField(
                        choices=BATCH_STATUS, db_index=True, default="planned", max_length=20, verbose_name="Status"
                    ),
                ),
                ("nirs_status", models.CharField(choices=NIRS_STATUS, default="pending", max_length=10, verbose_name="NIRS")),
                ("nirs_recorded_at", models.DateTimeField(blank=True, null=True, verbose_name="NIRS registrado em")),
                (
                    "sampling_status",
                    models.CharField(choices=SAMPLING_STATUS, default="pending", max_length=10, verbose_name="Amostragem"),
                ),
                ("weighing_finished", models.JSONField(blank=True, default=list, verbose_name="Pesagem Concluída")),
                ("started_at", models.DateTimeField(blank=True, null=True, verbose_name="Início")),
                ("completed_at", models.DateTimeField(blank=True, null=True, verbose_name="Fim")),
                ("metadata", models.JSONField(blank=True, default=dict, verbose_name="Metadados")),
                ("created_at", models.DateTimeField(blank=True, editable=False, verbose_name="Criado em")),
                ("updated_at", models.DateTimeField(blank=True, editable=False, verbose_name="Atualizado em")),
                *history_fields(),
                ("run", history_fk("batchline.run")),
            ],
            options=history_options("Lote", "Lotes"),
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
        migrations.CreateModel(
            name="HistoricalAdjustmentOrder",
            fields=[
                ("id", models.BigIntegerField(auto_created=True, blank=True, db_index=True, verbose_name="ID")),
                ("code", models.CharField(blank=True, db_index=True, max_length=50, verbose_name="Código")),
                (
                    "status",
                    models.CharField(
                        choices=ADJUSTMENT_STATUS, db_index=True, default="planned", max_length=20, verbose_name="Status"
                    ),
                ),
                ("staging_location", models.CharField(blank=True, max_length=100, verbose_name="Local de Preparação")),
                ("reason", models.TextField(blank=True, verbose_name="Motivo")),
                ("completed_at", models.DateTimeField(blank=True, null=True, verbose_name="Concluída em")),
                ("cancelled_at", models.DateTimeField(blank=True, null=True, verbose_name="Cancelada em")),
                ("metadata", models.JSONField(blank=True, default=dict, verbose_name="Metadados")),
                ("created_by", models.CharField(blank=True, max_length=255, verbose_name="Criado por")),
                ("created_at", models.DateTimeField(blank=True, editable=False, verbose_name="Criado em")),
                ("updated_at", models.DateTimeField(blank=True, editable=False, verbose_name="Atualizado em")),
                *history_fields(),
                ("batch", history_fk("batchline.batch")),
            ],
            options=history_options("Ordem de Ajuste", "Ordens de Ajuste"),
            bases=(simple_history.models.HistoricalChanges, models.Model),
        ),
    ]
