"""
ProductionEvent model.

Free-form log of what happened on the line during a run (problems,
downtimes, shift changes...). Events belong to the run, not to a batch.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class EventType(models.TextChoices):
    PROBLEM = "problem", _("Problema")
    DOWNTIME = "downtime", _("Parada")
    SHIFT_CHANGE = "shift_change", _("Troca de Turno")
    TRANSITION = "transition", _("Transição")
    BREAKDOWN = "breakdown", _("Quebra")
    OTHER = "other", _("Outro")


class ProductionEvent(models.Model):
    """Evento de produção registrado pelo operador."""

    run = models.ForeignKey(
        "batchline.Run",
        on_delete=models.CASCADE,
        related_name="events",
        verbose_name=_("Produção"),
    )
    event_type = models.CharField(
        max_length=20,
        choices=EventType.choices,
        verbose_name=_("Tipo"),
    )
    description = models.TextField(
        blank=True,
        verbose_name=_("Descrição"),
    )
    author = models.CharField(
        max_length=255,
        blank=True,
        verbose_name=_("Autor"),
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name=_("Criado em"),
    )

    class Meta:
        db_table = "batchline_production_event"
        verbose_name = _("Evento de Produção")
        verbose_name_plural = _("Eventos de Produção")
        ordering = ["created_at", "id"]

    def __str__(self) -> str:
        return f"{self.get_event_type_display()}: {self.description[:50]}"
