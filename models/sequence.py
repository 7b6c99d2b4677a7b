"""
Code sequence for atomic Run and AdjustmentOrder code generation.

An atomic counter using SELECT FOR UPDATE, one row per prefix.
"""

from django.db import models, transaction
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class CodeSequence(models.Model):
    """
    Atomic counter for generating sequential codes.

    One row per (prefix), e.g. "RUN-2026" → last_value = 42.
    Thread-safe via SELECT FOR UPDATE.

    Usage (internal to Run.save / AdjustmentOrder.save):
        code = CodeSequence.next_code("RUN")
        # Returns "RUN-2026-00001", "RUN-2026-00002"...
    """

    prefix = models.CharField(
        max_length=50,
        unique=True,
        verbose_name=_("Prefixo"),
    )
    last_value = models.PositiveIntegerField(
        default=0,
        verbose_name=_("Último valor"),
    )

    class Meta:
        db_table = "batchline_code_sequence"
        verbose_name = _("Sequência de Código")
        verbose_name_plural = _("Sequências de Código")

    def __str__(self) -> str:
        return f"{self.prefix} → {self.last_value}"

    @classmethod
    def next_value(cls, prefix: str) -> int:
        """
        Atomically increment and return the next value for a prefix.

        Thread-safe: uses SELECT FOR UPDATE to prevent race conditions.
        """
        with transaction.atomic():
            seq, created = cls.objects.select_for_update().get_or_create(
                prefix=prefix, defaults={"last_value": 0}
            )
            seq.last_value += 1
            seq.save(update_fields=["last_value"])
            return seq.last_value

    @classmethod
    def next_code(cls, kind: str) -> str:
        """Generate code in format KIND-YYYY-NNNNN."""
        prefix = f"{kind}-{timezone.now().year}"
        return f"{prefix}-{cls.next_value(prefix):05d}"
