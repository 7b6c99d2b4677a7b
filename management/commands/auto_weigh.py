"""
Run the auto-weighing loop on the ongoing batch of a run.

Records the remaining quantity of every ingredient staged at the weighing
station, one at a time, and signs each one off. Stops on the first failed
recording or when nothing eligible is left.

Usage:
    python manage.py auto_weigh RUN-2026-00001
    python manage.py auto_weigh RUN-2026-00001 --latency 0.5 --user operador
"""

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError

User = get_user_model()


class Command(BaseCommand):
    help = "Executa a pesagem automática no lote em andamento de uma produção"

    def add_arguments(self, parser):
        parser.add_argument("run", help="Código da produção (RUN-YYYY-NNNNN)")
        parser.add_argument(
            "--latency",
            type=float,
            default=None,
            help="Segundos por pesagem (padrão: BATCHLINE['AUTO_WEIGH_SECONDS'])",
        )
        parser.add_argument(
            "--user",
            default=None,
            help="Usuário registrado nos lançamentos",
        )

    def handle(self, *args, **options):
        from batchline.models import Run
        from batchline.services.weighing import AutoWeigher

        run = Run.objects.filter(code=options["run"]).first()
        if run is None:
            raise CommandError(f"Produção {options['run']} não encontrada")

        batch = run.ongoing_batch
        if batch is None:
            raise CommandError(f"Produção {run.code} não tem lote em andamento")

        user = None
        if options["user"]:
            user = User.objects.filter(username=options["user"]).first()
            if user is None:
                raise CommandError(f"Usuário {options['user']} não encontrado")

        weigher = AutoWeigher(batch, latency=options["latency"], user=user)
        weigher.enable()
        self.stdout.write(f"Pesagem automática em {batch.code}...")

        try:
            done = weigher.run()
        except KeyboardInterrupt:
            weigher.disable()
            done = weigher.processed
            self.stdout.write(self.style.WARNING("Interrompido"))

        for ingredient in done:
            self.stdout.write(self.style.SUCCESS(f"   ✓ {ingredient}"))

        if weigher.last_error is not None:
            raise CommandError(f"Pesagem interrompida: {weigher.last_error}")

        pending = [p.name for p in batch.progress() if not p.weighing_finished]
        if pending:
            self.stdout.write(f"Pendentes: {', '.join(pending)}")
        else:
            self.stdout.write(self.style.SUCCESS(f"Todos os ingredientes de {batch.code} pesados"))
