import pathlib

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from debentures.services.collector import execute_update
from debentures.services.sheets import SpreadsheetError


class Command(BaseCommand):
    help = "Busca o PU PAR das debêntures e atualiza a planilha do Google Sheets."

    def add_arguments(self, parser):
        parser.add_argument(
            "-g",
            "--google",
            default=settings.DEBENTURES_GOOGLE_CREDENTIALS,
            help="Caminho completo do JSON da conta de serviço do Google.",
        )

    def handle(self, *args, **options):
        if not options["google"]:
            raise CommandError("Informe --google ou defina DEBENTURES_GOOGLE_CREDENTIALS.")
        credentials_path = pathlib.Path(options["google"]).resolve()
        if not credentials_path.exists():
            raise CommandError(f"Caminho da credencial não existe: {credentials_path}")

        try:
            report = execute_update(credentials_path)
        except SpreadsheetError as exc:
            raise CommandError(str(exc)) from exc

        if report.errors:
            codes = ", ".join(error.asset_code for error in report.errors)
            raise CommandError(f"Verifique os erros registrados ({len(report.errors)}): {codes}")

        self.stdout.write(
            self.style.SUCCESS(
                f"Atualização concluída: {len(report.assets)} ativos"
                + (" (planilha gravada)" if report.changed else " (nada mudou)")
            )
        )
