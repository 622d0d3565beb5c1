from dataclasses import replace

from django.core.management.base import BaseCommand, CommandError

from countries.config import RefreshConfig
from countries.exceptions import RefreshError
from countries.services import refresh_all


class Command(BaseCommand):
    help = "Fetch the countries and exchange-rate feeds and refresh stored countries."

    def add_arguments(self, parser):
        parser.add_argument("--chunk-size", type=int, help="Records written per chunk")

    def handle(self, *args, **options):
        config = RefreshConfig.from_settings()
        if options.get("chunk_size"):
            config = replace(config, chunk_size=options["chunk_size"])

        try:
            result = refresh_all(config)
        except RefreshError as exc:
            raise CommandError(f"{exc.error}: {exc.details}") from exc

        self.stdout.write(self.style.SUCCESS(
            f"Refreshed {result.total} countries "
            f"({result.written} written, {result.failed} failed) at {result.last_refreshed_at.isoformat()}"
        ))
        if result.image_path:
            self.stdout.write(f"Summary image: {result.image_path}")
