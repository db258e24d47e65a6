from django.core.management.base import BaseCommand

from hse_core.workflows.expiry import expire_due_licenses


class Command(BaseCommand):
    help = "Expire every non-terminal license whose expiry date has passed"

    def add_arguments(self, parser):
        parser.add_argument("--limit", type=int, default=None, help="Expire at most this many licenses")

    def handle(self, *args, **options):
        count = expire_due_licenses(limit=options["limit"])
        self.stdout.write(self.style.SUCCESS(f"Expired {count} license(s)."))
