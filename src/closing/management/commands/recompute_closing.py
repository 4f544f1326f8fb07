"""Recompute the team closing of a month from the command line."""

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from closing.exceptions import ClosingError
from closing.services import closing_summary, recompute_closing
from closing.tasks import recompute_team_closing


class Command(BaseCommand):
    help = "Recompute the team closing of a month (YYYY-MM) and print its totals."

    def add_arguments(self, parser):
        parser.add_argument("reference_month", help="Month to recompute, as YYYY-MM.")
        parser.add_argument(
            "--async",
            action="store_true",
            dest="run_async",
            help="Queue the recompute on Celery instead of running it inline.",
        )

    def handle(self, *args, **options):
        reference_month = options["reference_month"]

        if options["run_async"]:
            result = recompute_team_closing.delay(reference_month=reference_month)
            self.stdout.write(f"Queued recompute of {reference_month} (task {result.id}).")
            return

        try:
            closing = recompute_closing(reference_month)
        except ClosingError as exc:
            raise CommandError(f"[{exc.code}] {exc.message}") from exc

        summary = closing_summary(closing)
        self.stdout.write(
            self.style.SUCCESS(
                f"[OK] {summary['reference_month']}: {summary['line_count']} lines, "
                f"total payable {summary['total_payable']}, grand total {summary['grand_total']}"
            )
        )
        for row in summary["employees"]:
            self.stdout.write(f"  {row['employee_name']}: {row['effective_payable']}")
