"""Management command to run a subscription lifecycle job by hand."""
from __future__ import annotations

import json
from datetime import timezone as dt_timezone

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from jobs.registry import JOB_RUNNERS


class Command(BaseCommand):
    help = "Run one lifecycle job (expiration, reminders, approval sweeps, renames) and print its summary."

    def add_arguments(self, parser) -> None:
        parser.add_argument("job", choices=sorted(JOB_RUNNERS), help="Job to run.")
        parser.add_argument(
            "--now",
            default=None,
            help="ISO-8601 timestamp to evaluate the job at (defaults to the current time).",
        )

    def handle(self, *args, **options) -> None:
        now = timezone.now()
        if options["now"]:
            now = parse_datetime(options["now"])
            if now is None:
                raise CommandError(f"Invalid --now value: {options['now']!r}")
            if timezone.is_naive(now):
                now = timezone.make_aware(now, dt_timezone.utc)

        summary = JOB_RUNNERS[options["job"]](now)
        payload = summary.to_dict()
        self.stdout.write(json.dumps(payload, indent=2, default=str))

        if payload.get("success"):
            self.stdout.write(self.style.SUCCESS(f"{options['job']} completed at {now.isoformat()}"))
        else:
            self.stdout.write(
                self.style.WARNING(f"{options['job']} completed with {len(payload['errors'])} error(s)")
            )
