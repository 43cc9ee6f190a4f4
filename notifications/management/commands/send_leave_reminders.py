"""Remind approvers about leave requests waiting too long (idempotent, run daily)."""
# File: notifications/management/commands/send_leave_reminders.py
# Version: 1.0.0
# Author: vas
# Modified: 2026-10-18

from django.core.management.base import BaseCommand

from notifications.reminders import (
    escalation_after_days,
    reminder_after_days,
    sweep_stale_requests,
)


class Command(BaseCommand):
    help = "Send reminders/escalations for leave requests pending with the department head (safe to re-run)"

    def add_arguments(self, parser):
        parser.add_argument("--dry-run", action="store_true")

    def handle(self, *args, **opts):
        dry = opts["dry_run"]
        stats = sweep_stale_requests(dry_run=dry)

        summary = (
            f"{stats['checked']} request(s) pending > {reminder_after_days()} days, "
            f"{stats['reminders']} reminder(s), "
            f"{stats['escalations']} escalation(s) (> {escalation_after_days()} days)"
        )
        if dry:
            self.stdout.write(self.style.WARNING(f"Dry run. {summary}. Nothing sent."))
        else:
            self.stdout.write(self.style.SUCCESS(f"Reminder sweep complete. {summary}."))
