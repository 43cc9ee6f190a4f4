"""Bootstrap HolidayCalendar and institution days off from YAML (idempotent)."""
# File: employees/management/commands/bootstrap_holidays.py
# Version: 1.1.0
# Author: vas
# Modified: 2026-10-18

import logging
from datetime import date
from pathlib import Path

import yaml
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from employees.models import CustomHoliday, HolidayCalendar

calendar_logger = logging.getLogger("intranet.calendar")


def get_fixture_path(filename, *, sensitive=False):
    """
    Resolve fixture file location.

    - Non-sensitive: always from repo fixtures/
    - Sensitive: from mount in prod, repo in DEBUG
    """
    if sensitive and not settings.DEBUG:
        return settings.BOOTSTRAP_DATA_DIR / filename
    return Path(__file__).parent.parent.parent / "fixtures" / filename


class Command(BaseCommand):
    help = "Create/refresh holiday calendars and institution days off from YAML (idempotent)"

    def add_arguments(self, parser):
        parser.add_argument(
            "--file", "-f",
            default=None,
            help="Path to YAML file (default: employees/fixtures/holiday_calendar.yaml)"
        )
        parser.add_argument("--dry-run", action="store_true")

    def handle(self, *args, **opts):
        file_path = Path(opts["file"]) if opts["file"] else get_fixture_path("holiday_calendar.yaml")
        dry = opts["dry_run"]

        if not file_path.exists():
            raise CommandError(f"YAML file not found: {file_path}")

        try:
            data = yaml.safe_load(file_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise CommandError(f"Invalid YAML in {file_path}: {e}")

        calendars_cfg = data.get("calendars", []) or []
        custom_cfg = data.get("custom_holidays", []) or []
        if not calendars_cfg and not custom_cfg:
            self.stdout.write(self.style.WARNING("No holiday calendars defined."))
            return

        counts = {"created": 0, "updated": 0, "unchanged": 0}

        # Deactivate first so the single-active constraint never trips mid-run
        active_names = {c.get("name") for c in calendars_cfg if c.get("is_active")}
        if len(active_names) > 1:
            raise CommandError(f"More than one active calendar in {file_path}: {', '.join(sorted(active_names))}")

        with transaction.atomic():
            if active_names and not dry:
                HolidayCalendar.objects.filter(is_active=True).exclude(name__in=active_names).update(is_active=False)

            for cal_def in calendars_cfg:
                self._sync_calendar(cal_def, dry, counts)

            for item in custom_cfg:
                self._sync_custom(item, dry, counts)

        summary = ", ".join(f"{n} {k}" for k, n in counts.items() if n) or "nothing to do"
        if dry:
            self.stdout.write(self.style.WARNING(f"\nDry run. {summary}. No changes applied."))
        else:
            calendar_logger.info(f"Holiday bootstrap from {file_path}: {summary}")
            self.stdout.write(self.style.SUCCESS(f"\nBootstrap complete! {summary}."))

    def _sync_calendar(self, cal_def, dry, counts):
        name = cal_def.get("name")
        if not name:
            raise CommandError(f"Missing 'name' in: {cal_def}")
        try:
            wanted = {
                "is_active": bool(cal_def.get("is_active", False)),
                "first_year": int(cal_def["first_year"]),
                "last_year": int(cal_def["last_year"]),
                "rules_text": (cal_def.get("rules") or "").strip() + "\n",
            }
        except (KeyError, TypeError, ValueError):
            raise CommandError(f"Calendar '{name}' needs integer 'first_year' and 'last_year'.")

        existing = HolidayCalendar.objects.filter(name=name).first()
        if existing is None:
            if dry:
                self.stdout.write(self.style.NOTICE(f"[DRY] Create: {name}"))
            else:
                cal = HolidayCalendar(name=name, **wanted)
                self._clean_and_save(cal, name)
                self.stdout.write(self.style.SUCCESS(f"Created: {name}"))
            counts["created"] += 1
            return

        updates = {f: v for f, v in wanted.items() if getattr(existing, f) != v}
        if not updates:
            counts["unchanged"] += 1
            return
        if dry:
            self.stdout.write(self.style.NOTICE(f"[DRY] Update: {name} ({', '.join(sorted(updates))})"))
        else:
            for field, value in updates.items():
                setattr(existing, field, value)
            self._clean_and_save(existing, name)
            self.stdout.write(self.style.SUCCESS(f"Updated: {name}"))
        counts["updated"] += 1

    def _sync_custom(self, item, dry, counts):
        try:
            day = item["date"] if isinstance(item["date"], date) else date.fromisoformat(str(item["date"]))
        except (KeyError, TypeError, ValueError):
            raise CommandError(f"Custom holiday needs an ISO 'date': {item}")
        label = item.get("label", "") or ""

        existing = CustomHoliday.objects.filter(date=day).first()
        if existing and existing.label == label:
            counts["unchanged"] += 1
            return
        if dry:
            verb = "Update" if existing else "Create"
            self.stdout.write(self.style.NOTICE(f"[DRY] {verb} day off: {day.isoformat()} {label}"))
        else:
            CustomHoliday.objects.update_or_create(date=day, defaults={"label": label})
        counts["updated" if existing else "created"] += 1

    def _clean_and_save(self, cal, name):
        try:
            cal.full_clean()
        except ValidationError as e:
            raise CommandError(f"Error processing {name}: {'; '.join(e.messages)}")
        cal.save()
