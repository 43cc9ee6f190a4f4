# File: employees/models.py
# Version: 1.2.0
# Author: vas
# Modified: 2026-10-18

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, timedelta

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models
from django.utils.translation import gettext_lazy as _

from simple_history.models import HistoricalRecords
from concurrency.fields import AutoIncVersionField

calendar_logger = logging.getLogger("intranet.calendar")


# ------------------------------
# helpers
# ------------------------------

# Western (Gregorian) Easter calculation (Anonymous Gregorian algorithm)
def easter_date(year: int) -> date:
    a = year % 19
    b = year // 100
    c = year % 100
    d = b // 4
    e = b % 4
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i = c // 4
    k = c % 4
    l = (32 + 2 * e + 2 * i - h - k) % 7
    m = (a + 11 * h + 22 * l) // 451
    month = (h + l - 7 * m + 114) // 31
    day = ((h + l - 7 * m + 114) % 31) + 1
    return date(year, month, day)


# Orthodox Easter (Meeus Julian algorithm), shifted to the Gregorian calendar.
# The Julian/Gregorian offset is 13 days for 1900..2099.
def orthodox_easter_date(year: int) -> date:
    a = year % 4
    b = year % 7
    c = year % 19
    d = (19 * c + 15) % 30
    e = (2 * a + 4 * b - d + 34) % 7
    month = (d + e + 114) // 31
    day = ((d + e + 114) % 31) + 1
    return date(year, month, day) + timedelta(days=13)


# ------------------------------
# Holiday calendar
# ------------------------------

class HolidayCalendar(models.Model):
    """
    National public-holiday table, keyed by year.

    Rules per line:
      - MM-DD | Label              → fixed every covered year (e.g. 12-01 | Ziua Națională)
      - EASTER±N | Label           → Western Easter ± N days
      - ORTHODOX±N | Label         → Orthodox Easter ± N days (e.g. ORTHODOX+1 | Paște)
      - YYYY-MM-DD | Label         → one-off

    Only years in [first_year, last_year] have holidays. Any other year is
    treated as having none, so keep the range populated for the years in use.
    """
    name = models.CharField(_("Name"), max_length=120, unique=True)
    is_active = models.BooleanField(_("Active"), default=False, help_text=_("Use this calendar by default."))
    first_year = models.PositiveIntegerField(
        _("First covered year"),
        validators=[MinValueValidator(1900), MaxValueValidator(2099)],
    )
    last_year = models.PositiveIntegerField(
        _("Last covered year"),
        validators=[MinValueValidator(1900), MaxValueValidator(2099)],
    )
    rules_text = models.TextField(
        _("Rules"),
        blank=True,
        help_text=_(
            "One per line. Examples:\n"
            "  01-24 | Ziua Unirii\n"
            "  ORTHODOX+1 | Paște\n"
            "  2025-05-02 | Zi liberă\n"
        ),
    )

    created_at = models.DateTimeField(_("Created at"), auto_now_add=True)
    updated_at = models.DateTimeField(_("Updated at"), auto_now=True)

    history = HistoricalRecords()

    class Meta:
        verbose_name = _("Holiday calendar")
        verbose_name_plural = _("Holiday calendars")
        constraints = [
            models.UniqueConstraint(
                fields=["is_active"],
                condition=models.Q(is_active=True),
                name="uq_holidaycalendar_single_active_true",
            ),
            models.CheckConstraint(
                check=models.Q(last_year__gte=models.F("first_year")),
                name="ck_holidaycalendar_year_range",
            ),
        ]

    def clean(self):
        errors = {}

        if self.is_active:
            existing = HolidayCalendar.objects.filter(
                is_active=True
            ).exclude(pk=self.pk).exists()

            if existing:
                errors["is_active"] = _(
                    "Another holiday calendar is already active. "
                    "Deactivate it first or uncheck this field."
                )

        if self.first_year and self.last_year and self.last_year < self.first_year:
            errors["last_year"] = _("Last covered year must be on/after the first one.")

        if errors:
            raise ValidationError(errors)

    def __str__(self) -> str:
        return self.name

    # ---- parsing ----
    @dataclass(frozen=True)
    class _Rule:
        kind: str                 # 'FIXED' | 'EASTER' | 'ORTHODOX' | 'ONEOFF'
        month: int | None
        day: int | None
        offset: int               # for EASTER±N / ORTHODOX±N
        date: date | None         # for ONEOFF
        label: str

    def _parse_rules(self) -> list["_Rule"]:
        rules: list[HolidayCalendar._Rule] = []
        for raw in (self.rules_text or "").splitlines():
            line = raw.strip()
            if not line or line.startswith("#"):
                continue

            parts = [p.strip() for p in line.split("|")]
            key = parts[0] if parts else ""
            if not key:
                continue
            label = parts[1] if len(parts) >= 2 else ""

            # ONE-OFF: YYYY-MM-DD
            m_one = re.fullmatch(r"(\d{4})-(\d{2})-(\d{2})", key)
            if m_one:
                y, m, d = map(int, m_one.groups())
                try:
                    dt = date(y, m, d)
                except ValueError:
                    continue
                rules.append(self._Rule("ONEOFF", None, None, 0, dt, label))
                continue

            # FIXED: MM-DD (every year)
            m_fix = re.fullmatch(r"(\d{2})-(\d{2})", key)
            if m_fix:
                m, d = map(int, m_fix.groups())
                if 1 <= m <= 12 and 1 <= d <= 31:
                    rules.append(self._Rule("FIXED", m, d, 0, None, label))
                continue

            # EASTER±N / ORTHODOX±N
            m_e = re.fullmatch(r"(EASTER|ORTHODOX)([+-]\d+)?", key, flags=re.IGNORECASE)
            if m_e:
                off = int(m_e.group(2) or "0")
                rules.append(self._Rule(m_e.group(1).upper(), None, None, off, None, label))
                continue

            # silently ignore malformed lines
        return rules

    def covers(self, year: int) -> bool:
        return self.first_year <= year <= self.last_year

    # ---- API: dates only ----
    def holidays_for_year(self, year: int) -> set[date]:
        return set(self.holidays_for_year_labeled(year))

    def holidays_for_year_labeled(self, year: int) -> dict[date, str]:
        """
        Returns {date: label} for the given year ({} for uncovered years).
        """
        if not self.covers(year):
            calendar_logger.warning(
                f"Holiday calendar '{self.name}' does not cover {year}; "
                f"no public holidays will be applied"
            )
            return {}

        result: dict[date, str] = {}
        for r in self._parse_rules():
            if r.kind == "FIXED":
                try:
                    dt = date(year, r.month, r.day)  # type: ignore[arg-type]
                except ValueError:
                    continue
            elif r.kind == "EASTER":
                dt = easter_date(year) + timedelta(days=r.offset)
            elif r.kind == "ORTHODOX":
                dt = orthodox_easter_date(year) + timedelta(days=r.offset)
            else:  # ONEOFF
                if not (r.date and r.date.year == year):
                    continue
                dt = r.date
            # first rule wins on collisions (fixed lines usually come first)
            result.setdefault(dt, r.label)
        return result

    def names_by_month_day(self) -> dict[str, str]:
        """Month-day → name mapping, taken from the fixed rules only."""
        return {
            f"{r.month:02d}-{r.day:02d}": r.label
            for r in self._parse_rules()
            if r.kind == "FIXED" and r.label
        }

    @classmethod
    def get_active(cls) -> "HolidayCalendar | None":
        try:
            return cls.objects.get(is_active=True)
        except cls.DoesNotExist:
            return None


class CustomHoliday(models.Model):
    """Institution-declared non-working day (on top of the national calendar)."""
    date = models.DateField(_("Date"), unique=True)
    label = models.CharField(_("Label"), max_length=120, blank=True)

    created_at = models.DateTimeField(_("Created at"), auto_now_add=True)

    history = HistoricalRecords()

    class Meta:
        verbose_name = _("Institution day off")
        verbose_name_plural = _("Institution days off")
        ordering = ("date",)

    def __str__(self) -> str:
        return f"{self.date.isoformat()} {self.label}".strip()


# ------------------------------
# Departments
# ------------------------------

class Department(models.Model):
    name = models.CharField(_("Name"), max_length=160, unique=True)

    history = HistoricalRecords()

    class Meta:
        verbose_name = _("Department")
        verbose_name_plural = _("Departments")
        ordering = ("name",)

    def __str__(self) -> str:
        return self.name


class DepartmentHead(models.Model):
    """
    Explicit department → head assignment.
    This is the only source of truth for who may sign off leave for a department.
    """
    department = models.ForeignKey(
        Department, on_delete=models.CASCADE, related_name="heads", verbose_name=_("Department")
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="headed_departments",
        verbose_name=_("Head"),
    )

    created_at = models.DateTimeField(_("Created at"), auto_now_add=True)

    history = HistoricalRecords()

    class Meta:
        verbose_name = _("Department head")
        verbose_name_plural = _("Department heads")
        constraints = [
            models.UniqueConstraint(fields=["department", "user"], name="uq_depthead_department_user"),
        ]

    def __str__(self) -> str:
        return f"{self.department} — {self.user}"


# ------------------------------
# Employee
# ------------------------------

def _default_total_leave_days() -> int:
    return getattr(settings, "LEAVE_DEFAULT_TOTAL_DAYS", 21)


class Employee(models.Model):
    """
    Personnel record the leave engine draws against.

    `used_leave_days` is only ever changed through atomic updates
    (see leave.workflow); never read-modify-write it on an instance.
    """
    first_name = models.CharField(_("First name"), max_length=80)
    last_name = models.CharField(_("Last name"), max_length=80)
    email = models.EmailField(_("Email"), blank=True)
    position = models.CharField(_("Position"), max_length=160, blank=True)

    department = models.ForeignKey(
        Department,
        on_delete=models.PROTECT,
        related_name="employees",
        null=True,
        blank=True,
        verbose_name=_("Department"),
    )
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="employee",
        verbose_name=_("Account"),
        help_text=_("Link to a user account (optional)."),
    )

    total_leave_days = models.PositiveSmallIntegerField(
        _("Annual leave days"), default=_default_total_leave_days,
        help_text=_("Entitlement per year."),
    )
    used_leave_days = models.IntegerField(
        _("Used leave days"), default=0,
        help_text=_("Days consumed by approved requests."),
    )

    is_archived = models.BooleanField(_("Archived"), default=False)

    created_at = models.DateTimeField(_("Created at"), auto_now_add=True)
    updated_at = models.DateTimeField(_("Updated at"), auto_now=True)

    history = HistoricalRecords()
    version = AutoIncVersionField()

    class Meta:
        verbose_name = _("Employee")
        verbose_name_plural = _("Employees")
        ordering = ("last_name", "first_name")
        indexes = [
            models.Index(fields=["last_name", "first_name"], name="ix_employee_name"),
        ]

    def __str__(self) -> str:
        return self.full_name

    @property
    def full_name(self) -> str:
        return f"{self.last_name} {self.first_name}"


class LeaveCarryover(models.Model):
    """Days carried from `from_year` into `to_year`. Written by the year-end HR process."""
    employee = models.ForeignKey(
        Employee, on_delete=models.CASCADE, related_name="carryovers", verbose_name=_("Employee")
    )
    from_year = models.PositiveIntegerField(_("From year"))
    to_year = models.PositiveIntegerField(_("To year"))
    initial_days = models.PositiveSmallIntegerField(_("Carried days"), default=0)

    created_at = models.DateTimeField(_("Created at"), auto_now_add=True)

    history = HistoricalRecords()

    class Meta:
        verbose_name = _("Leave carryover")
        verbose_name_plural = _("Leave carryovers")
        ordering = ("-to_year", "employee_id")
        constraints = [
            models.UniqueConstraint(fields=["employee", "to_year"], name="uq_carryover_employee_to_year"),
            models.CheckConstraint(
                check=models.Q(to_year=models.F("from_year") + 1),
                name="ck_carryover_consecutive_years",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.employee} — {self.from_year}→{self.to_year}: {self.initial_days}"

    def clean(self):
        errors = {}

        if self.from_year and self.to_year and self.to_year != self.from_year + 1:
            errors["to_year"] = _("Carryover must go into the following year.")

        if self.employee_id and self.to_year:
            existing = LeaveCarryover.objects.filter(
                employee_id=self.employee_id,
                to_year=self.to_year,
            ).exclude(pk=self.pk).exists()

            if existing:
                errors["__all__"] = _(
                    "A carryover record already exists for this employee into {year}."
                ).format(year=self.to_year)

        if errors:
            raise ValidationError(errors)
