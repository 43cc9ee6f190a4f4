# File: employees/tests.py
# Version: 1.2.0
# Author: vas
# Modified: 2026-10-18

from datetime import date, timedelta
from io import StringIO
from pathlib import Path
import tempfile

from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import IntegrityError, transaction
from django.test import TestCase, override_settings

from .balance import (
    BalanceLevel,
    LeaveBalance,
    balance_alerts,
    balance_for,
    can_approve,
    carryover_breakdown,
    employee_for_user,
)
from .calendar import (
    count_working_days,
    custom_holiday_dates,
    days_off_between,
    get_holiday_name,
    holiday_warnings,
    is_day_off,
    is_public_holiday,
)
from .models import (
    CustomHoliday,
    Department,
    Employee,
    HolidayCalendar,
    LeaveCarryover,
    easter_date,
    orthodox_easter_date,
)


RO_RULES = """
01-01 | Anul Nou
01-02 | Anul Nou
01-06 | Boboteaza
01-07 | Sfântul Ioan
01-24 | Ziua Unirii Principatelor Române
05-01 | Ziua Muncii
06-01 | Ziua Copilului
08-15 | Adormirea Maicii Domnului
11-30 | Sfântul Andrei
12-01 | Ziua Națională a României
12-25 | Crăciunul
12-26 | Crăciunul
ORTHODOX-2 | Vinerea Mare
ORTHODOX-1 | Sâmbăta Mare
ORTHODOX+0 | Paștele
ORTHODOX+1 | Paștele
ORTHODOX+49 | Rusaliile
ORTHODOX+50 | Rusaliile
"""


# =========================
# Test Fixtures / Helpers
# =========================

class HolidayCalendarMixin:
    """Active Romanian calendar covering 2025..2027."""

    def setUp(self):
        super().setUp()
        self.calendar = HolidayCalendar.objects.create(
            name="România",
            is_active=True,
            first_year=2025,
            last_year=2027,
            rules_text=RO_RULES,
        )


class EmployeeTestMixin:
    """Mixin providing common test data setup."""

    def setUp(self):
        super().setUp()
        self.department = Department.objects.create(name="Contabilitate")
        self.user = User.objects.create_user(username="ana", password="test123", email="ana@example.com")
        self.employee = Employee.objects.create(
            first_name="Ana",
            last_name="Popescu",
            email="ana@example.com",
            department=self.department,
            user=self.user,
        )


# =========================
# Easter / calendar rules
# =========================

class EasterCalculationTestCase(TestCase):

    def test_orthodox_easter(self):
        self.assertEqual(orthodox_easter_date(2024), date(2024, 5, 5))
        self.assertEqual(orthodox_easter_date(2025), date(2025, 4, 20))
        self.assertEqual(orthodox_easter_date(2026), date(2026, 4, 12))
        self.assertEqual(orthodox_easter_date(2027), date(2027, 5, 2))

    def test_western_easter(self):
        self.assertEqual(easter_date(2024), date(2024, 3, 31))
        self.assertEqual(easter_date(2025), date(2025, 4, 20))
        self.assertEqual(easter_date(2026), date(2026, 4, 5))


class HolidayCalendarTestCase(HolidayCalendarMixin, TestCase):
    """Rule parsing and year coverage."""

    def test_fixed_dates(self):
        holidays = self.calendar.holidays_for_year(2025)
        self.assertIn(date(2025, 1, 1), holidays)
        self.assertIn(date(2025, 12, 1), holidays)
        self.assertIn(date(2025, 12, 26), holidays)

    def test_orthodox_relative_dates(self):
        holidays = self.calendar.holidays_for_year(2026)
        for d in (date(2026, 4, 10), date(2026, 4, 11), date(2026, 4, 12), date(2026, 4, 13),
                  date(2026, 5, 31), date(2026, 6, 1)):
            self.assertIn(d, holidays)

    def test_2027_movable_feasts(self):
        holidays = self.calendar.holidays_for_year(2027)
        self.assertIn(date(2027, 4, 30), holidays)   # Vinerea Mare
        self.assertIn(date(2027, 5, 3), holidays)    # a doua zi de Paște
        self.assertIn(date(2027, 6, 21), holidays)   # a doua zi de Rusalii
        self.assertNotIn(date(2027, 5, 4), holidays)

    def test_collision_keeps_fixed_label(self):
        # Rusalii Monday 2026 falls on Ziua Copilului
        labeled = self.calendar.holidays_for_year_labeled(2026)
        self.assertEqual(labeled[date(2026, 6, 1)], "Ziua Copilului")

    def test_oneoff_date_only_in_its_year(self):
        self.calendar.rules_text = RO_RULES + "2025-05-02 | Zi liberă\n"
        self.calendar.save()
        self.assertIn(date(2025, 5, 2), self.calendar.holidays_for_year(2025))
        self.assertNotIn(date(2026, 5, 2), self.calendar.holidays_for_year(2026))

    def test_malformed_lines_are_ignored(self):
        cal = HolidayCalendar(name="x", first_year=2025, last_year=2025,
                              rules_text="# comment\n13-45 | nope\nfoo | bar\n01-24 | Ziua Unirii\n")
        self.assertEqual(cal.holidays_for_year(2025), {date(2025, 1, 24)})

    def test_uncovered_year_has_no_holidays_and_warns(self):
        with self.assertLogs("intranet.calendar", level="WARNING") as logs:
            self.assertEqual(self.calendar.holidays_for_year(2031), set())
        self.assertIn("does not cover 2031", logs.output[0])

    def test_only_one_active_calendar_allowed(self):
        other = HolidayCalendar(name="Alt calendar", is_active=True, first_year=2025, last_year=2025)
        with self.assertRaises(ValidationError):
            other.full_clean()

    def test_year_range_must_not_be_inverted(self):
        cal = HolidayCalendar(name="Inverted", first_year=2027, last_year=2025)
        with self.assertRaises(ValidationError):
            cal.full_clean()

    def test_names_by_month_day_uses_fixed_rules_only(self):
        names = self.calendar.names_by_month_day()
        self.assertEqual(names["12-01"], "Ziua Națională a României")
        self.assertNotIn("04-20", names)


# =========================
# Working-day calculus
# =========================

class WorkingDayTestCase(HolidayCalendarMixin, TestCase):

    def test_week_with_labour_day(self):
        # Mon 28.04.2025 .. Fri 02.05.2025, 1 May is a public holiday
        self.assertEqual(count_working_days(date(2025, 4, 28), date(2025, 5, 2)), 4)

    def test_single_weekday(self):
        self.assertEqual(count_working_days(date(2025, 3, 12), date(2025, 3, 12)), 1)

    def test_weekend_only(self):
        self.assertEqual(count_working_days(date(2025, 3, 15), date(2025, 3, 16)), 0)

    def test_inverted_range_is_zero(self):
        self.assertEqual(count_working_days(date(2025, 5, 2), date(2025, 4, 28)), 0)

    def test_easter_week(self):
        # Vinerea Mare (18.04) and Easter Monday (21.04) are both weekdays
        self.assertEqual(count_working_days(date(2025, 4, 14), date(2025, 4, 25)), 8)

    def test_range_across_new_year(self):
        # 10 weekdays, 4 of them holidays (1, 2, 6, 7 January)
        self.assertEqual(count_working_days(date(2025, 12, 29), date(2026, 1, 9)), 6)

    def test_custom_holidays_reduce_count(self):
        self.assertEqual(
            count_working_days(date(2025, 4, 28), date(2025, 5, 2), custom_holiday_dates=[date(2025, 5, 2)]),
            3,
        )

    def test_custom_holidays_accept_iso_strings(self):
        self.assertEqual(
            count_working_days(date(2025, 4, 28), date(2025, 5, 2), custom_holiday_dates=["2025-04-30"]),
            3,
        )

    def test_custom_holiday_on_weekend_or_holiday_not_counted_twice(self):
        custom = [date(2025, 5, 3), date(2025, 5, 1)]
        self.assertEqual(count_working_days(date(2025, 4, 28), date(2025, 5, 2), custom_holiday_dates=custom), 4)

    def test_uncovered_year_counts_plain_weekdays(self):
        with self.assertLogs("intranet.calendar", level="WARNING"):
            # 01.01.2031 is a Wednesday; no holiday table for 2031
            self.assertEqual(count_working_days(date(2030, 12, 29), date(2031, 1, 3)), 5)

    def test_without_active_calendar_only_weekends_are_off(self):
        self.calendar.is_active = False
        self.calendar.save()
        self.assertEqual(count_working_days(date(2025, 4, 28), date(2025, 5, 2)), 5)

    def test_explicit_calendar_argument(self):
        self.assertEqual(count_working_days(date(2025, 4, 28), date(2025, 5, 2), calendar=None), 5)
        self.assertEqual(count_working_days(date(2025, 4, 28), date(2025, 5, 2), calendar=self.calendar), 4)

    def test_days_off_between_only_weekdays(self):
        off = days_off_between(date(2025, 4, 14), date(2025, 4, 25))
        self.assertEqual(off, {date(2025, 4, 18), date(2025, 4, 21)})

    def test_is_day_off(self):
        self.assertTrue(is_day_off(date(2025, 3, 15)))          # Saturday
        self.assertTrue(is_day_off(date(2025, 12, 25)))         # Crăciun
        self.assertTrue(is_day_off(date(2025, 3, 12), ["2025-03-12"]))
        self.assertFalse(is_day_off(date(2025, 3, 12)))

    def test_is_public_holiday(self):
        self.assertTrue(is_public_holiday(date(2025, 1, 24)))
        self.assertFalse(is_public_holiday(date(2025, 1, 23)))

    def test_holiday_names(self):
        self.assertEqual(get_holiday_name(date(2025, 12, 1)), "Ziua Națională a României")
        self.assertEqual(get_holiday_name(date(2025, 4, 18)), "Sărbătoare legală")
        self.assertIsNone(get_holiday_name(date(2025, 4, 22)))

    @override_settings(LEAVE_GENERIC_HOLIDAY_LABEL="Public holiday")
    def test_generic_label_from_settings(self):
        self.assertEqual(get_holiday_name(date(2025, 4, 21)), "Public holiday")

    def test_custom_holiday_dates_loads_rows(self):
        CustomHoliday.objects.create(date=date(2025, 5, 2), label="Punte")
        self.assertEqual(custom_holiday_dates(), {date(2025, 5, 2)})

    def test_holiday_warnings(self):
        notes = holiday_warnings(date(2025, 4, 28), date(2025, 5, 2))
        self.assertEqual(len(notes), 1)
        self.assertIn("01.05.2025", notes[0])
        self.assertIn("Ziua Muncii", notes[0])

    def test_holiday_warnings_across_years(self):
        # 2028 is outside the calendar: one warning for the whole year, not one per day
        with self.assertLogs("intranet.calendar", level="WARNING") as logs:
            notes = holiday_warnings(date(2027, 12, 20), date(2028, 2, 29))
        self.assertEqual(len(logs.output), 1)
        self.assertIn("does not cover 2028", logs.output[0])
        self.assertEqual([n[:10] for n in notes], ["25.12.2027", "26.12.2027"])
        self.assertIn("Crăciunul", notes[0])


# =========================
# Balance
# =========================

class LeaveBalanceTestCase(TestCase):

    def test_defaults(self):
        bal = LeaveBalance()
        self.assertEqual((bal.total, bal.carryover, bal.used), (21, 0, 0))
        self.assertEqual(bal.remaining, 21)
        self.assertEqual(bal.level, BalanceLevel.OK)

    def test_remaining_formula(self):
        self.assertEqual(LeaveBalance(total=21, carryover=5, used=10).remaining, 16)

    def test_remaining_may_go_negative(self):
        bal = LeaveBalance(total=21, carryover=2, used=25)
        self.assertEqual(bal.remaining, -2)
        self.assertEqual(bal.level, BalanceLevel.CRITICAL)

    def test_levels(self):
        self.assertEqual(LeaveBalance(used=17).level, BalanceLevel.OK)        # 4 left
        self.assertEqual(LeaveBalance(used=18).level, BalanceLevel.WARNING)   # 3 left
        self.assertEqual(LeaveBalance(used=20).level, BalanceLevel.WARNING)   # 1 left
        self.assertEqual(LeaveBalance(used=21).level, BalanceLevel.CRITICAL)  # 0 left

    @override_settings(LEAVE_BALANCE_WARNING_DAYS=5)
    def test_warning_threshold_from_settings(self):
        self.assertEqual(LeaveBalance(used=16).level, BalanceLevel.WARNING)

    def test_can_approve(self):
        class _Req:
            working_days = 3
        self.assertTrue(can_approve(_Req(), LeaveBalance(used=18)))
        self.assertFalse(can_approve(_Req(), LeaveBalance(used=19)))

    def test_carryover_breakdown(self):
        self.assertEqual(carryover_breakdown(5, 3), (3, 2))
        self.assertEqual(carryover_breakdown(2, 5), (2, 0))
        self.assertEqual(carryover_breakdown(0, 3), (0, 0))
        self.assertEqual(carryover_breakdown(4, 0), (0, 4))


class EmployeeBalanceTestCase(EmployeeTestMixin, TestCase):

    def test_new_employee_gets_default_entitlement(self):
        self.assertEqual(self.employee.total_leave_days, 21)
        self.assertEqual(self.employee.used_leave_days, 0)

    def test_full_name_is_last_first(self):
        self.assertEqual(self.employee.full_name, "Popescu Ana")

    def test_balance_for_includes_carryover_into_year(self):
        LeaveCarryover.objects.create(employee=self.employee, from_year=2024, to_year=2025, initial_days=4)
        LeaveCarryover.objects.create(employee=self.employee, from_year=2025, to_year=2026, initial_days=7)
        Employee.objects.filter(pk=self.employee.pk).update(used_leave_days=10)
        self.employee.refresh_from_db()

        bal = balance_for(self.employee, 2025)
        self.assertEqual((bal.total, bal.carryover, bal.used), (21, 4, 10))
        self.assertEqual(bal.remaining, 15)
        self.assertEqual(balance_for(self.employee, 2026).carryover, 7)

    def test_carryover_must_go_into_next_year(self):
        c = LeaveCarryover(employee=self.employee, from_year=2024, to_year=2026, initial_days=1)
        with self.assertRaises(ValidationError):
            c.full_clean()

    def test_carryover_unique_per_target_year(self):
        LeaveCarryover.objects.create(employee=self.employee, from_year=2024, to_year=2025, initial_days=1)
        with self.assertRaises(IntegrityError), transaction.atomic():
            LeaveCarryover.objects.create(employee=self.employee, from_year=2024, to_year=2025, initial_days=2)

    def test_employee_for_user(self):
        self.assertEqual(employee_for_user(self.user), self.employee)
        other = User.objects.create_user(username="nobody")
        self.assertIsNone(employee_for_user(other))

    def test_archived_employee_is_not_linked(self):
        self.employee.is_archived = True
        self.employee.save()
        self.assertIsNone(employee_for_user(self.user))

    def test_balance_alerts_lists_low_balances_critical_first(self):
        low = Employee.objects.create(first_name="Ion", last_name="Ionescu", department=self.department)
        out = Employee.objects.create(first_name="Dan", last_name="Dinu", department=self.department)
        Employee.objects.filter(pk=low.pk).update(used_leave_days=19)
        Employee.objects.filter(pk=out.pk).update(used_leave_days=21)

        alerts = balance_alerts(2025)
        self.assertEqual([a["employee"].pk for a in alerts], [out.pk, low.pk])
        self.assertEqual(alerts[0]["level"], BalanceLevel.CRITICAL)
        self.assertEqual(alerts[1]["level"], BalanceLevel.WARNING)
        self.assertIn("Ionescu Ion", alerts[1]["message"])

    def test_balance_alerts_respects_carryover(self):
        Employee.objects.filter(pk=self.employee.pk).update(used_leave_days=20)
        self.assertEqual(len(balance_alerts(2025)), 1)
        LeaveCarryover.objects.create(employee=self.employee, from_year=2024, to_year=2025, initial_days=5)
        self.assertEqual(balance_alerts(2025), [])


# =========================
# bootstrap_holidays
# =========================

class BootstrapHolidaysCommandTestCase(TestCase):

    def _run(self, *args):
        out = StringIO()
        call_command("bootstrap_holidays", *args, stdout=out)
        return out.getvalue()

    def test_loads_bundled_fixture(self):
        self._run()
        cal = HolidayCalendar.get_active()
        self.assertIsNotNone(cal)
        self.assertEqual(cal.name, "România")
        self.assertTrue(cal.covers(2025))
        self.assertEqual(count_working_days(date(2025, 4, 28), date(2025, 5, 2)), 4)

    def test_is_idempotent(self):
        self._run()
        output = self._run()
        self.assertEqual(HolidayCalendar.objects.count(), 1)
        self.assertIn("unchanged", output)

    def test_dry_run_changes_nothing(self):
        output = self._run("--dry-run")
        self.assertIn("[DRY] Create", output)
        self.assertFalse(HolidayCalendar.objects.exists())

    def test_custom_holidays_and_update(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "cal.yaml"
            path.write_text(
                "calendars:\n"
                "  - name: Test\n"
                "    is_active: true\n"
                "    first_year: 2025\n"
                "    last_year: 2025\n"
                "    rules: |\n"
                "      05-01 | Ziua Muncii\n"
                "custom_holidays:\n"
                "  - date: 2025-05-02\n"
                "    label: Punte\n",
                encoding="utf-8",
            )
            self._run("--file", str(path))
            self.assertEqual(CustomHoliday.objects.get().label, "Punte")

            path.write_text(path.read_text(encoding="utf-8").replace("last_year: 2025", "last_year: 2026"),
                            encoding="utf-8")
            self._run("--file", str(path))
            self.assertEqual(HolidayCalendar.objects.get(name="Test").last_year, 2026)

    def test_missing_file(self):
        with self.assertRaises(CommandError):
            self._run("--file", "/nonexistent/holidays.yaml")

    def test_missing_year_range_is_rejected(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "cal.yaml"
            path.write_text("calendars:\n  - name: Broken\n    rules: '01-01 | x'\n", encoding="utf-8")
            with self.assertRaises(CommandError):
                self._run("--file", str(path))

    def test_activating_a_new_calendar_deactivates_the_old_one(self):
        HolidayCalendar.objects.create(name="Vechi", is_active=True, first_year=2020, last_year=2024)
        self._run()
        self.assertEqual(HolidayCalendar.get_active().name, "România")
        self.assertFalse(HolidayCalendar.objects.get(name="Vechi").is_active)
