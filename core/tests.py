# File: core/tests.py
# Version: 1.1.0
# Author: vas
# Modified: 2026-10-18

from datetime import date
from io import StringIO
from pathlib import Path
from unittest.mock import patch
import tempfile

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser, Group, Permission
from django.core.management import call_command
from django.core.management.base import CommandError
from django.db import IntegrityError
from django.test import RequestFactory, TestCase
from django.urls import reverse

from core.admin_mixins import has_feature
from core.alerts import build_alerts
from core.middleware import ConstraintErrorMiddleware
from core.utils.authz import (
    declared_groups,
    hr_and_admin_users,
    is_hr,
    is_hr_or_admin,
    is_in_group,
    is_super_admin,
    refresh_acl_cache,
)
from core.utils.weekday_helper import is_weekend, weekdays_between
from employees.models import Department, DepartmentHead, Employee, HolidayCalendar
from leave.models import LeaveRequest

User = get_user_model()


# =========================
# Role checks
# =========================

class AuthzTestCase(TestCase):
    """Roles come from Django groups, but only those declared in access.yaml count."""

    def setUp(self):
        super().setUp()
        refresh_acl_cache()
        self.addCleanup(refresh_acl_cache)
        self.hr = User.objects.create_user(username="hr")
        self.hr.groups.add(Group.objects.create(name="role:hr"))
        self.admin = User.objects.create_user(username="admin")
        self.admin.groups.add(Group.objects.create(name="role:super_admin"))
        self.root = User.objects.create_superuser("root", "root@example.com", "test123")
        self.plain = User.objects.create_user(username="plain")

    def test_declared_groups(self):
        self.assertTrue({"role:hr", "role:super_admin", "feature:export"} <= declared_groups())

    def test_roles(self):
        self.assertTrue(is_hr(self.hr))
        self.assertFalse(is_super_admin(self.hr))
        self.assertTrue(is_super_admin(self.admin))
        self.assertTrue(is_super_admin(self.root))
        self.assertTrue(is_hr_or_admin(self.root))
        self.assertFalse(is_hr_or_admin(self.plain))
        self.assertFalse(is_hr(AnonymousUser()))

    def test_undeclared_group_is_ignored(self):
        self.plain.groups.add(Group.objects.create(name="role:finance"))
        self.assertFalse(is_in_group(self.plain, "role:finance"))

    def test_missing_acl_file_fails_closed(self):
        with patch("core.utils.authz.ACL_PATH", "/nonexistent/access.yaml"):
            refresh_acl_cache()
            self.assertEqual(declared_groups(), set())
            self.assertFalse(is_hr(self.hr))
            self.assertFalse(is_super_admin(self.admin))
            # superuser flag does not depend on the ACL file
            self.assertTrue(is_super_admin(self.root))

    def test_admin_feature_gates(self):
        self.plain.groups.add(Group.objects.create(name="feature:export"))
        self.assertTrue(has_feature(self.plain, "feature:export"))
        self.assertFalse(has_feature(self.plain, "feature:history"))
        self.assertTrue(has_feature(self.root, "feature:history"))
        self.assertFalse(has_feature(AnonymousUser(), "feature:export"))

    def test_hr_and_admin_users(self):
        inactive = User.objects.create_user(username="gone", is_active=False)
        inactive.groups.add(Group.objects.get(name="role:hr"))
        self.assertEqual(list(hr_and_admin_users()), [self.hr, self.admin, self.root])


class WeekdayHelperTestCase(TestCase):

    def test_weekdays_between(self):
        # Mon 10.03.2025 .. Sun 16.03.2025
        self.assertEqual(weekdays_between(date(2025, 3, 10), date(2025, 3, 16), inclusive=True), 5)
        self.assertEqual(weekdays_between(date(2025, 3, 15), date(2025, 3, 16), inclusive=True), 0)
        self.assertEqual(weekdays_between(date(2025, 3, 10), date(2025, 3, 14)), 4)
        self.assertEqual(weekdays_between(date(2025, 3, 14), date(2025, 3, 10), inclusive=True), 0)
        self.assertIsNone(weekdays_between(None, date(2025, 3, 10)))

    def test_weekday_across_many_weeks(self):
        self.assertEqual(weekdays_between(date(2025, 1, 1), date(2025, 12, 31), inclusive=True), 261)

    def test_is_weekend(self):
        # Fri 14.03.2025 .. Mon 17.03.2025
        days = [date(2025, 3, 14), date(2025, 3, 15), date(2025, 3, 16), date(2025, 3, 17)]
        self.assertEqual([is_weekend(d) for d in days], [False, True, True, False])


# =========================
# Constraint middleware
# =========================

class ConstraintErrorMiddlewareTestCase(TestCase):

    def setUp(self):
        super().setUp()
        self.factory = RequestFactory()
        self.middleware = ConstraintErrorMiddleware(lambda request: None)

    def test_parse_constraint_error(self):
        parse = ConstraintErrorMiddleware.parse_constraint_error
        cases = {
            "UNIQUE constraint failed: employees_customholiday.date": "unique",
            'duplicate key value violates unique constraint "uq_carryover_employee_to_year"': "unique",
            'insert or update on table "leave_leaverequest" violates foreign key constraint': "foreign_key",
            "CHECK constraint failed: ck_leaverequest_rejection_reason": "check",
            "NOT NULL constraint failed: leave_leaverequest.year": "not_null",
            'null value in column "year" violates not-null constraint': "not_null",
            "disk I/O error": "generic",
        }
        for text, kind in cases.items():
            with self.subTest(text=text):
                self.assertEqual(parse(text)[1], kind)

    def test_not_null_names_the_column(self):
        message, _ = ConstraintErrorMiddleware.parse_constraint_error(
            'null value in column "working_days" violates not-null constraint'
        )
        self.assertIn("working days", message)

    def test_integrity_error_becomes_json_400(self):
        request = self.factory.post("/leave/requests/new/")
        request.user = AnonymousUser()
        with self.assertLogs("intranet.admin", level="ERROR"):
            response = self.middleware.process_exception(
                request, IntegrityError("CHECK constraint failed: ck_leaverequest_dates_order")
            )
        self.assertEqual(response.status_code, 400)
        self.assertIn(b'"kind": "check"', response.content)
        self.assertNotIn(b"technical_details", response.content)

    def test_superuser_sees_technical_details(self):
        request = self.factory.post("/admin/")
        request.user = User.objects.create_superuser("root", "root@example.com", "test123")
        with self.assertLogs("intranet.admin", level="ERROR"):
            response = self.middleware.process_exception(request, IntegrityError("UNIQUE constraint failed: x.y"))
        self.assertIn(b"technical_details", response.content)

    def test_other_exceptions_pass_through(self):
        request = self.factory.get("/")
        self.assertIsNone(self.middleware.process_exception(request, ValueError("nope")))


# =========================
# bootstrap_acls
# =========================

class BootstrapAclsCommandTestCase(TestCase):

    def setUp(self):
        super().setUp()
        self.addCleanup(refresh_acl_cache)

    def _run(self, *args):
        out = StringIO()
        call_command("bootstrap_acls", *args, stdout=out)
        return out.getvalue()

    def _yaml(self, text):
        tmp = tempfile.NamedTemporaryFile("w", suffix=".yaml", delete=False, encoding="utf-8")
        tmp.write(text)
        tmp.close()
        self.addCleanup(Path(tmp.name).unlink)
        return tmp.name

    def test_syncs_groups_with_inheritance(self):
        self._run()
        hr = Group.objects.get(name="role:hr")
        admin = Group.objects.get(name="role:super_admin")
        hr_codes = set(hr.permissions.values_list("codename", flat=True))
        admin_codes = set(admin.permissions.values_list("codename", flat=True))

        self.assertIn("change_employee", hr_codes)
        self.assertIn("view_leaverequest", hr_codes)
        self.assertNotIn("delete_leaverequest", hr_codes)
        self.assertIn("delete_leaverequest", admin_codes)
        self.assertTrue(hr_codes <= admin_codes)
        self.assertTrue(Group.objects.filter(name="feature:import").exists())

    def test_is_idempotent_and_exact(self):
        self._run()
        hr = Group.objects.get(name="role:hr")
        hr.permissions.add(Permission.objects.get(codename="delete_employee"))
        self.assertIn("1 updated", self._run())
        self.assertFalse(hr.permissions.filter(codename="delete_employee").exists())
        self.assertEqual(Group.objects.filter(name="role:hr").count(), 1)
        self.assertIn("5 unchanged", self._run())

    def test_dry_run(self):
        output = self._run("--dry-run")
        self.assertIn("[DRY] Create group: role:hr", output)
        self.assertFalse(Group.objects.exists())

    def test_circular_inheritance(self):
        path = self._yaml('groups:\n  "a":\n    inherits: ["b"]\n  "b":\n    inherits: ["a"]\n')
        with self.assertRaises(CommandError):
            self._run("--file", path)

    def test_unknown_model(self):
        path = self._yaml('groups:\n  "a":\n    models:\n      leave.Nothing: [view]\n')
        with self.assertRaises(CommandError):
            self._run("--file", path)

    def test_unknown_perm_kind(self):
        path = self._yaml('groups:\n  "a":\n    models:\n      leave.LeaveRequest: [approve]\n')
        with self.assertRaises(CommandError):
            self._run("--file", path)


# =========================
# Auth signals
# =========================

class AuthSignalTestCase(TestCase):

    def setUp(self):
        super().setUp()
        self.user = User.objects.create_user(username="ana", password="test123")

    def test_login_and_logout_logged(self):
        with self.assertLogs("intranet.auth", level="INFO") as logs:
            self.client.login(username="ana", password="test123")
            self.client.logout()
        self.assertTrue(any("'ana' logged in" in line for line in logs.output))
        self.assertTrue(any("'ana' logged out" in line for line in logs.output))

    def test_failed_login_logged(self):
        with self.assertLogs("intranet.auth", level="WARNING") as logs:
            self.client.login(username="ana", password="wrong")
        self.assertIn("Failed login attempt for 'ana'", logs.output[0])


# =========================
# Dashboard alerts
# =========================

class AlertsTestCase(TestCase):

    def setUp(self):
        super().setUp()
        refresh_acl_cache()
        self.department = Department.objects.create(name="Contabilitate")
        self.head = User.objects.create_user(username="sef")
        DepartmentHead.objects.create(department=self.department, user=self.head)
        self.user = User.objects.create_user(username="ana")
        self.employee = Employee.objects.create(
            first_name="Ana", last_name="Popescu", department=self.department, user=self.user
        )

    def test_anonymous(self):
        self.assertEqual(build_alerts(AnonymousUser()), [])

    def test_pending_approvals(self):
        LeaveRequest.objects.create(
            employee=self.employee, user=self.user, year=2025,
            start_date=date(2025, 3, 10), end_date=date(2025, 3, 14), working_days=5,
            status=LeaveRequest.Status.PENDING_DEPARTMENT_HEAD,
        )
        alerts = build_alerts(self.head)
        self.assertEqual(len(alerts), 1)
        self.assertIn("status__exact=pending_department_head", alerts[0]["url"])

    def test_own_low_balance(self):
        Employee.objects.filter(pk=self.employee.pk).update(used_leave_days=21)
        alerts = build_alerts(self.user)
        self.assertEqual(len(alerts), 1)
        self.assertEqual(alerts[0]["level"], "danger")
        self.assertEqual(alerts[0]["url"], reverse("leave:balance"))

    def test_hr_watch_list(self):
        hr = User.objects.create_user(username="hr")
        hr.groups.add(Group.objects.create(name="role:hr"))
        Employee.objects.filter(pk=self.employee.pk).update(used_leave_days=19)
        alerts = build_alerts(hr)
        self.assertEqual(len(alerts), 1)
        self.assertIn("Popescu Ana", alerts[0]["text"])
        self.assertEqual(alerts[0]["url"], reverse("admin:employees_employee_change", args=[self.employee.pk]))


# =========================
# Admin smoke tests
# =========================

class AdminPagesTestCase(TestCase):

    def setUp(self):
        super().setUp()
        self.root = User.objects.create_superuser("root", "root@example.com", "test123")
        self.client.force_login(self.root)
        department = Department.objects.create(name="Contabilitate")
        user = User.objects.create_user(username="ana")
        self.employee = Employee.objects.create(first_name="Ana", last_name="Popescu", department=department, user=user)
        self.request = LeaveRequest.objects.create(
            employee=self.employee, user=user, year=2025,
            start_date=date(2025, 3, 10), end_date=date(2025, 3, 14), working_days=5,
        )
        self.calendar = HolidayCalendar.objects.create(
            name="RO", is_active=True, first_year=2000, last_year=2099, rules_text="12-01 | Ziua Națională\n"
        )

    def test_changelists(self):
        for name in (
            "admin:employees_employee_changelist",
            "admin:employees_department_changelist",
            "admin:employees_holidaycalendar_changelist",
            "admin:leave_leaverequest_changelist",
            "admin:leave_approvaldelegation_changelist",
            "admin:notifications_notification_changelist",
        ):
            with self.subTest(page=name):
                self.assertEqual(self.client.get(reverse(name)).status_code, 200)

    def test_leave_request_is_read_only(self):
        url = reverse("admin:leave_leaverequest_change", args=[self.request.pk])
        self.assertEqual(self.client.get(url).status_code, 200)
        self.assertEqual(self.client.get(reverse("admin:leave_leaverequest_add")).status_code, 403)

    def test_calendar_preview_action(self):
        url = f"/admin/employees/holidaycalendar/{self.calendar.pk}/actions/preview_current_year/"
        response = self.client.get(url)
        self.assertEqual(response.status_code, 302)
