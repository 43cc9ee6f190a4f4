# File: notifications/tests.py
# Version: 1.0.0
# Author: vas
# Modified: 2026-10-18

import shutil
import tempfile
from datetime import date, timedelta
from io import StringIO
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core import mail
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone

from core.utils.authz import refresh_acl_cache
from employees.models import Department, DepartmentHead, Employee
from leave import workflow
from leave.models import LeaveRequest
from notifications import dispatch
from notifications.models import Notification
from notifications.reminders import already_sent_today, stale_requests, sweep_stale_requests

User = get_user_model()

TEMP_MEDIA = tempfile.mkdtemp(prefix="notification-tests-")
SIGNATURE = b"\x89PNG\r\n\x1a\n-signature-"

Type = Notification.Type


def tearDownModule():
    shutil.rmtree(TEMP_MEDIA, ignore_errors=True)


class NotificationTestMixin:
    """Employee, department head and one HR account."""

    def setUp(self):
        super().setUp()
        refresh_acl_cache()

        self.department = Department.objects.create(name="Contabilitate")
        self.head = User.objects.create_user(username="sef", email="sef@example.com")
        DepartmentHead.objects.create(department=self.department, user=self.head)

        self.user = User.objects.create_user(username="ana", email="ana@example.com")
        self.employee = Employee.objects.create(
            first_name="Ana", last_name="Popescu", department=self.department, user=self.user
        )

        self.hr = User.objects.create_user(username="hr", email="hr@example.com")
        self.hr.groups.add(Group.objects.create(name="role:hr"))

    def submit(self):
        with self.captureOnCommitCallbacks(execute=True):
            return workflow.submit_request(
                self.user, signature=SIGNATURE, start_date=date(2025, 3, 10), end_date=date(2025, 3, 14)
            )

    def backdate(self, req, days):
        signed_at = timezone.now() - timedelta(days=days, hours=1)
        LeaveRequest.objects.filter(pk=req.pk).update(employee_signed_at=signed_at)
        req.refresh_from_db()
        return req


# =========================
# Workflow notices
# =========================

@override_settings(MEDIA_ROOT=TEMP_MEDIA)
class WorkflowNotificationTestCase(NotificationTestMixin, TestCase):

    def test_submission_notifies_head(self):
        req = self.submit()
        note = Notification.objects.get(user=self.head)
        self.assertEqual(note.type, Type.WARNING)
        self.assertEqual(note.related_type, dispatch.LEAVE_REQUEST)
        self.assertEqual(note.related_id, req.pk)
        self.assertIn(req.request_number, note.message)
        self.assertEqual([m.to for m in mail.outbox], [["sef@example.com"]])

    def test_submission_without_head_goes_to_hr(self):
        DepartmentHead.objects.all().delete()
        with self.assertLogs("intranet.notifications", level="WARNING"):
            self.submit()
        self.assertTrue(Notification.objects.filter(user=self.hr).exists())
        self.assertFalse(Notification.objects.filter(user=self.head).exists())

    def test_approval_notifies_employee_and_hr(self):
        req = self.submit()
        with self.captureOnCommitCallbacks(execute=True):
            workflow.approve(req, self.head, signature=SIGNATURE)

        self.assertEqual(Notification.objects.get(user=self.user).type, Type.SUCCESS)
        self.assertEqual(Notification.objects.get(user=self.hr).type, Type.INFO)
        # HR copy is in-app only
        self.assertNotIn(["hr@example.com"], [m.to for m in mail.outbox])

    def test_rejection_notifies_employee_with_reason(self):
        req = self.submit()
        with self.captureOnCommitCallbacks(execute=True):
            workflow.reject(req, self.head, reason="Inventar anual")

        note = Notification.objects.get(user=self.user)
        self.assertEqual(note.type, Type.WARNING)
        self.assertIn("Inventar anual", note.message)
        self.assertFalse(Notification.objects.filter(user=self.hr).exists())

    def test_nothing_sent_before_commit(self):
        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            workflow.submit_request(
                self.user, signature=SIGNATURE, start_date=date(2025, 3, 10), end_date=date(2025, 3, 14)
            )
        self.assertEqual(len(callbacks), 1)
        self.assertFalse(Notification.objects.exists())

    def test_email_failure_does_not_undo_transition(self):
        req = self.submit()
        with patch("notifications.dispatch.send_mail", side_effect=OSError("smtp down")):
            with self.assertLogs("intranet.notifications", level="ERROR"):
                with self.captureOnCommitCallbacks(execute=True):
                    workflow.approve(req, self.head, signature=SIGNATURE)

        req.refresh_from_db()
        self.assertEqual(req.status, LeaveRequest.Status.APPROVED)
        self.assertTrue(Notification.objects.filter(user=self.user, type=Type.SUCCESS).exists())

    def test_storage_failure_does_not_undo_transition(self):
        req = self.submit()
        with patch.object(Notification.objects, "create", side_effect=RuntimeError("db gone")):
            with self.assertLogs("intranet.notifications", level="ERROR"):
                with self.captureOnCommitCallbacks(execute=True):
                    workflow.reject(req, self.head, reason="Nu")

        req.refresh_from_db()
        self.assertEqual(req.status, LeaveRequest.Status.REJECTED)

    def test_recipient_without_email_gets_in_app_only(self):
        self.head.email = ""
        self.head.save()
        self.submit()
        self.assertTrue(Notification.objects.filter(user=self.head).exists())
        self.assertEqual(len(mail.outbox), 0)


# =========================
# Reminder sweep
# =========================

@override_settings(MEDIA_ROOT=TEMP_MEDIA, LEAVE_REMINDER_AFTER_DAYS=3, LEAVE_ESCALATION_AFTER_DAYS=5)
class ReminderSweepTestCase(NotificationTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.req = self.submit()
        Notification.objects.all().delete()
        mail.outbox.clear()

    def test_fresh_request_not_stale(self):
        self.assertEqual(list(stale_requests(timezone.now())), [])
        self.assertEqual(sweep_stale_requests()["checked"], 0)

    def test_reminder_after_three_days(self):
        self.backdate(self.req, 3)
        stats = sweep_stale_requests()
        self.assertEqual(stats, {"checked": 1, "reminders": 1, "escalations": 0})
        note = Notification.objects.get()
        self.assertEqual((note.user, note.type), (self.head, Type.REMINDER))
        self.assertIn("3 zile", note.message)

    def test_escalation_after_five_days(self):
        self.backdate(self.req, 5)
        stats = sweep_stale_requests()
        self.assertEqual(stats["reminders"], 1)
        self.assertEqual(stats["escalations"], 1)
        self.assertEqual(Notification.objects.get(type=Type.ESCALATION).user, self.hr)

    def test_sweep_is_idempotent_within_a_day(self):
        self.backdate(self.req, 6)
        sweep_stale_requests()
        second = sweep_stale_requests()
        self.assertEqual((second["reminders"], second["escalations"]), (0, 0))
        self.assertEqual(Notification.objects.filter(type=Type.REMINDER).count(), 1)
        self.assertEqual(Notification.objects.filter(type=Type.ESCALATION).count(), 1)
        self.assertTrue(already_sent_today(self.req, Type.REMINDER, timezone.now()))

    def test_sweep_runs_again_next_day(self):
        self.backdate(self.req, 4)
        sweep_stale_requests()
        Notification.objects.update(created_at=timezone.now() - timedelta(days=1))
        self.assertEqual(sweep_stale_requests()["reminders"], 1)

    def test_decided_requests_are_ignored(self):
        self.backdate(self.req, 10)
        workflow.reject(self.req, self.head, reason="Nu")
        self.assertEqual(sweep_stale_requests()["checked"], 0)

    def test_dry_run_sends_nothing(self):
        self.backdate(self.req, 6)
        stats = sweep_stale_requests(dry_run=True)
        self.assertEqual((stats["reminders"], stats["escalations"]), (1, 1))
        self.assertFalse(Notification.objects.exists())

    def test_command(self):
        self.backdate(self.req, 6)
        out = StringIO()
        call_command("send_leave_reminders", stdout=out)
        self.assertIn("1 reminder(s)", out.getvalue())
        self.assertIn("1 escalation(s)", out.getvalue())

        out = StringIO()
        call_command("send_leave_reminders", stdout=out)
        self.assertIn("0 reminder(s)", out.getvalue())


# =========================
# Inbox endpoints
# =========================

class InboxViewTestCase(TestCase):

    def setUp(self):
        super().setUp()
        self.user = User.objects.create_user(username="ana", password="test123")
        self.other = User.objects.create_user(username="ion", password="test123")
        self.n1 = Notification.objects.create(user=self.user, title="Unu")
        self.n2 = Notification.objects.create(user=self.user, title="Doi")
        self.foreign = Notification.objects.create(user=self.other, title="Altul")
        self.client.force_login(self.user)

    def test_inbox(self):
        body = self.client.get(reverse("notifications:inbox")).json()
        self.assertEqual(body["unread"], 2)
        self.assertEqual({n["title"] for n in body["results"]}, {"Unu", "Doi"})

    def test_mark_read(self):
        response = self.client.post(reverse("notifications:mark_read", args=[self.n1.pk]))
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["is_read"])
        body = self.client.get(reverse("notifications:inbox"), {"unread": "1"}).json()
        self.assertEqual([n["title"] for n in body["results"]], ["Doi"])

    def test_cannot_mark_someone_elses(self):
        response = self.client.post(reverse("notifications:mark_read", args=[self.foreign.pk]))
        self.assertEqual(response.status_code, 404)

    def test_mark_all_read(self):
        self.assertEqual(self.client.post(reverse("notifications:mark_all_read")).json(), {"updated": 2})
        self.foreign.refresh_from_db()
        self.assertFalse(self.foreign.is_read)

    def test_alerts_endpoint(self):
        self.assertEqual(self.client.get(reverse("notifications:alerts")).json(), {"results": []})
