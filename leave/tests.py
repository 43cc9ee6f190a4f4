# File: leave/tests.py
# Version: 1.1.0
# Author: vas
# Modified: 2026-10-18

import base64
import json
import shutil
import tempfile
import threading
from datetime import date, timedelta

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.db import IntegrityError, connection, transaction
from django.test import TestCase, TransactionTestCase, override_settings
from django.urls import reverse

from core.utils.authz import refresh_acl_cache
from employees.models import (
    CustomHoliday,
    Department,
    DepartmentHead,
    Employee,
    HolidayCalendar,
    LeaveCarryover,
)
from leave import workflow
from leave.approvers import (
    approval_capacity,
    approval_history,
    approvers_for,
    pending_for_approver,
)
from leave.exceptions import (
    BalanceOverrideRequired,
    ConcurrentModification,
    InsufficientPermission,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from leave.models import ApprovalDelegation, LeaveRequest, RequestNumberCounter, Signed, Unsigned

User = get_user_model()

TEMP_MEDIA = tempfile.mkdtemp(prefix="leave-tests-")

SIGNATURE = b"\x89PNG\r\n\x1a\n-signature-"
SIGNATURE_URL = "data:image/png;base64," + base64.b64encode(SIGNATURE).decode()

Status = LeaveRequest.Status
Capacity = LeaveRequest.Capacity


def tearDownModule():
    shutil.rmtree(TEMP_MEDIA, ignore_errors=True)


# =========================
# Test Fixtures / Helpers
# =========================

class LeaveTestMixin:
    """Department with one head, one employee and an outsider; 1 May is a holiday."""

    def setUp(self):
        super().setUp()
        refresh_acl_cache()

        HolidayCalendar.objects.create(
            name="Test RO",
            is_active=True,
            first_year=2025,
            last_year=2026,
            rules_text="01-01 | Anul Nou\n05-01 | Ziua Muncii\n12-01 | Ziua Națională\n",
        )

        self.department = Department.objects.create(name="Contabilitate")
        self.other_department = Department.objects.create(name="Secretariat")

        self.head = User.objects.create_user(username="sef", password="test123", email="sef@example.com")
        DepartmentHead.objects.create(department=self.department, user=self.head)

        self.user = User.objects.create_user(username="ana", password="test123", email="ana@example.com")
        self.employee = Employee.objects.create(
            first_name="Ana",
            last_name="Popescu",
            email="ana@example.com",
            department=self.department,
            user=self.user,
        )

        self.outsider = User.objects.create_user(username="ion", password="test123")

    # --- helpers ---
    def make_hr(self, username="hr"):
        hr = User.objects.create_user(username=username, password="test123", email=f"{username}@example.com")
        group, _ = Group.objects.get_or_create(name="role:hr")
        hr.groups.add(group)
        return hr

    def set_used(self, days):
        Employee.objects.filter(pk=self.employee.pk).update(used_leave_days=days)
        self.employee.refresh_from_db()

    def used(self):
        return Employee.objects.values_list("used_leave_days", flat=True).get(pk=self.employee.pk)

    def draft(self, start=date(2025, 3, 10), end=date(2025, 3, 14)):
        return workflow.create_request(self.user, start_date=start, end_date=end)

    def pending(self, start=date(2025, 3, 10), end=date(2025, 3, 14)):
        return workflow.sign_as_employee(self.draft(start, end), self.user, SIGNATURE)


# =========================
# Creation
# =========================

@override_settings(MEDIA_ROOT=TEMP_MEDIA)
class CreateRequestTestCase(LeaveTestMixin, TestCase):

    def test_create_draft_counts_working_days(self):
        req = self.draft(date(2025, 4, 28), date(2025, 5, 2))
        self.assertEqual(req.status, Status.DRAFT)
        self.assertEqual(req.working_days, 4)
        self.assertEqual(req.year, 2025)
        self.assertEqual(req.employee, self.employee)
        self.assertIsInstance(req.employee_signoff, Unsigned)
        self.assertIsInstance(req.department_head_signoff, Unsigned)

    def test_request_numbers_are_sequential_per_year(self):
        first = self.draft()
        second = self.draft(date(2025, 6, 2), date(2025, 6, 3))
        third = self.draft(date(2026, 2, 2), date(2026, 2, 3))
        self.assertEqual(first.request_number, "CO-2025-0001")
        self.assertEqual(second.request_number, "CO-2025-0002")
        self.assertEqual(third.request_number, "CO-2026-0001")

    def test_numbers_not_reused_after_deletion(self):
        first = self.draft()
        workflow.delete_request(first, self.user)
        self.assertEqual(self.draft().request_number, "CO-2025-0002")

    def test_counter_picks_up_existing_numbers(self):
        self.draft()
        self.draft(date(2025, 6, 2), date(2025, 6, 3))
        RequestNumberCounter.objects.all().delete()
        self.assertEqual(self.draft(date(2025, 7, 1), date(2025, 7, 2)).request_number, "CO-2025-0003")
        self.assertEqual(RequestNumberCounter.objects.get(year=2025).last_number, 3)

    @override_settings(LEAVE_MAX_REQUEST_DAYS=31)
    def test_overlong_period_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            self.draft(date(2025, 3, 1), date(2025, 4, 1))
        self.assertIn("end_date", ctx.exception.message_dict)
        self.assertEqual(self.draft(date(2025, 3, 1), date(2025, 3, 31)).working_days, 21)

    def test_iso_strings_accepted(self):
        req = workflow.create_request(self.user, start_date="2025-03-10", end_date="2025-03-11")
        self.assertEqual(req.working_days, 2)

    def test_custom_holiday_excluded(self):
        CustomHoliday.objects.create(date=date(2025, 3, 12), label="Punte")
        self.assertEqual(self.draft().working_days, 4)

    def test_end_before_start_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            self.draft(date(2025, 3, 14), date(2025, 3, 10))
        self.assertIn("end_date", ctx.exception.message_dict)
        self.assertFalse(LeaveRequest.objects.exists())

    def test_bad_date_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            workflow.create_request(self.user, start_date="10.03.2025", end_date="2025-03-14")
        self.assertIn("start_date", ctx.exception.message_dict)

    def test_weekend_only_period_rejected(self):
        with self.assertRaises(ValidationError):
            self.draft(date(2025, 3, 15), date(2025, 3, 16))

    def test_user_without_employee_record(self):
        with self.assertRaises(NotFound):
            workflow.create_request(self.outsider, start_date="2025-03-10", end_date="2025-03-14")

    def test_cannot_file_for_someone_else(self):
        with self.assertRaises(InsufficientPermission):
            workflow.create_request(
                self.outsider, start_date="2025-03-10", end_date="2025-03-14", employee=self.employee
            )

    def test_hr_may_file_on_behalf(self):
        hr = self.make_hr()
        req = workflow.create_request(hr, start_date="2025-03-10", end_date="2025-03-14", employee=self.employee)
        self.assertEqual(req.employee, self.employee)
        self.assertEqual(req.user, hr)

    def test_history_records_creation(self):
        req = self.draft()
        record = req.history.first()
        self.assertEqual(record.history_user, self.user)
        self.assertEqual(record.history_change_reason, "created")


# =========================
# Employee signature
# =========================

@override_settings(MEDIA_ROOT=TEMP_MEDIA)
class EmployeeSignatureTestCase(LeaveTestMixin, TestCase):

    def test_sign_moves_to_pending(self):
        req = self.pending()
        self.assertEqual(req.status, Status.PENDING_DEPARTMENT_HEAD)
        sig = req.employee_signoff
        self.assertIsInstance(sig, Signed)
        self.assertTrue(sig.reference.endswith(".png"))
        self.assertIsNotNone(req.employee_signed_at)

    def test_data_url_signature(self):
        req = workflow.sign_as_employee(self.draft(), self.user, SIGNATURE_URL)
        req.employee_signature.open("rb")
        try:
            self.assertEqual(req.employee_signature.read(), SIGNATURE)
        finally:
            req.employee_signature.close()

    def test_empty_signature_rejected(self):
        req = self.draft()
        for payload in (None, b"", "data:image/png;base64,"):
            with self.assertRaises(ValidationError):
                workflow.sign_as_employee(req, self.user, payload)
        req.refresh_from_db()
        self.assertEqual(req.status, Status.DRAFT)

    def test_only_filer_can_sign(self):
        with self.assertRaises(InsufficientPermission):
            workflow.sign_as_employee(self.draft(), self.outsider, SIGNATURE)

    def test_signature_cannot_be_given_twice(self):
        req = self.pending()
        with self.assertRaises(InvalidTransition):
            workflow.sign_as_employee(req, self.user, SIGNATURE)

    def test_submit_request_creates_and_signs(self):
        req = workflow.submit_request(self.user, signature=SIGNATURE, start_date="2025-03-10", end_date="2025-03-14")
        self.assertEqual(req.status, Status.PENDING_DEPARTMENT_HEAD)
        self.assertEqual(LeaveRequest.objects.count(), 1)

    def test_submit_request_with_bad_signature_leaves_nothing(self):
        with self.assertRaises(ValidationError):
            workflow.submit_request(self.user, signature=b"", start_date="2025-03-10", end_date="2025-03-14")
        self.assertFalse(LeaveRequest.objects.exists())


# =========================
# Department head decision
# =========================

@override_settings(MEDIA_ROOT=TEMP_MEDIA)
class ApprovalTestCase(LeaveTestMixin, TestCase):

    def test_approve_draws_balance(self):
        req = workflow.approve(self.pending(), self.head, signature=SIGNATURE)
        self.assertEqual(req.status, Status.APPROVED)
        self.assertEqual(req.dept_head, self.head)
        self.assertEqual(req.decision_capacity, Capacity.DEPARTMENT_HEAD)
        self.assertIsInstance(req.department_head_signoff, Signed)
        self.assertFalse(req.balance_override)
        self.assertEqual(self.used(), 5)

    def test_approve_bumps_employee_version(self):
        before = self.employee.version
        workflow.approve(self.pending(), self.head, signature=SIGNATURE)
        self.employee.refresh_from_db()
        self.assertGreater(self.employee.version, before)

    def test_approve_requires_signature(self):
        req = self.pending()
        with self.assertRaises(ValidationError):
            workflow.approve(req, self.head, signature=None)
        req.refresh_from_db()
        self.assertEqual(req.status, Status.PENDING_DEPARTMENT_HEAD)
        self.assertEqual(self.used(), 0)

    def test_outsider_cannot_approve(self):
        with self.assertRaises(InsufficientPermission):
            workflow.approve(self.pending(), self.outsider, signature=SIGNATURE)

    def test_head_of_other_department_cannot_approve(self):
        other_head = User.objects.create_user(username="alt_sef")
        DepartmentHead.objects.create(department=self.other_department, user=other_head)
        with self.assertRaises(InsufficientPermission):
            workflow.approve(self.pending(), other_head, signature=SIGNATURE)

    def test_draft_cannot_be_approved(self):
        with self.assertRaises(InvalidTransition):
            workflow.approve(self.draft(), self.head, signature=SIGNATURE)

    def test_second_approval_does_not_draw_twice(self):
        req = workflow.approve(self.pending(), self.head, signature=SIGNATURE)
        with self.assertRaises(InvalidTransition):
            workflow.approve(req, self.head, signature=SIGNATURE)
        self.assertEqual(self.used(), 5)

    def test_insufficient_balance_needs_override(self):
        # 21 total, 18 used, 0 carryover: 3 left for a 5-day request
        self.set_used(18)
        req = self.pending()
        with self.assertRaises(BalanceOverrideRequired) as ctx:
            workflow.approve(req, self.head, signature=SIGNATURE)
        self.assertEqual(ctx.exception.remaining, 3)
        self.assertEqual(ctx.exception.requested, 5)
        req.refresh_from_db()
        self.assertEqual(req.status, Status.PENDING_DEPARTMENT_HEAD)
        self.assertEqual(self.used(), 18)

        req = workflow.approve(req, self.head, signature=SIGNATURE, override=True)
        self.assertEqual(req.status, Status.APPROVED)
        self.assertTrue(req.balance_override)
        self.assertEqual(self.used(), 23)

    def test_carryover_counts_towards_balance(self):
        self.set_used(18)
        LeaveCarryover.objects.create(employee=self.employee, from_year=2024, to_year=2025, initial_days=2)
        req = workflow.approve(self.pending(), self.head, signature=SIGNATURE)
        self.assertFalse(req.balance_override)
        self.assertEqual(self.used(), 23)

    def test_reject_keeps_balance(self):
        req = workflow.reject(self.pending(), self.head, reason="Perioadă aglomerată")
        self.assertEqual(req.status, Status.REJECTED)
        self.assertEqual(req.rejection_reason, "Perioadă aglomerată")
        self.assertEqual(req.rejected_by, self.head)
        self.assertIsNotNone(req.rejected_at)
        self.assertEqual(self.used(), 0)

    def test_reject_requires_reason(self):
        req = self.pending()
        for reason in ("", "   ", None):
            with self.assertRaises(ValidationError) as ctx:
                workflow.reject(req, self.head, reason=reason)
            self.assertIn("rejection_reason", ctx.exception.message_dict)
        req.refresh_from_db()
        self.assertEqual(req.status, Status.PENDING_DEPARTMENT_HEAD)

    def test_terminal_states_refuse_transitions(self):
        approved = workflow.approve(self.pending(), self.head, signature=SIGNATURE)
        rejected = workflow.reject(
            self.pending(date(2025, 6, 2), date(2025, 6, 3)), self.head, reason="Nu"
        )
        for req in (approved, rejected):
            with self.assertRaises(InvalidTransition):
                workflow.approve(req, self.head, signature=SIGNATURE)
            with self.assertRaises(InvalidTransition):
                workflow.reject(req, self.head, reason="din nou")
            with self.assertRaises(InvalidTransition):
                workflow.sign_as_employee(req, self.user, SIGNATURE)
        self.assertEqual(self.used(), 5)

    def test_hr_may_approve_with_signature(self):
        hr = self.make_hr()
        req = workflow.approve(self.pending(), hr, signature=SIGNATURE)
        self.assertEqual(req.decision_capacity, Capacity.HR)

    def test_superuser_approves_as_super_admin(self):
        root = User.objects.create_superuser("root", "root@example.com", "test123")
        req = workflow.approve(self.pending(), root, signature=SIGNATURE)
        self.assertEqual(req.decision_capacity, Capacity.SUPER_ADMIN)

    def test_group_not_declared_in_acl_grants_nothing(self):
        rogue = User.objects.create_user(username="rogue")
        rogue.groups.add(Group.objects.create(name="role:finance"))
        with self.assertRaises(InsufficientPermission):
            workflow.approve(self.pending(), rogue, signature=SIGNATURE)


# =========================
# Delegation / approvers
# =========================

@override_settings(MEDIA_ROOT=TEMP_MEDIA)
class DelegationTestCase(LeaveTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.deputy = User.objects.create_user(username="adjunct", email="adjunct@example.com")
        self.today = date.today()

    def delegate(self, **kwargs):
        fields = {
            "delegator": self.head,
            "delegate": self.deputy,
            "start_date": self.today - timedelta(days=1),
            "end_date": self.today + timedelta(days=1),
        }
        fields.update(kwargs)
        return ApprovalDelegation.objects.create(**fields)

    def test_current_delegate_can_approve(self):
        self.delegate()
        req = workflow.approve(self.pending(), self.deputy, signature=SIGNATURE)
        self.assertEqual(req.decision_capacity, Capacity.DELEGATE)

    def test_expired_delegation_grants_nothing(self):
        self.delegate(start_date=self.today - timedelta(days=10), end_date=self.today - timedelta(days=1))
        with self.assertRaises(InsufficientPermission):
            workflow.approve(self.pending(), self.deputy, signature=SIGNATURE)

    def test_inactive_delegation_grants_nothing(self):
        self.delegate(is_active=False)
        self.assertIsNone(approval_capacity(self.deputy, self.pending()))

    def test_delegation_limited_to_other_department(self):
        DepartmentHead.objects.create(department=self.other_department, user=self.head)
        self.delegate(department=self.other_department)
        self.assertIsNone(approval_capacity(self.deputy, self.pending()))

    def test_head_wins_over_delegate(self):
        DepartmentHead.objects.create(department=self.department, user=self.deputy)
        self.delegate()
        self.assertEqual(approval_capacity(self.deputy, self.pending()), Capacity.DEPARTMENT_HEAD)

    def test_approvers_for_includes_delegate(self):
        self.assertEqual(approvers_for(self.department), [self.head])
        self.delegate()
        self.assertEqual(approvers_for(self.department), [self.head, self.deputy])
        self.assertEqual(approvers_for(None), [])

    def test_cannot_delegate_to_self(self):
        d = ApprovalDelegation(delegator=self.head, delegate=self.head,
                               start_date=self.today, end_date=self.today)
        with self.assertRaises(ValidationError):
            d.full_clean()

    def test_pending_for_approver(self):
        req = self.pending()
        self.draft(date(2025, 6, 2), date(2025, 6, 3))
        self.assertEqual(list(pending_for_approver(self.head)), [req])
        self.assertEqual(list(pending_for_approver(self.outsider)), [])
        self.assertEqual(list(pending_for_approver(self.make_hr())), [req])
        self.delegate()
        self.assertEqual(list(pending_for_approver(self.deputy)), [req])

    def test_approval_history(self):
        approved = workflow.approve(self.pending(), self.head, signature=SIGNATURE)
        rejected = workflow.reject(self.pending(date(2025, 6, 2), date(2025, 6, 3)), self.head, reason="Nu")
        self.assertEqual({r.pk for r in approval_history(self.head)}, {approved.pk, rejected.pk})
        self.assertEqual(list(approval_history(self.outsider)), [])


# =========================
# HR / super-admin override
# =========================

@override_settings(MEDIA_ROOT=TEMP_MEDIA)
class HROverrideTestCase(LeaveTestMixin, TestCase):

    def setUp(self):
        super().setUp()
        self.hr = self.make_hr()

    def test_hr_rejects(self):
        req = workflow.hr_override(self.pending(), self.hr, decision="reject", reason="Dosar incomplet")
        self.assertEqual(req.status, Status.REJECTED)
        self.assertEqual(req.decision_capacity, Capacity.HR)
        self.assertEqual(req.rejection_reason, "Dosar incomplet")

    def test_hr_approves_without_signature(self):
        req = workflow.hr_override(self.pending(), self.hr, decision="approve", reason="Șeful lipsește")
        self.assertEqual(req.status, Status.APPROVED)
        self.assertIsInstance(req.department_head_signoff, Unsigned)
        self.assertEqual(req.dept_head, self.hr)
        self.assertEqual(self.used(), 5)
        self.assertIn("Șeful lipsește", req.history.first().history_change_reason)

    def test_superuser_override_capacity(self):
        root = User.objects.create_superuser("root", "root@example.com", "test123")
        req = workflow.hr_override(self.pending(), root, decision="reject", reason="Nu")
        self.assertEqual(req.decision_capacity, Capacity.SUPER_ADMIN)

    def test_override_needs_role(self):
        with self.assertRaises(InsufficientPermission):
            workflow.hr_override(self.pending(), self.head, decision="approve", reason="x")

    def test_override_needs_reason(self):
        req = self.pending()
        with self.assertRaises(ValidationError) as ctx:
            workflow.hr_override(req, self.hr, decision="reject", reason=" ")
        self.assertIn("rejection_reason", ctx.exception.message_dict)
        with self.assertRaises(ValidationError) as ctx:
            workflow.hr_override(req, self.hr, decision="approve", reason="")
        self.assertIn("reason", ctx.exception.message_dict)

    def test_unknown_decision(self):
        with self.assertRaises(ValidationError):
            workflow.hr_override(self.pending(), self.hr, decision="maybe", reason="x")

    def test_override_respects_balance_rule(self):
        self.set_used(20)
        req = self.pending()
        with self.assertRaises(BalanceOverrideRequired):
            workflow.hr_override(req, self.hr, decision="approve", reason="Urgent")
        req = workflow.hr_override(req, self.hr, decision="approve", reason="Urgent", override=True)
        self.assertTrue(req.balance_override)
        self.assertEqual(self.used(), 25)

    def test_override_only_on_pending(self):
        with self.assertRaises(InvalidTransition):
            workflow.hr_override(self.draft(), self.hr, decision="approve", reason="x")


# =========================
# Deletion
# =========================

@override_settings(MEDIA_ROOT=TEMP_MEDIA)
class DeletionTestCase(LeaveTestMixin, TestCase):

    def test_owner_deletes_draft_and_pending(self):
        for req in (self.draft(), self.pending(date(2025, 6, 2), date(2025, 6, 3))):
            self.assertTrue(workflow.can_delete(req, self.user))
            workflow.delete_request(req, self.user)
        self.assertFalse(LeaveRequest.objects.exists())

    def test_only_owner_deletes(self):
        req = self.draft()
        self.assertFalse(workflow.can_delete(req, self.head))
        with self.assertRaises(InsufficientPermission):
            workflow.delete_request(req, self.head)

    def test_decided_requests_are_kept(self):
        approved = workflow.approve(self.pending(), self.head, signature=SIGNATURE)
        self.assertFalse(workflow.can_delete(approved, self.user))
        with self.assertRaises(InvalidTransition):
            workflow.delete_request(approved, self.user)
        self.assertTrue(LeaveRequest.objects.filter(pk=approved.pk).exists())
        self.assertEqual(self.used(), 5)

    def test_admin_delete_follows_owner_rule(self):
        from django.contrib import admin as django_admin
        from django.test import RequestFactory

        root = User.objects.create_superuser(username="root", password="test123", email="root@example.com")
        model_admin = django_admin.site._registry[LeaveRequest]
        own = workflow.create_request(root, start_date="2025-06-02", end_date="2025-06-03", employee=self.employee)
        foreign = self.pending()

        request = RequestFactory().post("/admin/leave/leaverequest/")
        request.user = root
        self.assertTrue(model_admin.has_delete_permission(request, own))
        self.assertFalse(model_admin.has_delete_permission(request, foreign))

        model_admin.delete_queryset(request, LeaveRequest.objects.all())
        self.assertEqual(list(LeaveRequest.objects.values_list("pk", flat=True)), [foreign.pk])

    def test_missing_request(self):
        req = self.draft()
        LeaveRequest.objects.filter(pk=req.pk).delete()
        with self.assertRaises(NotFound):
            workflow.delete_request(req, self.user)
        with self.assertRaises(NotFound):
            workflow.get_request(req.pk)


# =========================
# Stored invariants
# =========================

@override_settings(MEDIA_ROOT=TEMP_MEDIA)
class ConstraintTestCase(LeaveTestMixin, TestCase):

    def test_signature_without_timestamp_refused_by_db(self):
        req = self.pending()
        with self.assertRaises(IntegrityError), transaction.atomic():
            LeaveRequest.objects.filter(pk=req.pk).update(employee_signed_at=None)

    def test_timestamp_without_signature_refused_by_db(self):
        req = self.draft()
        with self.assertRaises(IntegrityError), transaction.atomic():
            LeaveRequest.objects.filter(pk=req.pk).update(department_head_signed_at=req.created_at)

    def test_rejection_reason_only_on_rejected(self):
        req = self.pending()
        with self.assertRaises(IntegrityError), transaction.atomic():
            LeaveRequest.objects.filter(pk=req.pk).update(rejection_reason="x")

    def test_rejected_without_reason_refused_by_db(self):
        req = self.pending()
        with self.assertRaises(IntegrityError), transaction.atomic():
            LeaveRequest.objects.filter(pk=req.pk).update(status=Status.REJECTED)

    def test_clean_reports_inverted_dates(self):
        req = LeaveRequest(employee=self.employee, user=self.user, year=2025,
                           start_date=date(2025, 3, 14), end_date=date(2025, 3, 10))
        with self.assertRaises(ValidationError) as ctx:
            req.clean()
        self.assertIn("end_date", ctx.exception.message_dict)


# =========================
# Concurrency
# =========================

@override_settings(MEDIA_ROOT=TEMP_MEDIA)
class StaleCopyTestCase(LeaveTestMixin, TestCase):
    """Two approvers working from copies loaded before either decided."""

    def test_stale_copy_is_refused(self):
        pk = self.pending().pk
        first = workflow.get_request(pk)
        second = workflow.get_request(pk)

        workflow.approve(first, self.head, signature=SIGNATURE)
        with self.assertRaises(ConcurrentModification):
            workflow.approve(second, self.head, signature=SIGNATURE)

        self.assertEqual(self.used(), 5)
        self.assertEqual(LeaveRequest.objects.get(pk=pk).status, Status.APPROVED)

    def test_retry_sees_terminal_state(self):
        pk = self.pending().pk
        first = workflow.get_request(pk)
        second = workflow.get_request(pk)

        workflow.approve(first, self.head, signature=SIGNATURE)
        with self.assertRaises(InvalidTransition):
            workflow.with_conflict_retry(workflow.approve)(second, self.head, signature=SIGNATURE)
        self.assertEqual(self.used(), 5)

    def test_stale_reject_after_approve(self):
        pk = self.pending().pk
        first = workflow.get_request(pk)
        second = workflow.get_request(pk)

        workflow.approve(first, self.head, signature=SIGNATURE)
        with self.assertRaises(ConcurrentModification):
            workflow.reject(second, self.head, reason="prea târziu")
        self.assertEqual(LeaveRequest.objects.get(pk=pk).rejection_reason, "")


@override_settings(MEDIA_ROOT=TEMP_MEDIA)
class ConcurrentApprovalTestCase(LeaveTestMixin, TransactionTestCase):
    """Parallel approvals of the same request (requires PostgreSQL)."""

    def test_concurrent_approvals_draw_once(self):
        if 'sqlite' in connection.vendor:
            self.skipTest("SQLite doesn't support concurrent transactions")

        pk = self.pending().pk
        results = {'approved': [], 'refused': []}
        barrier = threading.Barrier(2)

        def attempt(thread_id):
            try:
                req = workflow.get_request(pk)
                barrier.wait()
                workflow.approve(req, self.head, signature=SIGNATURE)
                results['approved'].append(thread_id)
            except (ConcurrentModification, InvalidTransition):
                results['refused'].append(thread_id)
            finally:
                connection.close()

        threads = [threading.Thread(target=attempt, args=(i,)) for i in (1, 2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(results['approved']), 1)
        self.assertEqual(len(results['refused']), 1)
        self.assertEqual(self.used(), 5)


@override_settings(MEDIA_ROOT=TEMP_MEDIA)
class ConcurrentBalanceTestCase(LeaveTestMixin, TransactionTestCase):
    """Parallel approvals of two requests drawing on the same balance (requires PostgreSQL)."""

    def test_second_approval_sees_first_draw(self):
        if 'sqlite' in connection.vendor:
            self.skipTest("SQLite doesn't support concurrent transactions")

        self.set_used(16)
        pks = [
            self.pending(date(2025, 3, 10), date(2025, 3, 13)).pk,
            self.pending(date(2025, 6, 2), date(2025, 6, 5)).pk,
        ]
        results = {'approved': [], 'needs_override': []}
        barrier = threading.Barrier(2)

        def attempt(pk):
            try:
                req = workflow.get_request(pk)
                barrier.wait()
                workflow.approve(req, self.head, signature=SIGNATURE)
                results['approved'].append(pk)
            except BalanceOverrideRequired:
                results['needs_override'].append(pk)
            finally:
                connection.close()

        threads = [threading.Thread(target=attempt, args=(pk,)) for pk in pks]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(results['approved']), 1)
        self.assertEqual(len(results['needs_override']), 1)
        self.assertEqual(self.used(), 20)
        self.assertFalse(LeaveRequest.objects.filter(balance_override=True).exists())


class ConcurrentNumberingTestCase(LeaveTestMixin, TransactionTestCase):
    """Parallel creates in the same year (requires PostgreSQL)."""

    def test_parallel_creates_get_distinct_numbers(self):
        if 'sqlite' in connection.vendor:
            self.skipTest("SQLite doesn't support concurrent transactions")

        self.draft()
        numbers, errors = [], []
        barrier = threading.Barrier(2)

        def attempt(start):
            try:
                barrier.wait()
                numbers.append(workflow.create_request(self.user, start_date=start, end_date=start).request_number)
            except Exception as e:
                errors.append(e)
            finally:
                connection.close()

        threads = [threading.Thread(target=attempt, args=(d,)) for d in (date(2025, 6, 2), date(2025, 6, 3))]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(errors, [])
        self.assertEqual(sorted(numbers), ["CO-2025-0002", "CO-2025-0003"])


# =========================
# JSON endpoints
# =========================

@override_settings(MEDIA_ROOT=TEMP_MEDIA, RATELIMIT_ENABLE=False)
class LeaveViewsTestCase(LeaveTestMixin, TestCase):

    def post_json(self, url, data=None):
        return self.client.post(url, data=json.dumps(data or {}), content_type="application/json")

    def test_login_required(self):
        response = self.client.get(reverse("leave:my_requests"))
        self.assertEqual(response.status_code, 302)

    def test_create_and_submit(self):
        self.client.force_login(self.user)
        response = self.post_json(reverse("leave:create"), {
            "start_date": "2025-04-28",
            "end_date": "2025-05-02",
            "replacement_name": "Ion Ionescu",
            "signature": SIGNATURE_URL,
        })
        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body["status"], Status.PENDING_DEPARTMENT_HEAD)
        self.assertEqual(body["working_days"], 4)
        self.assertEqual(body["replacement_name"], "Ion Ionescu")
        self.assertIsNotNone(body["employee_signed_at"])

    def test_create_draft_without_signature(self):
        self.client.force_login(self.user)
        response = self.post_json(reverse("leave:create"), {"start_date": "2025-03-10", "end_date": "2025-03-14"})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["status"], Status.DRAFT)

    def test_create_validation_error(self):
        self.client.force_login(self.user)
        response = self.post_json(reverse("leave:create"), {"start_date": "2025-03-14", "end_date": "2025-03-10"})
        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertEqual(body["error"], "validation_error")
        self.assertIn("end_date", body["fields"])

    def test_create_rejects_non_object_body(self):
        self.client.force_login(self.user)
        response = self.client.post(reverse("leave:create"), data="[1, 2]", content_type="application/json")
        self.assertEqual(response.status_code, 400)

    def test_create_from_form_with_uploaded_signature(self):
        from django.core.files.uploadedfile import SimpleUploadedFile

        self.client.force_login(self.user)
        response = self.client.post(reverse("leave:create"), {
            "start_date": "2025-03-10",
            "end_date": "2025-03-14",
            "signature": SimpleUploadedFile("sig.png", SIGNATURE, content_type="image/png"),
        })
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["status"], Status.PENDING_DEPARTMENT_HEAD)

    def test_preview(self):
        LeaveCarryover.objects.create(employee=self.employee, from_year=2024, to_year=2025, initial_days=2)
        self.client.force_login(self.user)
        response = self.client.get(reverse("leave:preview"), {"start_date": "2025-04-28", "end_date": "2025-05-02"})
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["working_days"], 4)
        self.assertEqual(body["remaining"], 23)
        self.assertEqual(body["from_carryover"], 2)
        self.assertEqual(body["from_current_year"], 2)
        self.assertEqual(len(body["warnings"]), 1)
        self.assertIn("Ziua Muncii", body["warnings"][0])

    def test_preview_warns_on_short_balance(self):
        self.set_used(20)
        self.client.force_login(self.user)
        body = self.client.get(
            reverse("leave:preview"), {"start_date": "2025-03-10", "end_date": "2025-03-14"}
        ).json()
        self.assertEqual(body["balance_level"], "warning")
        self.assertTrue(any("1" in w for w in body["warnings"]))

    def test_balance(self):
        self.set_used(4)
        self.client.force_login(self.user)
        body = self.client.get(reverse("leave:balance"), {"year": 2025}).json()
        self.assertEqual(body, {"year": 2025, "total": 21, "carryover": 0, "used": 4, "remaining": 17, "level": "ok"})

    def test_balance_rejects_bad_year(self):
        self.client.force_login(self.user)
        response = self.client.get(reverse("leave:balance"), {"year": "abc"})
        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertEqual(body["error"], "validation_error")
        self.assertIn("year", body["fields"])

    def test_preview_refuses_overlong_period(self):
        self.client.force_login(self.user)
        response = self.client.get(reverse("leave:preview"), {"start_date": "2030-01-01", "end_date": "2129-12-31"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("end_date", response.json()["fields"])

    def test_balance_without_employee_record(self):
        self.client.force_login(self.outsider)
        response = self.client.get(reverse("leave:balance"))
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"], "not_found")

    def test_detail_visibility(self):
        req = self.pending()
        self.client.force_login(self.outsider)
        self.assertEqual(self.client.get(reverse("leave:detail", args=[req.pk])).status_code, 403)
        self.client.force_login(self.head)
        self.assertEqual(self.client.get(reverse("leave:detail", args=[req.pk])).status_code, 200)
        self.assertEqual(self.client.get(reverse("leave:detail", args=[req.pk + 100])).status_code, 404)

    def test_approve_needs_override_confirmation(self):
        self.set_used(18)
        req = self.pending()
        self.client.force_login(self.head)
        response = self.post_json(reverse("leave:approve", args=[req.pk]), {"signature": SIGNATURE_URL})
        self.assertEqual(response.status_code, 409)
        body = response.json()
        self.assertEqual(body["error"], "balance_override_required")
        self.assertEqual((body["remaining"], body["requested"]), (3, 5))

        response = self.post_json(
            reverse("leave:approve", args=[req.pk]), {"signature": SIGNATURE_URL, "override": True}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], Status.APPROVED)
        self.assertTrue(response.json()["balance_override"])
        self.assertEqual(self.used(), 23)

    def test_approve_forbidden_for_outsider(self):
        req = self.pending()
        self.client.force_login(self.outsider)
        response = self.post_json(reverse("leave:approve", args=[req.pk]), {"signature": SIGNATURE_URL})
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["error"], "insufficient_permission")

    def test_approve_twice_conflicts(self):
        req = self.pending()
        self.client.force_login(self.head)
        self.post_json(reverse("leave:approve", args=[req.pk]), {"signature": SIGNATURE_URL})
        response = self.post_json(reverse("leave:approve", args=[req.pk]), {"signature": SIGNATURE_URL})
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["error"], "invalid_transition")
        self.assertEqual(self.used(), 5)

    def test_reject_without_reason(self):
        req = self.pending()
        self.client.force_login(self.head)
        response = self.post_json(reverse("leave:reject", args=[req.pk]), {})
        self.assertEqual(response.status_code, 400)
        self.assertIn("rejection_reason", response.json()["fields"])
        req.refresh_from_db()
        self.assertEqual(req.status, Status.PENDING_DEPARTMENT_HEAD)

    def test_reject(self):
        req = self.pending()
        self.client.force_login(self.head)
        response = self.post_json(reverse("leave:reject", args=[req.pk]), {"rejection_reason": "Inventar"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["rejection_reason"], "Inventar")

    def test_sign_endpoint(self):
        req = self.draft()
        self.client.force_login(self.user)
        response = self.post_json(reverse("leave:sign", args=[req.pk]), {"signature": SIGNATURE_URL})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], Status.PENDING_DEPARTMENT_HEAD)

    def test_delete(self):
        draft = self.draft()
        approved = workflow.approve(self.pending(date(2025, 6, 2), date(2025, 6, 3)), self.head, signature=SIGNATURE)
        self.client.force_login(self.user)
        self.assertEqual(self.client.delete(reverse("leave:delete", args=[draft.pk])).status_code, 200)
        self.assertEqual(self.client.post(reverse("leave:delete", args=[approved.pk])).status_code, 409)

    def test_override_endpoint(self):
        hr = self.make_hr()
        req = self.pending()
        self.client.force_login(hr)
        response = self.post_json(
            reverse("leave:override", args=[req.pk]), {"decision": "approve", "reason": "Șeful în concediu"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["decision_capacity"], Capacity.HR)

    def test_pending_and_history(self):
        req = self.pending()
        self.client.force_login(self.head)
        pending = self.client.get(reverse("leave:pending")).json()["results"]
        self.assertEqual([r["id"] for r in pending], [req.pk])

        workflow.approve(req, self.head, signature=SIGNATURE)
        self.assertEqual(self.client.get(reverse("leave:pending")).json()["results"], [])
        history = self.client.get(reverse("leave:history")).json()["results"]
        self.assertEqual([r["id"] for r in history], [req.pk])

    def test_my_requests(self):
        req = self.draft()
        self.client.force_login(self.user)
        results = self.client.get(reverse("leave:my_requests")).json()["results"]
        self.assertEqual([r["request_number"] for r in results], [req.request_number])
