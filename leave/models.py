# File: leave/models.py
# Version: 1.1.0
# Author: vas
# Modified: 2026-10-18

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Union

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from simple_history.models import HistoricalRecords
from concurrency.fields import AutoIncVersionField

from employees.models import Department, Employee


# ------------------------------
# Signature state (one per signer)
# ------------------------------

@dataclass(frozen=True)
class Unsigned:
    signed = False


@dataclass(frozen=True)
class Signed:
    reference: str
    at: datetime
    signed = True


SignatureState = Union[Unsigned, Signed]


def _signature_pair_ok(prefix: str) -> Q:
    """Signature reference and signed-at timestamp are set together or not at all."""
    empty = Q(**{f"{prefix}_signature": ""})
    return (empty & Q(**{f"{prefix}_signed_at__isnull": True})) | (
        ~empty & Q(**{f"{prefix}_signed_at__isnull": False})
    )


# ------------------------------
# Leave request
# ------------------------------

class LeaveRequest(models.Model):
    """
    One leave request and its signatures.

    Lifecycle: draft → pending_department_head → approved | rejected.
    Transitions go through leave.workflow; do not set `status` or the
    signature fields directly.
    """

    class Status(models.TextChoices):
        DRAFT = "draft", _("Draft")
        PENDING_DEPARTMENT_HEAD = "pending_department_head", _("Awaiting department head")
        APPROVED = "approved", _("Approved")
        REJECTED = "rejected", _("Rejected")

    class Capacity(models.TextChoices):
        DEPARTMENT_HEAD = "department_head", _("Department head")
        DELEGATE = "delegate", _("Delegate")
        HR = "hr", _("HR override")
        SUPER_ADMIN = "super_admin", _("Super-admin override")

    TERMINAL_STATES = frozenset({Status.APPROVED, Status.REJECTED})

    request_number = models.CharField(_("Request number"), max_length=32, unique=True, blank=True, editable=False)

    employee = models.ForeignKey(
        Employee, on_delete=models.PROTECT, related_name="leave_requests", verbose_name=_("Employee")
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="leave_requests",
        verbose_name=_("Submitted by"),
    )

    start_date = models.DateField(_("Start"))
    end_date = models.DateField(_("End"))
    working_days = models.PositiveSmallIntegerField(_("Working days"), default=0, editable=False)
    year = models.PositiveIntegerField(_("Entitlement year"))

    replacement_name = models.CharField(_("Replacement"), max_length=160, blank=True)
    replacement_position = models.CharField(_("Replacement position"), max_length=160, blank=True)

    status = models.CharField(
        _("Status"), max_length=32, choices=Status.choices, default=Status.DRAFT, db_index=True
    )

    employee_signature = models.FileField(
        _("Employee signature"), upload_to="signatures/leave/%Y/%m/", blank=True, editable=False
    )
    employee_signed_at = models.DateTimeField(_("Employee signed at"), null=True, blank=True, editable=False)

    department_head_signature = models.FileField(
        _("Department head signature"), upload_to="signatures/leave/%Y/%m/", blank=True, editable=False
    )
    department_head_signed_at = models.DateTimeField(
        _("Department head signed at"), null=True, blank=True, editable=False
    )
    dept_head = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="leave_requests_approved",
        verbose_name=_("Approved by"),
    )
    decision_capacity = models.CharField(
        _("Decided as"), max_length=16, choices=Capacity.choices, blank=True, editable=False
    )
    balance_override = models.BooleanField(
        _("Approved over balance"),
        default=False,
        editable=False,
        help_text=_("Set when the approver confirmed an approval the remaining balance did not cover."),
    )

    rejected_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="leave_requests_rejected",
        verbose_name=_("Rejected by"),
    )
    rejected_at = models.DateTimeField(_("Rejected at"), null=True, blank=True, editable=False)
    rejection_reason = models.TextField(_("Rejection reason"), blank=True)

    created_at = models.DateTimeField(_("Created at"), auto_now_add=True)
    updated_at = models.DateTimeField(_("Updated at"), auto_now=True)

    history = HistoricalRecords()
    version = AutoIncVersionField()

    class Meta:
        verbose_name = _("Leave request")
        verbose_name_plural = _("Leave requests")
        ordering = ("-created_at", "-id")
        indexes = [
            models.Index(fields=["status", "created_at"], name="ix_leaverequest_status"),
            models.Index(fields=["employee", "year"], name="ix_leaverequest_employee_year"),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(end_date__gte=models.F("start_date")),
                name="ck_leaverequest_dates_order",
            ),
            models.CheckConstraint(
                check=_signature_pair_ok("employee"),
                name="ck_leaverequest_employee_signature_pair",
            ),
            models.CheckConstraint(
                check=_signature_pair_ok("department_head"),
                name="ck_leaverequest_depthead_signature_pair",
            ),
            models.CheckConstraint(
                check=(Q(status="rejected") & ~Q(rejection_reason=""))
                | (~Q(status="rejected") & Q(rejection_reason="")),
                name="ck_leaverequest_rejection_reason",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.request_number or '—'} {self.employee} ({self.start_date:%d.%m.%Y}–{self.end_date:%d.%m.%Y})"

    # ---- signatures ----
    @staticmethod
    def _signoff(reference, at) -> SignatureState:
        if reference and at:
            return Signed(reference=reference.name, at=at)
        return Unsigned()

    @property
    def employee_signoff(self) -> SignatureState:
        return self._signoff(self.employee_signature, self.employee_signed_at)

    @property
    def department_head_signoff(self) -> SignatureState:
        return self._signoff(self.department_head_signature, self.department_head_signed_at)

    @property
    def is_final(self) -> bool:
        return self.status in self.TERMINAL_STATES

    # ---- numbering ----
    def _generate_request_number(self) -> str:
        # CO-<year>-<seq>; sequence restarts every entitlement year
        return f"CO-{self.year}-{RequestNumberCounter.next_for(self.year):04d}"

    def clean(self):
        super().clean()
        errors = {}

        if self.start_date and self.end_date and self.end_date < self.start_date:
            errors["end_date"] = _("End date must be on/after the start date.")

        if self.status == self.Status.REJECTED and not (self.rejection_reason or "").strip():
            errors["rejection_reason"] = _("A rejection reason is required.")
        if self.status != self.Status.REJECTED and self.rejection_reason:
            errors["rejection_reason"] = _("Only rejected requests carry a rejection reason.")

        if bool(self.employee_signature) != bool(self.employee_signed_at):
            errors["employee_signature"] = _("Signature and signing time must be set together.")
        if bool(self.department_head_signature) != bool(self.department_head_signed_at):
            errors["department_head_signature"] = _("Signature and signing time must be set together.")

        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        if not self.year and self.start_date:
            self.year = self.start_date.year
        if not self.request_number:
            self.request_number = self._generate_request_number()
        super().save(*args, **kwargs)


# ------------------------------
# Request numbering
# ------------------------------

class RequestNumberCounter(models.Model):
    """Last request number issued per entitlement year."""
    year = models.PositiveIntegerField(_("Year"), unique=True)
    last_number = models.PositiveIntegerField(_("Last number"), default=0)

    class Meta:
        verbose_name = _("Request number counter")
        verbose_name_plural = _("Request number counters")

    def __str__(self) -> str:
        return f"CO-{self.year}: {self.last_number}"

    @classmethod
    def next_for(cls, year: int) -> int:
        """
        Issue the next number for `year`.
        The counter row is locked while it is bumped, so concurrent creates
        for the same year get distinct numbers. Numbers are never reused.
        """
        with transaction.atomic():
            counter, created = cls.objects.select_for_update().get_or_create(year=year)
            if created:
                counter.last_number = cls._highest_issued(year)
            counter.last_number += 1
            counter.save(update_fields=["last_number"])
            return counter.last_number

    @staticmethod
    def _highest_issued(year: int) -> int:
        prefix = f"CO-{year}-"
        highest = 0
        for code in LeaveRequest.objects.filter(request_number__startswith=prefix).values_list("request_number", flat=True):
            m = re.match(rf"^{re.escape(prefix)}(\d+)$", code or "")
            if m:
                highest = max(highest, int(m.group(1)))
        return highest


# ------------------------------
# Approval delegation
# ------------------------------

class ApprovalDelegation(models.Model):
    """
    A department head hands their approval rights to a colleague for a period
    (e.g. while on leave). Limited to one department when `department` is set.
    """
    delegator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="approval_delegations_given",
        verbose_name=_("Delegated by"),
    )
    delegate = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="approval_delegations_received",
        verbose_name=_("Delegate"),
    )
    department = models.ForeignKey(
        Department,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="approval_delegations",
        verbose_name=_("Department"),
        help_text=_("Leave empty to delegate for every department the delegator heads."),
    )
    start_date = models.DateField(_("From"))
    end_date = models.DateField(_("Until"))
    reason = models.CharField(_("Reason"), max_length=160, blank=True, default="concediu")
    is_active = models.BooleanField(_("Active"), default=True)

    created_at = models.DateTimeField(_("Created at"), auto_now_add=True)

    history = HistoricalRecords()

    class Meta:
        verbose_name = _("Approval delegation")
        verbose_name_plural = _("Approval delegations")
        ordering = ("-start_date",)
        constraints = [
            models.CheckConstraint(
                check=models.Q(end_date__gte=models.F("start_date")),
                name="ck_delegation_dates_order",
            ),
            models.CheckConstraint(
                check=~models.Q(delegator=models.F("delegate")),
                name="ck_delegation_not_self",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.delegator} → {self.delegate} ({self.start_date}–{self.end_date})"

    def clean(self):
        super().clean()
        errors = {}
        if self.start_date and self.end_date and self.end_date < self.start_date:
            errors["end_date"] = _("End must be on/after start.")
        if self.delegator_id and self.delegator_id == self.delegate_id:
            errors["delegate"] = _("You cannot delegate to yourself.")
        if errors:
            raise ValidationError(errors)

    def is_current(self, on: date) -> bool:
        return self.is_active and self.start_date <= on <= self.end_date
