# File: leave/workflow.py
# Version: 1.1.0
# Author: vas
# Modified: 2026-10-18

"""
Leave request state machine.

    (new) --create--> draft --employee signs--> pending_department_head
    pending_department_head --approve--> approved
    pending_department_head --reject-->  rejected

HR and super-admins can take either decision without a department-head
signature through `hr_override`.

Every transition runs in one transaction against a row-locked, version-checked
copy of the request. A caller holding a stale copy gets ConcurrentModification
(use `with_conflict_retry` to retry once with fresh state). The employee's
used-days counter moves exactly once, on approval, through an atomic F()
update. Notifications are sent after commit and can never undo a transition.
"""
from __future__ import annotations

import logging
from datetime import date
from functools import wraps
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.utils import timezone
from django.utils.dateparse import parse_date
from django.utils.translation import gettext as _

from concurrency.exceptions import RecordModifiedError

from core.utils.authz import is_hr_or_admin, is_super_admin
from employees.balance import balance_for, can_approve, employee_for_user
from employees.calendar import count_working_days, custom_holiday_dates
from employees.models import Employee
from notifications import dispatch
from .approvers import approval_capacity
from .exceptions import (
    BalanceOverrideRequired,
    ConcurrentModification,
    InsufficientPermission,
    InvalidTransition,
    NotFound,
    ValidationError,
)
from .models import LeaveRequest
from .signatures import signature_content

leave_logger = logging.getLogger("intranet.leave")

Status = LeaveRequest.Status


# ---------- lookups ----------

def get_request(pk) -> LeaveRequest:
    try:
        return LeaveRequest.objects.select_related("employee", "employee__department", "user").get(pk=pk)
    except (LeaveRequest.DoesNotExist, ValueError):
        raise NotFound(_("Leave request not found."))


def _coerce_date(value, field: str) -> date:
    if isinstance(value, date):
        return value
    parsed = None
    try:
        parsed = parse_date(str(value or "").strip())
    except ValueError:
        pass
    if parsed is None:
        raise ValidationError({field: _("Enter a valid date (YYYY-MM-DD).")})
    return parsed


def max_request_days() -> int:
    return getattr(settings, "LEAVE_MAX_REQUEST_DAYS", 366)


def check_span(start: date, end: date):
    """Refuse periods longer than LEAVE_MAX_REQUEST_DAYS calendar days."""
    limit = max_request_days()
    if end >= start and (end - start).days + 1 > limit:
        raise ValidationError({"end_date": _("A leave period can span at most %(n)s calendar days.") % {"n": limit}})


def _require_authenticated(user):
    if not (user and user.is_authenticated):
        raise InsufficientPermission(_("You must be signed in."))


def _lock(leave_request: LeaveRequest) -> LeaveRequest:
    """Row-lock the request and make sure the caller's copy is the current one."""
    try:
        current = LeaveRequest.objects.select_for_update().get(pk=leave_request.pk)
    except LeaveRequest.DoesNotExist:
        raise NotFound(_("Leave request not found."))
    if current.version != leave_request.version:
        raise ConcurrentModification(
            _("Request %(number)s was changed by someone else. Reload and try again.")
            % {"number": current.request_number}
        )
    return current


def _save(current: LeaveRequest, user, reason: str):
    current._history_user = user
    current._change_reason = reason
    try:
        current.save()
    except RecordModifiedError:
        raise ConcurrentModification(
            _("Request %(number)s was changed by someone else. Reload and try again.")
            % {"number": current.request_number}
        )


def _refuse_final(current: LeaveRequest):
    if current.is_final:
        raise InvalidTransition(
            _("Request %(number)s is already %(status)s.")
            % {"number": current.request_number, "status": current.get_status_display().lower()}
        )


def with_conflict_retry(fn):
    """Run a transition; on ConcurrentModification reload the request and try exactly once more."""
    @wraps(fn)
    def wrapper(leave_request, *args, **kwargs):
        try:
            return fn(leave_request, *args, **kwargs)
        except ConcurrentModification:
            leave_logger.info(f"Retrying {fn.__name__} on request #{leave_request.pk} after a concurrent change")
            leave_request.refresh_from_db()
            return fn(leave_request, *args, **kwargs)
    return wrapper


# ---------- create ----------

def create_request(
    user,
    *,
    start_date,
    end_date,
    replacement_name: str = "",
    replacement_position: str = "",
    year: Optional[int] = None,
    employee: Optional[Employee] = None,
) -> LeaveRequest:
    """
    Create a draft request for the caller's own employee record
    (HR/admin may pass `employee` to file on someone's behalf).
    """
    _require_authenticated(user)

    if employee is None:
        employee = employee_for_user(user)
        if employee is None:
            raise NotFound(_("No employee record is linked to your account."))
    elif employee.user_id != user.pk and not is_hr_or_admin(user):
        raise InsufficientPermission(_("You can only file leave for yourself."))

    start = _coerce_date(start_date, "start_date")
    end = _coerce_date(end_date, "end_date")
    if end < start:
        raise ValidationError({"end_date": _("End date must be on/after the start date.")})
    check_span(start, end)

    working_days = count_working_days(start, end, custom_holiday_dates())
    if working_days <= 0:
        raise ValidationError({"start_date": _("The selected period contains no working days.")})

    obj = LeaveRequest(
        employee=employee,
        user=user,
        start_date=start,
        end_date=end,
        working_days=working_days,
        year=year or start.year,
        replacement_name=(replacement_name or "").strip(),
        replacement_position=(replacement_position or "").strip(),
        status=Status.DRAFT,
    )
    obj.full_clean(exclude=["request_number", "version"])
    obj._history_user = user
    obj._change_reason = "created"
    obj.save()

    leave_logger.info(
        f"Leave request {obj.request_number} created for {employee} "
        f"({start.isoformat()}..{end.isoformat()}, {working_days} working days)"
    )
    return obj


# ---------- employee signature ----------

def sign_as_employee(leave_request: LeaveRequest, user, signature) -> LeaveRequest:
    """draft → pending_department_head. The signature can be given only once."""
    _require_authenticated(user)

    with transaction.atomic():
        current = _lock(leave_request)
        if current.user_id != user.pk:
            raise InsufficientPermission(_("Only the person who filed the request can sign it."))
        _refuse_final(current)
        if current.employee_signoff.signed:
            raise InvalidTransition(_("Request %(number)s is already signed.") % {"number": current.request_number})
        if current.status != Status.DRAFT:
            raise InvalidTransition(_("Only draft requests can be signed."))

        content = signature_content(signature, prefix=f"{current.request_number}-employee")
        current.employee_signature.save(content.name, content, save=False)
        current.employee_signed_at = timezone.now()
        current.status = Status.PENDING_DEPARTMENT_HEAD
        _save(current, user, "employee signed")

        transaction.on_commit(lambda: dispatch.notify_submitted(current))

    leave_logger.info(f"Leave request {current.request_number} signed by employee, awaiting department head")
    return current


def submit_request(user, *, signature, **fields) -> LeaveRequest:
    """Create and sign in one step (the request form collects the signature up front)."""
    with transaction.atomic():
        obj = create_request(user, **fields)
        return sign_as_employee(obj, user, signature)


# ---------- department head decision ----------

def _require_pending(current: LeaveRequest):
    _refuse_final(current)
    if current.status != Status.PENDING_DEPARTMENT_HEAD:
        raise InvalidTransition(_("The employee has not signed this request yet."))


def _require_capacity(current: LeaveRequest, user) -> str:
    capacity = approval_capacity(user, current)
    if not capacity:
        raise InsufficientPermission(_("You are not a department head for this employee's department."))
    return capacity


def _approve_locked(current: LeaveRequest, user, *, capacity: str, content, override: bool, reason: str):
    """Approve a locked, pending request and draw its days. Returns the balance seen before drawing."""
    # serialises approvals drawing on the same employee
    employee = Employee.objects.select_for_update().get(pk=current.employee_id)
    balance = balance_for(employee, current.year)
    sufficient = can_approve(current, balance)
    if not sufficient and not override:
        raise BalanceOverrideRequired(
            _("Only %(remaining)s day(s) left, %(requested)s requested. Confirm to approve anyway.")
            % {"remaining": balance.remaining, "requested": current.working_days},
            remaining=balance.remaining,
            requested=current.working_days,
        )

    if content is not None:
        current.department_head_signature.save(content.name, content, save=False)
        current.department_head_signed_at = timezone.now()
    current.dept_head = user
    current.decision_capacity = capacity
    current.balance_override = not sufficient
    current.status = Status.APPROVED
    _save(current, user, reason)

    Employee.objects.filter(pk=current.employee_id).update(
        used_leave_days=F("used_leave_days") + current.working_days,
        version=F("version") + 1,
    )

    transaction.on_commit(lambda: dispatch.notify_decided(current))
    return balance


def _reject_locked(current: LeaveRequest, user, *, capacity: str, reason: str, change_reason: str):
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError({"rejection_reason": _("A rejection reason is required.")})

    current.rejected_by = user
    current.rejected_at = timezone.now()
    current.rejection_reason = reason
    current.decision_capacity = capacity
    current.status = Status.REJECTED
    _save(current, user, change_reason)

    transaction.on_commit(lambda: dispatch.notify_decided(current))


def _log_approval(current: LeaveRequest, user, capacity: str, balance):
    if current.balance_override:
        leave_logger.warning(
            f"Leave request {current.request_number} approved over balance by {user} "
            f"(remaining {balance.remaining}, requested {current.working_days})"
        )
    leave_logger.info(f"Leave request {current.request_number} approved by {user} as {capacity}")


def approve(leave_request: LeaveRequest, user, *, signature, override: bool = False) -> LeaveRequest:
    """
    pending_department_head → approved, and draw the days from the balance.

    When the remaining balance does not cover the request the approval is
    refused with BalanceOverrideRequired unless `override=True`; the request
    is then approved anyway and flagged `balance_override`.
    """
    _require_authenticated(user)

    with transaction.atomic():
        current = _lock(leave_request)
        _require_pending(current)
        capacity = _require_capacity(current, user)
        if current.department_head_signoff.signed:
            raise InvalidTransition(_("Request %(number)s is already signed.") % {"number": current.request_number})

        content = signature_content(signature, prefix=f"{current.request_number}-head")
        balance = _approve_locked(current, user, capacity=capacity, content=content, override=override,
                                  reason="approved")

    _log_approval(current, user, capacity, balance)
    return current


def reject(leave_request: LeaveRequest, user, *, reason: str) -> LeaveRequest:
    """pending_department_head → rejected. The balance is left alone."""
    _require_authenticated(user)

    with transaction.atomic():
        current = _lock(leave_request)
        _require_pending(current)
        capacity = _require_capacity(current, user)
        _reject_locked(current, user, capacity=capacity, reason=reason, change_reason="rejected")

    leave_logger.info(f"Leave request {current.request_number} rejected by {user} as {capacity}")
    return current


# ---------- HR / super-admin override ----------

class Decision:
    APPROVE = "approve"
    REJECT = "reject"


def hr_override(leave_request: LeaveRequest, user, *, decision: str, reason: str, override: bool = False) -> LeaveRequest:
    """
    HR or a super-admin decides a pending request without a department-head
    signature. `reason` is mandatory for both decisions: it becomes the
    rejection reason, or the audit note on an approval. The balance rule is
    the same as for `approve`.
    """
    _require_authenticated(user)
    if decision not in (Decision.APPROVE, Decision.REJECT):
        raise ValidationError({"decision": _("Decision must be 'approve' or 'reject'.")})
    if not is_hr_or_admin(user):
        raise InsufficientPermission(_("Only HR or an administrator can override a request."))
    reason = (reason or "").strip()
    if not reason:
        field = "rejection_reason" if decision == Decision.REJECT else "reason"
        raise ValidationError({field: _("A reason is required for an override.")})

    with transaction.atomic():
        current = _lock(leave_request)
        _require_pending(current)
        capacity = LeaveRequest.Capacity.SUPER_ADMIN if is_super_admin(user) else LeaveRequest.Capacity.HR
        note = f"{capacity} override: {reason}"[:100]
        if decision == Decision.APPROVE:
            balance = _approve_locked(current, user, capacity=capacity, content=None, override=override, reason=note)
        else:
            _reject_locked(current, user, capacity=capacity, reason=reason, change_reason=note)

    if decision == Decision.APPROVE:
        _log_approval(current, user, capacity, balance)
    else:
        leave_logger.info(f"Leave request {current.request_number} rejected by {user} as {capacity}")
    leave_logger.warning(f"Leave request {current.request_number} decided by {capacity} override ({user}): {reason}")
    return current


# ---------- deletion ----------

def can_delete(leave_request: LeaveRequest, user) -> bool:
    return bool(
        user and user.is_authenticated
        and leave_request.user_id == user.pk
        and not leave_request.is_final
    )


def delete_request(leave_request: LeaveRequest, user) -> None:
    """Owners may withdraw their own request until it is decided."""
    _require_authenticated(user)

    with transaction.atomic():
        try:
            current = LeaveRequest.objects.select_for_update().get(pk=leave_request.pk)
        except LeaveRequest.DoesNotExist:
            raise NotFound(_("Leave request not found."))
        if current.user_id != user.pk:
            raise InsufficientPermission(_("Only the person who filed the request can delete it."))
        if current.is_final:
            raise InvalidTransition(_("Decided requests cannot be deleted."))
        number = current.request_number
        current._history_user = user
        current.delete()

    leave_logger.warning(f"Leave request {number} deleted by {user}")
