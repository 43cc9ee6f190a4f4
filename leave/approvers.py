# File: leave/approvers.py
# Version: 1.0.0
# Author: vas
# Modified: 2026-10-18

"""Who may decide on a leave request, and for which departments."""
from __future__ import annotations

from datetime import date
from typing import Optional

from django.contrib.auth import get_user_model
from django.db.models import Q
from django.utils import timezone

from core.utils.authz import is_hr, is_super_admin
from employees.models import Department, DepartmentHead
from .models import ApprovalDelegation, LeaveRequest

User = get_user_model()


def _current_delegations(on: date):
    return ApprovalDelegation.objects.filter(is_active=True, start_date__lte=on, end_date__gte=on)


def delegated_department_ids(user, on: Optional[date] = None) -> set[int]:
    """Departments `user` currently covers as a delegate."""
    on = on or timezone.localdate()
    ids: set[int] = set()
    for d in _current_delegations(on).filter(delegate=user).select_related("delegator"):
        headed = set(
            DepartmentHead.objects.filter(user_id=d.delegator_id).values_list("department_id", flat=True)
        )
        if d.department_id:
            headed &= {d.department_id}
        ids |= headed
    return ids


def headed_department_ids(user) -> set[int]:
    return set(DepartmentHead.objects.filter(user=user).values_list("department_id", flat=True))


def approval_capacity(user, leave_request: LeaveRequest, on: Optional[date] = None) -> Optional[str]:
    """
    The capacity in which `user` may decide on `leave_request`, or None.
    Department head wins over delegate, which wins over the HR/admin overrides.
    """
    if not (user and user.is_authenticated):
        return None
    dept_id = leave_request.employee.department_id
    if dept_id and dept_id in headed_department_ids(user):
        return LeaveRequest.Capacity.DEPARTMENT_HEAD
    if dept_id and dept_id in delegated_department_ids(user, on):
        return LeaveRequest.Capacity.DELEGATE
    if is_super_admin(user):
        return LeaveRequest.Capacity.SUPER_ADMIN
    if is_hr(user):
        return LeaveRequest.Capacity.HR
    return None


def approvers_for(department: Optional[Department], on: Optional[date] = None) -> list:
    """Heads of `department` plus whoever currently stands in for them."""
    if department is None:
        return []
    on = on or timezone.localdate()
    head_ids = set(department.heads.values_list("user_id", flat=True))
    delegate_ids = set(
        _current_delegations(on)
        .filter(delegator_id__in=head_ids)
        .filter(Q(department__isnull=True) | Q(department=department))
        .values_list("delegate_id", flat=True)
    )
    return list(User.objects.filter(pk__in=head_ids | delegate_ids, is_active=True).order_by("pk"))


def pending_for_approver(user, on: Optional[date] = None):
    """Requests awaiting a decision that `user` may take."""
    qs = (
        LeaveRequest.objects
        .filter(status=LeaveRequest.Status.PENDING_DEPARTMENT_HEAD)
        .select_related("employee", "employee__department")
        .order_by("created_at", "id")
    )
    if is_super_admin(user) or is_hr(user):
        return qs
    dept_ids = headed_department_ids(user) | delegated_department_ids(user, on)
    return qs.filter(employee__department_id__in=dept_ids)


def approval_history(user):
    """Requests `user` approved or rejected, newest decision first."""
    return (
        LeaveRequest.objects
        .filter(Q(dept_head=user) | Q(rejected_by=user))
        .select_related("employee")
        .order_by("-updated_at", "-id")
    )
