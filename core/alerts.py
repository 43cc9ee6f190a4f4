# File: core/alerts.py
# Version: 1.1.0
# Author: vas
# Modified: 2026-10-18

from django.utils import timezone
from django.urls import reverse

from core.utils.authz import is_hr_or_admin


def build_alerts(user):
    """Dashboard alerts for `user`: pending approvals, own balance, HR balance watch-list."""
    from employees.balance import BalanceLevel, balance_alerts, balance_for, employee_for_user
    from leave.approvers import pending_for_approver
    from leave.models import LeaveRequest

    alerts = []
    if not (user and user.is_authenticated):
        return alerts
    year = timezone.localdate().year

    # Requests waiting for this user's decision
    pending = pending_for_approver(user).count()
    if pending:
        url = (
            reverse("admin:leave_leaverequest_changelist")
            + f"?status__exact={LeaveRequest.Status.PENDING_DEPARTMENT_HEAD}"
        )
        alerts.append({
            "text": f"{pending} cerere/cereri de concediu așteaptă aprobarea ta",
            "url": url,
            "level": "warning",
        })

    # Own balance running low
    employee = employee_for_user(user)
    if employee is not None:
        bal = balance_for(employee, year)
        if bal.level != BalanceLevel.OK:
            alerts.append({
                "text": f"Mai ai {bal.remaining} zile de concediu disponibile în {year}",
                "url": reverse("leave:balance"),
                "level": "danger" if bal.level == BalanceLevel.CRITICAL else "info",
            })

    # HR watch-list
    if is_hr_or_admin(user):
        for item in balance_alerts(year):
            alerts.append({
                "text": item["message"],
                "url": reverse("admin:employees_employee_change", args=[item["employee"].pk]),
                "level": "danger" if item["level"] == BalanceLevel.CRITICAL else "warning",
            })

    return alerts
