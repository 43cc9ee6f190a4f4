# File: notifications/reminders.py
# Version: 1.0.0
# Author: vas
# Modified: 2026-10-18

"""
Daily sweep over leave requests stuck with the department head.

  pending > LEAVE_REMINDER_AFTER_DAYS   → reminder to the approvers
  pending > LEAVE_ESCALATION_AFTER_DAYS → escalation to HR/admin as well

At most one notification of each class goes out per request per calendar
day. "Already sent today" is read back from the notifications table, so the
sweep keeps no state and can be re-run or retried freely.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.utils import timezone

from core.utils.authz import hr_and_admin_users
from leave.approvers import approvers_for
from leave.models import LeaveRequest
from .dispatch import LEAVE_REQUEST, deliver_many
from .models import Notification

notify_logger = logging.getLogger("intranet.notifications")


def reminder_after_days() -> int:
    return int(getattr(settings, "LEAVE_REMINDER_AFTER_DAYS", 3))


def escalation_after_days() -> int:
    return int(getattr(settings, "LEAVE_ESCALATION_AFTER_DAYS", 5))


def _start_of_day(now: datetime) -> datetime:
    local = timezone.localtime(now)
    return local.replace(hour=0, minute=0, second=0, microsecond=0)


def already_sent_today(leave_request: LeaveRequest, kind: str, now: datetime) -> bool:
    return Notification.objects.filter(
        related_type=LEAVE_REQUEST,
        related_id=leave_request.pk,
        type=kind,
        created_at__gte=_start_of_day(now),
    ).exists()


def stale_requests(now: datetime):
    cutoff = now - timedelta(days=reminder_after_days())
    return (
        LeaveRequest.objects
        .filter(status=LeaveRequest.Status.PENDING_DEPARTMENT_HEAD, employee_signed_at__lt=cutoff)
        .select_related("employee", "employee__department")
        .order_by("employee_signed_at", "id")
    )


def sweep_stale_requests(now: Optional[datetime] = None, *, dry_run: bool = False) -> dict:
    """Send due reminders/escalations. Returns counters for logging and the command output."""
    now = now or timezone.now()
    stats = {"checked": 0, "reminders": 0, "escalations": 0}

    for req in stale_requests(now):
        stats["checked"] += 1
        days_pending = (now - req.employee_signed_at).days
        employee_name = req.employee.full_name
        approvers = approvers_for(req.employee.department, on=timezone.localdate(now))

        if approvers and not already_sent_today(req, Notification.Type.REMINDER, now):
            if dry_run:
                stats["reminders"] += len(approvers)
            else:
                stats["reminders"] += deliver_many(
                    approvers,
                    title="Reminder: Cerere în așteptare",
                    message=(
                        f"Cererea de concediu {req.request_number} de la {employee_name} "
                        f"așteaptă aprobare de {days_pending} zile."
                    ),
                    type=Notification.Type.REMINDER,
                    related_id=req.pk,
                )

        if days_pending >= escalation_after_days() and not already_sent_today(req, Notification.Type.ESCALATION, now):
            approver_ids = {u.pk for u in approvers}
            hr = [u for u in hr_and_admin_users() if u.pk not in approver_ids]
            if dry_run:
                stats["escalations"] += len(hr)
            else:
                stats["escalations"] += deliver_many(
                    hr,
                    title="Cerere întârziată",
                    message=(
                        f"Cererea de concediu {req.request_number} de la {employee_name} "
                        f"așteaptă de {days_pending} zile și necesită atenție."
                    ),
                    type=Notification.Type.ESCALATION,
                    related_id=req.pk,
                )

    notify_logger.info(
        f"Leave reminder sweep{' (dry run)' if dry_run else ''}: {stats['checked']} stale, "
        f"{stats['reminders']} reminder(s), {stats['escalations']} escalation(s)"
    )
    return stats
