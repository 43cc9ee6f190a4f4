# File: notifications/dispatch.py
# Version: 1.0.0
# Author: vas
# Modified: 2026-10-18

"""
Best-effort notification delivery for leave workflow events.

Nothing in here raises: a failed insert or a failed email is logged and the
caller carries on. The workflow calls these from transaction.on_commit, so
the state change they report is already durable.
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from django.conf import settings
from django.core.mail import send_mail

from core.utils.authz import hr_and_admin_users
from leave.approvers import approvers_for
from .models import Notification

notify_logger = logging.getLogger("intranet.notifications")

LEAVE_REQUEST = "leave_request"


def _fmt(d) -> str:
    return d.strftime("%d.%m.%Y")


def _send_email(recipient, subject: str, body: str) -> bool:
    address = getattr(recipient, "email", "") or ""
    if not address:
        return False
    try:
        send_mail(
            subject,
            body,
            getattr(settings, "DEFAULT_FROM_EMAIL", None),
            [address],
            fail_silently=False,
        )
        return True
    except Exception:
        notify_logger.exception(f"Email to {address} failed: {subject}")
        return False


def deliver(
    recipient,
    *,
    title: str,
    message: str,
    type: str = Notification.Type.INFO,
    related_id: Optional[int] = None,
    related_type: str = LEAVE_REQUEST,
    email: bool = True,
) -> Optional[Notification]:
    """In-app notification (+ email). Returns the row, or None if it could not be stored."""
    note = None
    try:
        note = Notification.objects.create(
            user=recipient,
            title=title,
            message=message,
            type=type,
            related_type=related_type,
            related_id=related_id,
        )
    except Exception:
        notify_logger.exception(f"Could not store notification for user #{recipient.pk}: {title}")
    if email:
        _send_email(recipient, title, message)
    return note


def deliver_many(recipients: Iterable, **kwargs) -> int:
    sent = 0
    for r in recipients:
        if deliver(r, **kwargs) is not None:
            sent += 1
    return sent


def notify_submitted(leave_request) -> int:
    """Tell the department heads (and their delegates) there is a request to sign off."""
    try:
        employee = leave_request.employee
        recipients = approvers_for(employee.department)
        if not recipients:
            notify_logger.warning(
                f"No department head configured for {employee.department or 'no department'}; "
                f"routing {leave_request.request_number} to HR"
            )
            recipients = list(hr_and_admin_users())

        message = (
            f"{employee.full_name} a depus cererea {leave_request.request_number} "
            f"({leave_request.working_days} zile, {_fmt(leave_request.start_date)} - {_fmt(leave_request.end_date)}). "
            f"Verifică și aprobă cererea."
        )
        return deliver_many(
            recipients,
            title="Cerere nouă de concediu",
            message=message,
            type=Notification.Type.WARNING,
            related_id=leave_request.pk,
        )
    except Exception:
        notify_logger.exception(f"Submission notice for leave request #{leave_request.pk} failed")
        return 0


def notify_decided(leave_request) -> int:
    """Tell the employee the outcome; on approval also copy HR."""
    try:
        approved = leave_request.status == "approved"
        number = leave_request.request_number
        if approved:
            sent = deliver_many(
                [leave_request.user],
                title="Cerere concediu aprobată",
                message=f"Cererea de concediu {number} a fost aprobată de șeful de compartiment.",
                type=Notification.Type.SUCCESS,
                related_id=leave_request.pk,
            )
            approver_id = leave_request.dept_head_id
            hr = [u for u in hr_and_admin_users() if u.pk != approver_id]
            sent += deliver_many(
                hr,
                title="Cerere concediu aprobată de șef",
                message=(
                    f"{leave_request.employee.full_name} — cererea {number} "
                    f"a fost aprobată de {leave_request.dept_head}."
                ),
                type=Notification.Type.INFO,
                related_id=leave_request.pk,
                email=False,
            )
            return sent

        return deliver_many(
            [leave_request.user],
            title="Cerere concediu respinsă",
            message=f"Cererea {number} a fost respinsă. Motiv: {leave_request.rejection_reason}",
            type=Notification.Type.WARNING,
            related_id=leave_request.pk,
        )
    except Exception:
        notify_logger.exception(f"Decision notice for leave request #{leave_request.pk} failed")
        return 0
