# File: leave/views.py
# Version: 1.1.0
# Author: vas
# Modified: 2026-10-18

"""
JSON endpoints for the leave workflow.

Errors come back as {"error": <code>, "message": <text>} with
400 (validation), 403 (permission), 404 (not found) or 409 (state conflict).
"""
import json
import logging
from functools import wraps

from django.contrib.auth.decorators import login_required
from django.core.exceptions import ValidationError
from django.http import JsonResponse
from django.utils import timezone
from django.utils.translation import gettext as _
from django.views.decorators.http import require_GET, require_http_methods, require_POST
from django_ratelimit.decorators import ratelimit

from core.utils.authz import is_hr_or_admin
from employees.balance import balance_for, carryover_breakdown, employee_for_user
from employees.calendar import count_working_days, custom_holiday_dates, holiday_warnings
from . import workflow
from .approvers import approval_capacity, approval_history, pending_for_approver
from .exceptions import (
    BalanceOverrideRequired,
    InsufficientPermission,
    LeaveWorkflowError,
    NotFound,
)
from .models import LeaveRequest

leave_logger = logging.getLogger("intranet.leave")


def _error(code: str, message, status: int, **extra) -> JsonResponse:
    return JsonResponse({"error": code, "message": str(message), **extra}, status=status)


def _validation_message(exc: ValidationError) -> str:
    if hasattr(exc, "message_dict"):
        return " ".join(str(m) for msgs in exc.message_dict.values() for m in msgs)
    return " ".join(str(m) for m in exc.messages)


def json_errors(view):
    """Map workflow exceptions to JSON error responses."""
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        try:
            return view(request, *args, **kwargs)
        except ValidationError as e:
            fields = getattr(e, "message_dict", {})
            return _error("validation_error", _validation_message(e), 400, fields=fields)
        except InsufficientPermission as e:
            return _error(InsufficientPermission.code, e, 403)
        except NotFound as e:
            return _error(NotFound.code, e, 404)
        except BalanceOverrideRequired as e:
            return _error(e.code, e.message, 409, remaining=e.remaining, requested=e.requested)
        except LeaveWorkflowError as e:
            leave_logger.info(f"{request.method} {request.path} refused for {request.user}: {e.code}")
            return _error(e.code, e.message, 409)
    return wrapper


def _payload(request) -> dict:
    if request.content_type == "application/json":
        try:
            data = json.loads(request.body or b"{}")
        except ValueError:
            raise ValidationError(_("Request body is not valid JSON."))
        if not isinstance(data, dict):
            raise ValidationError(_("Request body must be a JSON object."))
        return data
    data = request.POST.dict()
    if "signature" in request.FILES:
        data["signature"] = request.FILES["signature"]
    return data


def _truthy(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


def serialize(obj: LeaveRequest) -> dict:
    emp_sig = obj.employee_signoff
    head_sig = obj.department_head_signoff
    return {
        "id": obj.pk,
        "request_number": obj.request_number,
        "employee": obj.employee.full_name,
        "department": str(obj.employee.department or ""),
        "start_date": obj.start_date.isoformat(),
        "end_date": obj.end_date.isoformat(),
        "working_days": obj.working_days,
        "year": obj.year,
        "replacement_name": obj.replacement_name,
        "replacement_position": obj.replacement_position,
        "status": obj.status,
        "employee_signed_at": emp_sig.at.isoformat() if emp_sig.signed else None,
        "department_head_signed_at": head_sig.at.isoformat() if head_sig.signed else None,
        "decision_capacity": obj.decision_capacity or None,
        "balance_override": obj.balance_override,
        "rejected_at": obj.rejected_at.isoformat() if obj.rejected_at else None,
        "rejection_reason": obj.rejection_reason or None,
        "version": obj.version,
    }


# ---------- read ----------

def _can_view(user, obj: LeaveRequest) -> bool:
    if user.pk in (obj.user_id, obj.dept_head_id, obj.rejected_by_id):
        return True
    if is_hr_or_admin(user):
        return True
    return approval_capacity(user, obj) is not None


@login_required
@require_GET
@json_errors
def my_requests(request):
    qs = LeaveRequest.objects.filter(user=request.user).select_related("employee", "employee__department")
    return JsonResponse({"results": [serialize(r) for r in qs]})


@login_required
@require_GET
@json_errors
def request_detail(request, pk):
    obj = workflow.get_request(pk)
    if not _can_view(request.user, obj):
        raise InsufficientPermission(_("You cannot view this request."))
    return JsonResponse(serialize(obj))


@login_required
@require_GET
@json_errors
def preview(request):
    """Working days, holiday notes and balance impact for a prospective request."""
    start = workflow._coerce_date(request.GET.get("start_date"), "start_date")
    end = workflow._coerce_date(request.GET.get("end_date"), "end_date")
    workflow.check_span(start, end)
    employee = employee_for_user(request.user)
    if employee is None:
        raise NotFound(_("No employee record is linked to your account."))

    days = count_working_days(start, end, custom_holiday_dates())
    bal = balance_for(employee, start.year)
    from_carry, from_current = carryover_breakdown(days, bal.carryover)
    warnings = holiday_warnings(start, end)
    if end < start:
        warnings.append(_("End date must be on/after the start date."))
    elif days == 0:
        warnings.append(_("The selected period contains no working days."))
    if days > bal.remaining:
        warnings.append(_("Not enough days available (%(n)s left).") % {"n": bal.remaining})

    return JsonResponse({
        "working_days": days,
        "remaining": bal.remaining,
        "balance_level": bal.level,
        "from_carryover": from_carry,
        "from_current_year": from_current,
        "warnings": warnings,
    })


@login_required
@require_GET
@json_errors
def my_balance(request):
    employee = employee_for_user(request.user)
    if employee is None:
        raise NotFound(_("No employee record is linked to your account."))
    raw_year = request.GET.get("year")
    try:
        year = int(raw_year) if raw_year else timezone.localdate().year
    except ValueError:
        raise ValidationError({"year": _("Enter a valid year.")})
    bal = balance_for(employee, year)
    return JsonResponse({
        "year": year,
        "total": bal.total,
        "carryover": bal.carryover,
        "used": bal.used,
        "remaining": bal.remaining,
        "level": bal.level,
    })


@login_required
@require_GET
@json_errors
def pending(request):
    return JsonResponse({"results": [serialize(r) for r in pending_for_approver(request.user)]})


@login_required
@require_GET
@json_errors
def history(request):
    return JsonResponse({"results": [serialize(r) for r in approval_history(request.user)[:100]]})


# ---------- write ----------

@login_required
@require_POST
@ratelimit(key="user", rate="30/m", method="POST", block=True)
@json_errors
def create(request):
    data = _payload(request)
    fields = {
        "start_date": data.get("start_date"),
        "end_date": data.get("end_date"),
        "replacement_name": data.get("replacement_name", ""),
        "replacement_position": data.get("replacement_position", ""),
    }
    if data.get("signature"):
        obj = workflow.submit_request(request.user, signature=data["signature"], **fields)
    else:
        obj = workflow.create_request(request.user, **fields)
    return JsonResponse(serialize(obj), status=201)


@login_required
@require_POST
@json_errors
def sign(request, pk):
    data = _payload(request)
    obj = workflow.get_request(pk)
    obj = workflow.with_conflict_retry(workflow.sign_as_employee)(obj, request.user, data.get("signature"))
    return JsonResponse(serialize(obj))


@login_required
@require_POST
@json_errors
def approve(request, pk):
    data = _payload(request)
    obj = workflow.get_request(pk)
    obj = workflow.with_conflict_retry(workflow.approve)(
        obj, request.user, signature=data.get("signature"), override=_truthy(data.get("override")),
    )
    return JsonResponse(serialize(obj))


@login_required
@require_POST
@json_errors
def reject(request, pk):
    data = _payload(request)
    obj = workflow.get_request(pk)
    obj = workflow.with_conflict_retry(workflow.reject)(obj, request.user, reason=data.get("rejection_reason", ""))
    return JsonResponse(serialize(obj))


@login_required
@require_http_methods(["POST", "DELETE"])
@json_errors
def delete(request, pk):
    obj = workflow.get_request(pk)
    workflow.delete_request(obj, request.user)
    return JsonResponse({"deleted": pk})


@login_required
@require_POST
@json_errors
def override(request, pk):
    """HR/super-admin decision without a department-head signature."""
    data = _payload(request)
    obj = workflow.get_request(pk)
    obj = workflow.with_conflict_retry(workflow.hr_override)(
        obj,
        request.user,
        decision=data.get("decision", ""),
        reason=data.get("reason") or data.get("rejection_reason", ""),
        override=_truthy(data.get("override")),
    )
    return JsonResponse(serialize(obj))
