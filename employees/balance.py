# File: employees/balance.py
# Version: 1.0.0
# Author: vas
# Modified: 2026-10-18

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.db.models import Sum

from .models import Employee, LeaveCarryover


class BalanceLevel:
    OK = "ok"
    WARNING = "warning"
    CRITICAL = "critical"


def warning_threshold() -> int:
    return int(getattr(settings, "LEAVE_BALANCE_WARNING_DAYS", 3))


def critical_threshold() -> int:
    return int(getattr(settings, "LEAVE_BALANCE_CRITICAL_DAYS", 0))


@dataclass(frozen=True)
class LeaveBalance:
    """
    Leave days of one employee for one year.
    `remaining` may go negative; that is over-use, not an error.
    """
    total: int = 21
    carryover: int = 0
    used: int = 0

    @property
    def remaining(self) -> int:
        return self.total + self.carryover - self.used

    @property
    def level(self) -> str:
        remaining = self.remaining
        if remaining <= critical_threshold():
            return BalanceLevel.CRITICAL
        if remaining <= warning_threshold():
            return BalanceLevel.WARNING
        return BalanceLevel.OK


def carryover_days(employee: Employee, year: int) -> int:
    agg = LeaveCarryover.objects.filter(employee=employee, to_year=year).aggregate(s=Sum("initial_days"))
    return int(agg["s"] or 0)


def balance_for(employee: Employee, year: int) -> LeaveBalance:
    default_total = int(getattr(settings, "LEAVE_DEFAULT_TOTAL_DAYS", 21))
    total = employee.total_leave_days if employee.total_leave_days is not None else default_total
    return LeaveBalance(
        total=int(total),
        carryover=carryover_days(employee, year),
        used=int(employee.used_leave_days or 0),
    )


def can_approve(request, balance: LeaveBalance) -> bool:
    """True if the balance covers the request. False means approving is an override."""
    return balance.remaining >= int(request.working_days or 0)


def carryover_breakdown(working_days: int, carryover: int) -> tuple[int, int]:
    """(days taken from last year's carryover, days taken from this year's entitlement)."""
    if working_days <= 0:
        return 0, 0
    from_carryover = min(working_days, max(carryover, 0))
    return from_carryover, working_days - from_carryover


def balance_alerts(year: int, *, department=None) -> list[dict]:
    """
    Employees at warning/critical level, critical first.
    Each item: employee, balance, level, message.
    """
    qs = Employee.objects.filter(is_archived=False).select_related("department")
    if department is not None:
        qs = qs.filter(department=department)

    carry = dict(
        LeaveCarryover.objects.filter(to_year=year)
        .values("employee_id")
        .annotate(s=Sum("initial_days"))
        .values_list("employee_id", "s")
    )

    alerts = []
    for emp in qs:
        bal = LeaveBalance(
            total=int(emp.total_leave_days),
            carryover=int(carry.get(emp.pk) or 0),
            used=int(emp.used_leave_days or 0),
        )
        if bal.level == BalanceLevel.OK:
            continue
        if bal.level == BalanceLevel.CRITICAL:
            message = f"{emp.full_name} nu mai are zile de concediu disponibile ({bal.remaining})"
        else:
            message = f"{emp.full_name} mai are doar {bal.remaining} zile de concediu din {bal.total + bal.carryover}"
        alerts.append({"employee": emp, "balance": bal, "level": bal.level, "message": message})

    alerts.sort(key=lambda a: (a["level"] != BalanceLevel.CRITICAL, a["balance"].remaining))
    return alerts


def employee_for_user(user) -> Optional[Employee]:
    if not (user and user.is_authenticated):
        return None
    return Employee.objects.filter(user=user, is_archived=False).select_related("department").first()
