# File: employees/admin.py
# Version: 1.1.0
# Author: vas
# Modified: 2026-10-18

from django.contrib import admin, messages
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from concurrency.admin import ConcurrentModelAdmin
from django_object_actions import DjangoObjectActions
from import_export import resources
from import_export.admin import ImportExportModelAdmin
from simple_history.admin import SimpleHistoryAdmin

from core.admin_mixins import HistoryGuardMixin, ImportExportGuardMixin, log_deletions, safe_admin_action
from core.utils.authz import is_hr_or_admin
from .balance import balance_for
from .models import (
    CustomHoliday,
    Department,
    DepartmentHead,
    Employee,
    HolidayCalendar,
    LeaveCarryover,
)


# =========================
# Import–Export resources
# =========================

class EmployeeResource(resources.ModelResource):
    class Meta:
        model = Employee
        fields = (
            "id",
            "last_name",
            "first_name",
            "email",
            "position",
            "department",
            "total_leave_days",
            "used_leave_days",
            "is_archived",
        )
        export_order = fields


class HolidayCalendarResource(resources.ModelResource):
    class Meta:
        model = HolidayCalendar
        fields = ("id", "name", "is_active", "first_year", "last_year", "rules_text", "created_at", "updated_at")
        export_order = fields


class LeaveCarryoverResource(resources.ModelResource):
    class Meta:
        model = LeaveCarryover
        fields = ("id", "employee", "from_year", "to_year", "initial_days")
        export_order = fields


# =========================
# Helpers / mixins
# =========================

class HREditableGateMixin:
    """Leave entitlements are HR business; everyone else gets read-only admin pages."""

    def _is_hr(self, request) -> bool:
        return is_hr_or_admin(request.user)

    def has_change_permission(self, request, obj=None):
        return super().has_change_permission(request, obj) and self._is_hr(request)

    def has_add_permission(self, request, *args, **kwargs):
        return super().has_add_permission(request, *args, **kwargs) and self._is_hr(request)


# =========================
# Inlines
# =========================

class DepartmentHeadInline(admin.TabularInline):
    model = DepartmentHead
    extra = 0
    autocomplete_fields = ("user",)
    readonly_fields = ("created_at",)


class LeaveCarryoverInline(admin.TabularInline):
    model = LeaveCarryover
    extra = 0
    fields = ("from_year", "to_year", "initial_days")


# =========================
# Department Admin
# =========================

@log_deletions
@admin.register(Department)
class DepartmentAdmin(HistoryGuardMixin, SimpleHistoryAdmin):
    list_display = ("name", "heads_display", "employee_count")
    search_fields = ("name",)
    inlines = [DepartmentHeadInline]

    @admin.display(description=_("Heads"))
    def heads_display(self, obj):
        return ", ".join(h.user.get_full_name() or h.user.username for h in obj.heads.select_related("user")) or "—"

    @admin.display(description=_("Employees"))
    def employee_count(self, obj):
        return obj.employees.filter(is_archived=False).count()


# =========================
# Employee Admin
# =========================

@log_deletions
@admin.register(Employee)
class EmployeeAdmin(
    HREditableGateMixin,
    ImportExportGuardMixin,
    HistoryGuardMixin,
    SimpleHistoryAdmin,
    ConcurrentModelAdmin,
    ImportExportModelAdmin,
    ):
    resource_classes = [EmployeeResource]
    list_display = (
        "full_name",
        "department",
        "position",
        "total_leave_days",
        "used_leave_days",
        "remaining_display",
        "is_archived",
    )
    list_display_links = ("full_name",)
    list_filter = ("is_archived", "department")
    search_fields = ("last_name", "first_name", "email", "user__username")
    autocomplete_fields = ("user", "department")
    readonly_fields = ("used_leave_days", "remaining_display", "created_at", "updated_at")
    inlines = [LeaveCarryoverInline]

    fieldsets = (
        (_("Person"), {"fields": ("last_name", "first_name", "email", "position")}),
        (_("Assignment"), {"fields": ("department", "user", "is_archived")}),
        (_("Leave"), {"fields": ("total_leave_days", "used_leave_days", "remaining_display")}),
        (_("System"), {"fields": ("created_at", "updated_at", "version")}),
    )

    @admin.display(description=_("Remaining"))
    def remaining_display(self, obj):
        if not obj or not obj.pk:
            return "—"
        bal = balance_for(obj, timezone.localdate().year)
        return f"{bal.remaining} ({bal.level})"

    def has_delete_permission(self, request, obj=None):
        # archive instead; leave requests reference employees
        return False


@admin.register(LeaveCarryover)
class LeaveCarryoverAdmin(HREditableGateMixin, ImportExportGuardMixin, SimpleHistoryAdmin, ImportExportModelAdmin):
    resource_classes = [LeaveCarryoverResource]
    list_display = ("employee", "from_year", "to_year", "initial_days")
    list_filter = ("to_year",)
    search_fields = ("employee__last_name", "employee__first_name")
    autocomplete_fields = ("employee",)


# =========================
# HolidayCalendar Admin
# =========================

@log_deletions
@admin.register(HolidayCalendar)
class HolidayCalendarAdmin(
    HREditableGateMixin,
    ImportExportGuardMixin,
    HistoryGuardMixin,
    DjangoObjectActions,
    SimpleHistoryAdmin,
    ImportExportModelAdmin,
    ):
    resource_classes = [HolidayCalendarResource]
    list_display = ("name", "is_active", "first_year", "last_year", "updated_at")
    list_filter = ("is_active",)
    search_fields = ("name",)
    readonly_fields = ("created_at", "updated_at")
    fieldsets = (
        (_("Basics"), {"fields": ("name", "is_active", ("first_year", "last_year"))}),
        (_("Rules"), {"fields": ("rules_text",)}),
        (_("System"), {"fields": (("created_at"), ("updated_at"),)}),
    )

    # change-page actions only; keep the import/export buttons on the list
    change_list_template = "admin/import_export/change_list_import_export.html"
    change_actions = ("preview_current_year",)

    @safe_admin_action
    def preview_current_year(self, request, obj):
        year = timezone.localdate().year
        labeled = obj.holidays_for_year_labeled(year)
        if not labeled:
            messages.warning(request, _("This calendar does not cover %(year)s.") % {"year": year})
            return
        lines = ", ".join(f"{d:%d.%m} {label}".strip() for d, label in sorted(labeled.items()))
        messages.info(request, f"{year}: {lines}")
    preview_current_year.label = _("Preview current year")

    def has_delete_permission(self, request, obj=None):
        return False


@log_deletions
@admin.register(CustomHoliday)
class CustomHolidayAdmin(HREditableGateMixin, SimpleHistoryAdmin):
    list_display = ("date", "label")
    date_hierarchy = "date"
    search_fields = ("label",)
