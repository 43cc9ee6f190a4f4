# File: leave/admin.py
# Version: 1.1.0
# Author: vas
# Modified: 2026-10-18

from django.contrib import admin
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _
from import_export import resources
from import_export.admin import ExportMixin
from simple_history.admin import SimpleHistoryAdmin

from core.admin_mixins import HistoryGuardMixin, ImportExportGuardMixin, log_deletions
from .models import ApprovalDelegation, LeaveRequest
from .workflow import can_delete


class LeaveRequestResource(resources.ModelResource):
    class Meta:
        model = LeaveRequest
        fields = (
            "request_number",
            "employee__last_name",
            "employee__first_name",
            "employee__department__name",
            "start_date",
            "end_date",
            "working_days",
            "year",
            "status",
            "decision_capacity",
            "balance_override",
            "rejection_reason",
            "created_at",
        )
        export_order = fields


@log_deletions
@admin.register(LeaveRequest)
class LeaveRequestAdmin(ImportExportGuardMixin, HistoryGuardMixin, ExportMixin, SimpleHistoryAdmin):
    """
    Read-only view of leave requests. Every state change goes through the
    workflow endpoints, which check signatures, roles and the balance.
    """
    resource_classes = [LeaveRequestResource]
    list_display = (
        "request_number",
        "employee",
        "period_display",
        "working_days",
        "status_text",
        "balance_override",
        "created_at",
    )
    list_display_links = ("request_number",)
    list_filter = ("status", "year", "balance_override", "employee__department")
    search_fields = ("request_number", "employee__last_name", "employee__first_name")
    date_hierarchy = "start_date"
    readonly_fields = (
        "request_number",
        "employee",
        "user",
        "start_date",
        "end_date",
        "working_days",
        "year",
        "replacement_name",
        "replacement_position",
        "status",
        "employee_signature",
        "employee_signed_at",
        "department_head_signature",
        "department_head_signed_at",
        "dept_head",
        "decision_capacity",
        "balance_override",
        "rejected_by",
        "rejected_at",
        "rejection_reason",
        "created_at",
        "updated_at",
    )
    fieldsets = (
        (_("Request"), {"fields": ("request_number", "employee", "user", ("start_date", "end_date"), "working_days", "year")}),
        (_("Replacement"), {"fields": ("replacement_name", "replacement_position")}),
        (_("Employee signature"), {"fields": ("employee_signature", "employee_signed_at")}),
        (_("Decision"), {"fields": (
            "status", "department_head_signature", "department_head_signed_at", "dept_head",
            "decision_capacity", "balance_override", "rejected_by", "rejected_at", "rejection_reason",
        )}),
        (_("System"), {"fields": ("created_at", "updated_at")}),
    )

    _STATE = {
        LeaveRequest.Status.DRAFT: "off",
        LeaveRequest.Status.PENDING_DEPARTMENT_HEAD: "warn",
        LeaveRequest.Status.APPROVED: "ok",
        LeaveRequest.Status.REJECTED: "bad",
    }

    @admin.display(description=_("Period"))
    def period_display(self, obj):
        return f"{obj.start_date:%d.%m.%Y} – {obj.end_date:%d.%m.%Y}"

    @admin.display(description=_("Status"), ordering="status")
    def status_text(self, obj):
        return format_html('<span class="js-state" data-state="{}">{}</span>',
                           self._STATE.get(obj.status, "off"), obj.get_status_display())

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        # same rule as the workflow: own, undecided requests only
        if obj is not None and not can_delete(obj, request.user):
            return False
        return super().has_delete_permission(request, obj)

    def delete_queryset(self, request, queryset):
        own_open = queryset.filter(user=request.user).exclude(status__in=LeaveRequest.TERMINAL_STATES)
        super().delete_queryset(request, own_open)


@log_deletions
@admin.register(ApprovalDelegation)
class ApprovalDelegationAdmin(HistoryGuardMixin, SimpleHistoryAdmin):
    list_display = ("delegator", "delegate", "department", "start_date", "end_date", "is_active")
    list_filter = ("is_active", "department")
    search_fields = ("delegator__username", "delegate__username", "reason")
    autocomplete_fields = ("delegator", "delegate", "department")
    date_hierarchy = "start_date"
