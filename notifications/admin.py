# File: notifications/admin.py
# Version: 1.0.0
# Author: vas
# Modified: 2026-10-18

from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from core.admin_mixins import log_deletions
from .models import Notification


@log_deletions
@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("created_at", "user", "type", "title", "related_type", "related_id", "is_read")
    list_filter = ("type", "is_read", "related_type")
    search_fields = ("title", "message", "user__username")
    date_hierarchy = "created_at"
    readonly_fields = ("user", "title", "message", "type", "related_type", "related_id", "created_at")
    actions = ("mark_read",)

    @admin.action(description=_("Mark selected as read"))
    def mark_read(self, request, queryset):
        updated = queryset.filter(is_read=False).update(is_read=True)
        self.message_user(request, _("%(n)s notification(s) marked as read.") % {"n": updated})

    def has_add_permission(self, request):
        return False
