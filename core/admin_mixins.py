# File: core/admin_mixins.py
# Version: 1.2.0
# Author: vas
# Modified: 2026-10-18

from functools import wraps
import logging

from django.contrib import messages
from django.core.exceptions import PermissionDenied, ValidationError
from django.http import HttpResponseRedirect
from django.urls import reverse

from core.utils.authz import is_in_group

FEATURE_IMPORT_GROUP = "feature:import"
FEATURE_EXPORT_GROUP = "feature:export"
FEATURE_HISTORY_GROUP = "feature:history"

admin_logger = logging.getLogger('intranet.admin')


def has_feature(user, group_name: str) -> bool:
    """Superusers always; everyone else only through a feature group declared in access.yaml."""
    if not (user and user.is_authenticated):
        return False
    return user.is_superuser or is_in_group(user, group_name)


class ImportExportGuardMixin:
    """
    Import/Export buttons only for feature:import / feature:export.
    Put it before ImportExportModelAdmin (or ExportMixin) in the bases.
    """

    import_feature_group = FEATURE_IMPORT_GROUP
    export_feature_group = FEATURE_EXPORT_GROUP

    def has_import_permission(self, request, *args, **kwargs):
        parent = getattr(super(), "has_import_permission", lambda *_: True)(request, *args, **kwargs)
        return bool(parent) and has_feature(request.user, self.import_feature_group)

    def has_export_permission(self, request, *args, **kwargs):
        parent = getattr(super(), "has_export_permission", lambda *_: True)(request, *args, **kwargs)
        return bool(parent) and has_feature(request.user, self.export_feature_group)


class HistoryGuardMixin:
    """History button only for feature:history."""

    history_feature_group = FEATURE_HISTORY_GROUP

    def has_view_history_permission(self, request, obj=None):
        if not super().has_view_history_permission(request, obj):
            return False
        return has_feature(request.user, self.history_feature_group)


def _change_url(model_admin, obj):
    opts = model_admin.model._meta
    return reverse(f'admin:{opts.app_label}_{opts.model_name}_change', args=[obj.pk])


def safe_admin_action(func):
    """
    Wrap a change-page object action:
    refusals (PermissionDenied, ValidationError) become an error message,
    anything else is logged, and the user always lands back on the change page.
    """
    @wraps(func)
    def wrapper(self, request, obj):
        back = HttpResponseRedirect(_change_url(self, obj))
        try:
            result = func(self, request, obj)
        except (PermissionDenied, ValidationError) as e:
            text = " ".join(e.messages) if isinstance(e, ValidationError) else str(e)
            self.message_user(request, text, level=messages.ERROR)
            return back
        except Exception as e:
            admin_logger.exception(f"{self.__class__.__name__}.{func.__name__} failed for #{obj.pk}: {e}")
            self.message_user(request, f"An error occurred: {e}", level=messages.ERROR)
            return back
        return back if result is None else result
    return wrapper


def log_deletions(admin_class):
    """Class decorator: log every admin delete (single and bulk) to intranet.admin."""

    delete_model = admin_class.delete_model
    delete_queryset = admin_class.delete_queryset

    @wraps(delete_model)
    def logged_delete_model(self, request, obj):
        admin_logger.warning(
            f"'{request.user.username}' deleted {obj._meta.verbose_name} #{obj.pk}: {str(obj)[:100]}"
        )
        return delete_model(self, request, obj)

    @wraps(delete_queryset)
    def logged_delete_queryset(self, request, queryset):
        admin_logger.warning(
            f"'{request.user.username}' bulk deleted {queryset.count()} {queryset.model._meta.verbose_name_plural}"
        )
        return delete_queryset(self, request, queryset)

    admin_class.delete_model = logged_delete_model
    admin_class.delete_queryset = logged_delete_queryset
    return admin_class
