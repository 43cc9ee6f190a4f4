# File: core/middleware.py
# Version: 1.1.0
# Author: vas
# Modified: 2026-10-18

from django.db import IntegrityError
from django.http import JsonResponse
from django.utils.translation import gettext as _
import logging
import re

admin_logger = logging.getLogger('intranet.admin')


class ConstraintErrorMiddleware:
    """
    Turns database constraint violations escaping a view into a JSON 400
    ({"error": "constraint_violation", "kind": ..., "message": ...}) instead
    of a 500 with a stack trace.

    Handles UNIQUE, FOREIGN KEY, CHECK and NOT NULL violations.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        if not isinstance(exception, IntegrityError):
            return None

        user = getattr(request, 'user', None)
        admin_logger.error(
            f"Database constraint violation on {request.method} {request.path}: {exception}",
            exc_info=True,
            extra={'user': user.username if user and user.is_authenticated else 'anonymous'},
        )

        error_message = str(exception)
        user_message, error_type = self.parse_constraint_error(error_message)
        payload = {
            'error': 'constraint_violation',
            'kind': error_type,
            'message': user_message,
        }
        if user is not None and user.is_superuser:
            payload['technical_details'] = error_message
        return JsonResponse(payload, status=400)

    @staticmethod
    def parse_constraint_error(error_message):
        """Returns (user_message, error_type) for an IntegrityError text."""
        error_lower = error_message.lower()

        if 'unique constraint' in error_lower or 'uq_' in error_lower:
            field_match = re.search(r'uq_\w+_(\w+)', error_message, re.IGNORECASE)
            if field_match:
                field = field_match.group(1).replace('_', ' ')
                return (
                    _("A record with this %(field)s already exists.") % {'field': field},
                    'unique'
                )
            return _("This record already exists."), 'unique'

        if 'foreign key constraint' in error_lower or 'foreign_key' in error_lower:
            if 'delete' in error_lower or 'update' in error_lower:
                return (
                    _("This record cannot be deleted or modified because other records depend on it."),
                    'foreign_key'
                )
            return _("The selected related record does not exist."), 'foreign_key'

        if 'check constraint' in error_lower or 'ck_' in error_lower:
            return (
                _("The data violates a consistency rule. Check dates, signatures and reasons."),
                'check'
            )

        if 'not null constraint' in error_lower or 'null value' in error_lower:
            field_match = re.search(r'column "(\w+)"', error_message, re.IGNORECASE)
            if field_match:
                field = field_match.group(1).replace('_', ' ')
                return _("The field '%(field)s' is required.") % {'field': field}, 'not_null'
            return _("A required field is missing."), 'not_null'

        return _("A database error occurred. Please check your input and try again."), 'generic'
