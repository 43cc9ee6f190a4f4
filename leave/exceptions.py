# File: leave/exceptions.py
# Version: 1.0.0
# Author: vas
# Modified: 2026-10-18

"""
Errors raised by the leave workflow.

Malformed input raises django.core.exceptions.ValidationError (re-exported
here). The rest are workflow specific:

  InvalidTransition       state guard violated (terminal state, re-signing, ...)
  InsufficientPermission  caller lacks the role for the transition
  ConcurrentModification  the row changed under us; retry once with fresh state
  BalanceOverrideRequired approval would overdraw the balance and was not confirmed
  NotFound                referenced request/employee missing
"""
from django.core.exceptions import ObjectDoesNotExist, PermissionDenied, ValidationError

__all__ = [
    "ValidationError",
    "LeaveWorkflowError",
    "InvalidTransition",
    "InsufficientPermission",
    "ConcurrentModification",
    "BalanceOverrideRequired",
    "NotFound",
]


class LeaveWorkflowError(Exception):
    code = "workflow_error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = str(message)


class InvalidTransition(LeaveWorkflowError):
    code = "invalid_transition"


class ConcurrentModification(LeaveWorkflowError):
    code = "concurrent_modification"


class BalanceOverrideRequired(LeaveWorkflowError):
    code = "balance_override_required"

    def __init__(self, message: str = "", *, remaining: int = 0, requested: int = 0):
        super().__init__(message)
        self.remaining = remaining
        self.requested = requested


class InsufficientPermission(PermissionDenied):
    code = "insufficient_permission"


class NotFound(ObjectDoesNotExist):
    code = "not_found"
