# File: core/signals.py
# Version: 1.1.0
# Author: vas
# Modified: 2026-10-18

from django.contrib.auth.signals import user_logged_in, user_logged_out, user_login_failed
import logging

auth_logger = logging.getLogger('intranet.auth')


def _client_ip(request) -> str:
    if request is None:
        return 'unknown'
    return request.META.get('REMOTE_ADDR', 'unknown')


def log_user_login(sender, request, user, **kwargs):
    auth_logger.info(f"User '{user.username}' logged in from {_client_ip(request)}")


def log_user_logout(sender, request, user, **kwargs):
    if user is None:
        return
    auth_logger.info(f"User '{user.username}' logged out")


def log_user_login_failed(sender, credentials, request=None, **kwargs):
    username = credentials.get('username', 'unknown')
    auth_logger.warning(f"Failed login attempt for '{username}' from {_client_ip(request)}")


user_logged_in.connect(log_user_login)
user_logged_out.connect(log_user_logout)
user_login_failed.connect(log_user_login_failed)
