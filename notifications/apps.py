# File: notifications/apps.py
# Version: 1.0.0
# Author: vas
# Modified: 2026-10-18

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _

class NotificationsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'notifications'
    verbose_name = _('Notifications')
