# File: leave/apps.py
# Version: 1.0.0
# Author: vas
# Modified: 2026-10-18

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _

class LeaveConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'leave'
    verbose_name = _('Leave requests')
