# File: employees/apps.py
# Version: 1.1.0
# Author: vas
# Modified: 2026-10-18

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _

class EmployeesConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'employees'
    verbose_name = _('Personnel & holidays')
