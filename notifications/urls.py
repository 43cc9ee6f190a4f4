# File: notifications/urls.py
# Version: 1.0.0
# Author: vas
# Modified: 2026-10-18

from django.urls import path

from . import views

app_name = "notifications"

urlpatterns = [
    path("", views.inbox, name="inbox"),
    path("<int:pk>/read/", views.mark_read, name="mark_read"),
    path("read-all/", views.mark_all_read, name="mark_all_read"),
    path("alerts/", views.alerts, name="alerts"),
]
