# File: leave/urls.py
# Version: 1.0.0
# Author: vas
# Modified: 2026-10-18

from django.urls import path

from . import views

app_name = "leave"

urlpatterns = [
    path("requests/", views.my_requests, name="my_requests"),
    path("requests/new/", views.create, name="create"),
    path("requests/preview/", views.preview, name="preview"),
    path("requests/<int:pk>/", views.request_detail, name="detail"),
    path("requests/<int:pk>/sign/", views.sign, name="sign"),
    path("requests/<int:pk>/approve/", views.approve, name="approve"),
    path("requests/<int:pk>/reject/", views.reject, name="reject"),
    path("requests/<int:pk>/override/", views.override, name="override"),
    path("requests/<int:pk>/delete/", views.delete, name="delete"),
    path("balance/", views.my_balance, name="balance"),
    path("approvals/pending/", views.pending, name="pending"),
    path("approvals/history/", views.history, name="history"),
]
