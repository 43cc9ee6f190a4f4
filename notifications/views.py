# File: notifications/views.py
# Version: 1.0.0
# Author: vas
# Modified: 2026-10-18

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_POST

from core.alerts import build_alerts
from .models import Notification


def serialize(note: Notification) -> dict:
    return {
        "id": note.pk,
        "title": note.title,
        "message": note.message,
        "type": note.type,
        "related_type": note.related_type or None,
        "related_id": note.related_id,
        "is_read": note.is_read,
        "created_at": note.created_at.isoformat(),
    }


@login_required
@require_GET
def inbox(request):
    qs = Notification.objects.filter(user=request.user)
    if request.GET.get("unread") in ("1", "true"):
        qs = qs.filter(is_read=False)
    return JsonResponse({
        "unread": Notification.objects.filter(user=request.user, is_read=False).count(),
        "results": [serialize(n) for n in qs[:50]],
    })


@login_required
@require_POST
def mark_read(request, pk):
    note = get_object_or_404(Notification, pk=pk, user=request.user)
    if not note.is_read:
        note.is_read = True
        note.save(update_fields=["is_read"])
    return JsonResponse(serialize(note))


@login_required
@require_POST
def mark_all_read(request):
    updated = Notification.objects.filter(user=request.user, is_read=False).update(is_read=True)
    return JsonResponse({"updated": updated})


@login_required
@require_GET
def alerts(request):
    return JsonResponse({"results": build_alerts(request.user)})
