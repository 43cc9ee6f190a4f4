# File: config/urls.py
# Version: 1.1.0
# Author: vas
# Modified: 2026-10-18

from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Intranet"
admin.site.site_title = "Intranet"
admin.site.index_title = "Dashboard"

urlpatterns = [
    path('i18n/', include('django.conf.urls.i18n')),
    path('admin/', admin.site.urls),
    path('leave/', include('leave.urls')),
    path('notifications/', include('notifications.urls')),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
