"""URL configuration for the ERP backend. Every app's API lives under /api/."""
from django.contrib import admin
from django.urls import path, include, re_path
from django.views.static import serve
from django.conf import settings

admin.site.site_header = f"{settings.COMPANY_NAME} Admin"
admin.site.site_title = "ERP Admin Portal"
admin.site.index_title = "ERP Administration"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('erp.core.urls')),
    path('api/', include('erp.branches.urls')),
    path('api/', include('erp.catalog.urls')),
    path('api/', include('erp.parties.urls')),
    path('api/', include('erp.purchasing.urls')),
    path('api/', include('erp.sales.urls')),
    path('api/', include('erp.finance.urls')),
    path('api/', include('erp.inventory.urls')),
    path('api/', include('erp.reports.urls')),
    path('api/', include('erp.messaging.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
]
