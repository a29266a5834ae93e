from django.contrib import admin
from django.urls import path

# Ledger operations are invoked by the service layer (ledger_core.services);
# only the tenant-scoped admin is routed here
urlpatterns = [
    path("admin/", admin.site.urls),
]
