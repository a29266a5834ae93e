from django.contrib import admin

from ledger_core.models import AuditLog

from .mixins import TenantAdminMixin
from .ReadOnly import ReadOnlyAdmin


# Register `AuditLog` model, the trail is never edited by hand
@admin.register(AuditLog)
class AuditLogAdmin(TenantAdminMixin, ReadOnlyAdmin):
    list_display = (
        "id",
        "company",
        "user",
        "action",
        "object_type",
        "object_id",
        "created_at",
    )
    search_fields = ("object_type", "object_id", "user__username")
    date_hierarchy = "created_at"

    # Fetch everything in one SQL join
    def get_queryset(self, request):
        qs = super().get_queryset(request)
        return qs.select_related("company", "user")
