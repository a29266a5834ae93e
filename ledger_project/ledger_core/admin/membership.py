from django.contrib import admin

from ledger_core.models import Company, EntityMembership

from .mixins import TenantAdminMixin

# Roles allowed to manage who can see a company's ledger
MANAGER_ROLES = ("owner", "admin")


def _member_company_ids(user, roles=None):
    memberships = user.memberships.filter(is_active=True)
    if roles:
        memberships = memberships.filter(role__in=roles)
    return set(memberships.values_list("company_id", flat=True))


# Register `Company` model
@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "slug", "owner", "created_at")
    search_fields = ("name", "slug")  # enable search by name and slug
    ordering = ("name",)
    prepopulated_fields = {"slug": ("name",)}

    def get_queryset(self, request):
        qs = super().get_queryset(request).select_related("owner")
        if request.user.is_superuser:
            return qs
        # members only see the companies they belong to
        return qs.filter(pk__in=_member_company_ids(request.user))


# Register `EntityMembership` model
@admin.register(EntityMembership)
class EntityMembershipAdmin(TenantAdminMixin, admin.ModelAdmin):
    list_display = ("user", "company", "role", "is_active", "created_at")
    list_filter = ("role", "is_active", "company")
    search_fields = ("user__username", "user__email", "company__name")
    readonly_fields = ("created_at",)  # prevent tampering with creation date
    ordering = ("company__name", "user__username")

    def get_queryset(self, request):
        # Fetch everything in one SQL join
        return super().get_queryset(request).select_related("company", "user")

    # Only owners/admins of the membership's company may change it
    def has_change_permission(self, request, obj=None):
        if request.user.is_superuser:
            return True
        managed = _member_company_ids(request.user, MANAGER_ROLES)
        if obj is None:
            # change list is visible to anyone managing at least one company
            return bool(managed)
        return obj.company_id in managed

    def has_delete_permission(self, request, obj=None):
        return self.has_change_permission(request, obj)

    def has_add_permission(self, request):
        if request.user.is_superuser:
            return True
        return bool(_member_company_ids(request.user, MANAGER_ROLES))
