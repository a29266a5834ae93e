class TenantAdminMixin:
    """
    Enforce tenant isolation in Django admin.
    Uses request.company (set by CurrentCompanyMiddleware)
    or falls back to the user's first active membership.
    """

    def _get_request_company(self, request):
        # prefer request.company (middleware)
        company = getattr(request, "company", None)
        if company is not None:
            return company
        user = getattr(request, "user", None)
        if user is None or not user.is_authenticated:
            return None
        membership = (
            user.memberships.filter(is_active=True)
            .select_related("company")
            .order_by("created_at", "pk")
            .first()
        )
        return membership.company if membership else None

    def _scoped(self, queryset, request, field="company"):
        # superusers see every tenant, everyone else only their own
        if request.user.is_superuser:
            return queryset
        company = self._get_request_company(request)
        if company is None:
            return queryset.none()
        return queryset.filter(**{field: company})

    def get_queryset(self, request):
        return self._scoped(super().get_queryset(request), request)

    def formfield_for_foreignkey(self, db_field, request, **kwargs):
        """
        Restrict dropdowns to the current company: the company field
        itself, and contacts/bank accounts/transactions it owns.
        """
        rel_model = db_field.related_model
        if db_field.name == "company":
            kwargs["queryset"] = self._scoped(rel_model.objects.all(), request, field="pk")
        elif any(f.name == "company" for f in rel_model._meta.get_fields()):
            kwargs["queryset"] = self._scoped(rel_model.objects.all(), request)
        return super().formfield_for_foreignkey(db_field, request, **kwargs)

    def save_model(self, request, obj, form, change):
        # Ensure object is always owned by company on save (unless superuser)
        if not request.user.is_superuser:
            company = self._get_request_company(request)
            if company is not None:
                obj.company = company
        super().save_model(request, obj, form, change)
