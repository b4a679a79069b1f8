class TenantAdminMixin:
    """
    Enforce tenant isolation in Django admin.
    Uses request.tenant (set by CurrentTenantMiddleware).
    """

    def _get_request_tenant(self, request):
        return getattr(request, "tenant", None)

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        # If superuser, show everything;
        # otherwise restrict to tenant if available
        if request.user.is_superuser:
            return qs
        tenant = self._get_request_tenant(request)
        if tenant is None:
            # If no tenant available in request, return none
            return qs.none()
        return qs.filter(tenant=tenant)

    def formfield_for_foreignkey(self, db_field, request, **kwargs):
        """
        Restrict foreignkey dropdowns to the current tenant.
        Example: company, template fields.
        """
        tenant = self._get_request_tenant(request)
        if not request.user.is_superuser:
            rel_model = db_field.related_model
            if db_field.name == "tenant":
                kwargs["queryset"] = (
                    rel_model.objects.filter(pk=tenant.pk)
                    if tenant is not None else rel_model.objects.none()
                )
            elif any(f.name == "tenant" for f in rel_model._meta.get_fields()):
                # related model is tenant-owned
                kwargs["queryset"] = (
                    rel_model.objects.filter(tenant=tenant)
                    if tenant is not None else rel_model.objects.none()
                )
        return super().formfield_for_foreignkey(db_field, request, **kwargs)

    def save_model(self, request, obj, form, change):
        # Ensure object is always owned by tenant on save (unless superuser)
        if not request.user.is_superuser:
            tenant = self._get_request_tenant(request)
            if tenant is not None:
                obj.tenant = tenant
        super().save_model(request, obj, form, change)
