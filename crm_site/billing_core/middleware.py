from django.utils.deprecation import MiddlewareMixin

from .models import Tenant

# session key holding the tenant picked on the "select company" screen
ACTIVE_TENANT_SESSION_KEY = "active_tenant_id"


class CurrentTenantMiddleware(MiddlewareMixin):
    # Run on every request and
    # attach a .tenant attribute to the request, based on the logged-in user
    def process_request(self, request):
        request.tenant = None
        user = getattr(request, "user", None)
        if user is None or not user.is_authenticated:
            return

        tenant_id = request.session.get(ACTIVE_TENANT_SESSION_KEY)
        if tenant_id:
            # ensure security: user must be a member of that tenant
            request.tenant = Tenant.objects.filter(
                pk=tenant_id, members=user).first()
            # prevent someone from tampering with their session and
            # "jumping" into another tenant.
            return

        # Default fallback: a user with exactly one tenant gets it
        memberships = list(Tenant.objects.filter(members=user)[:2])
        if len(memberships) == 1:
            request.tenant = memberships[0]
