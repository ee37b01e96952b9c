"""
Role based access control.

Each role maps once to the set of capabilities it holds; each endpoint
declares the capability it needs. The role is read from the ``role`` claim
of the access token.
"""

from rest_framework.permissions import BasePermission

from .models import StaffProfile

VIEW_STOCK = 'view_stock'
VIEW_ORDERS = 'view_orders'
VIEW_ISSUANCES = 'view_issuances'
MANAGE_ORDERS = 'manage_orders'
DELETE_ORDERS = 'delete_orders'
ISSUE_STOCK = 'issue_stock'
RETURN_STOCK = 'return_stock'
MARK_DAMAGED = 'mark_damaged'

VIEW_ALL = frozenset({VIEW_STOCK, VIEW_ORDERS, VIEW_ISSUANCES})

ROLE_CAPABILITIES = {
    StaffProfile.Role.ADMIN.value: VIEW_ALL | {
        MANAGE_ORDERS, DELETE_ORDERS, ISSUE_STOCK, RETURN_STOCK, MARK_DAMAGED,
    },
    StaffProfile.Role.CEO.value: VIEW_ALL,
    StaffProfile.Role.STAFF.value: VIEW_ALL | {
        MANAGE_ORDERS, ISSUE_STOCK, RETURN_STOCK, MARK_DAMAGED,
    },
    StaffProfile.Role.PHARMACY.value: VIEW_ALL | {ISSUE_STOCK, RETURN_STOCK},
    StaffProfile.Role.LABORATORY.value: frozenset({VIEW_STOCK}),
}


def has_capability(role, capability):
    return capability in ROLE_CAPABILITIES.get(role, frozenset())


class HasCapability(BasePermission):
    """
    Grants access when the token's role holds the capability required for
    the request method.

    ``capabilities`` maps HTTP methods to capabilities; ``'*'`` applies to
    any method not listed.
    """
    capabilities = {}
    message = 'Your role does not allow this action'

    def has_permission(self, request, view):
        if not request.user or not request.user.is_authenticated:
            return False

        capability = self.capabilities.get(request.method, self.capabilities.get('*'))
        if capability is None:
            return False

        role = request.auth.get('role') if isinstance(request.auth, dict) else None
        return has_capability(role, capability)


def requires(capability=None, **by_method):
    """
    Build a permission class for an endpoint.

        @permission_classes([requires(ISSUE_STOCK)])
        permission_classes = [requires(GET=VIEW_ORDERS, POST=MANAGE_ORDERS)]
    """
    capabilities = dict(by_method)
    if capability is not None:
        capabilities['*'] = capability
    name = 'Requires' + ''.join(part.title() for part in sorted(set(capabilities.values())))
    return type(name.replace('_', ''), (HasCapability,), {'capabilities': capabilities})
