from rest_framework.permissions import BasePermission, SAFE_METHODS

from .models import RolePermission, UserRoleAssignment

WRITE_ROLES = ('admin', 'manager', 'staff')

# First path segment under /api/ -> module switched on and off per role
MODULE_PATHS = {
    'dashboard': 'dashboard',
    'purchase-orders': 'purchases',
    'purchase-order-drafts': 'purchases',
    'stats': 'purchases',
    'sales-orders': 'sales',
    'sales-stats': 'sales',
    'invoices-for-customer': 'sales',
    'payments': 'payments',
    'returns': 'returns',
    'expenses': 'expenses',
    'expense-categories': 'expenses',
    'accounts': 'accounts',
    'account-transfers': 'accounts',
    'opening-balances': 'accounts',
    'items': 'items',
    'suppliers': 'parties',
    'customers': 'parties',
    'parties': 'parties',
    'customer-balance-for-sale': 'parties',
    'reports': 'reports',
    'transactions': 'all_transactions',
    'discounts': 'discount',
    'inventory-adjustments': 'stock',
    'imei': 'imei_history',
    'export-imei': 'imei_history',
    'stock-transfers': 'stock_transfers',
}

# Request body fields naming the branch a document is written to
BRANCH_FIELDS = ('branch', 'from_branch')


def is_admin_user(user):
    """Admin role or Django superuser"""
    if not user or not user.is_authenticated:
        return False
    return getattr(user, 'role', None) == 'admin' or user.is_superuser


def module_for_path(path):
    parts = [part for part in path.split('/') if part]
    if len(parts) < 2 or parts[0] != 'api':
        return None
    return MODULE_PATHS.get(parts[1])


def can_access_module(user, module_name):
    if module_name is None or is_admin_user(user):
        return True
    switch = RolePermission.objects.filter(role=user.role, module_name=module_name).first()
    return switch is None or switch.can_access


def assigned_branch_id(user):
    if is_admin_user(user):
        return None
    return UserRoleAssignment.objects.filter(user=user).values_list('branch_id', flat=True).first()


def accessible_modules(user):
    return [name for name, _ in RolePermission.MODULE_CHOICES if can_access_module(user, name)]


class ModuleAccessPermission(BasePermission):
    """Authenticated users whose role has the module behind the URL"""
    message = 'Your role does not have access to this module.'

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return can_access_module(user, module_for_path(request.path))


class RoleWritePermission(ModuleAccessPermission):
    """
    Authenticated users may read.
    Staff, managers and admins may create and update; only admins may delete.
    Users locked to a branch may only write documents for that branch.
    """
    message = 'Your role does not allow this action.'

    def has_permission(self, request, view):
        if not super().has_permission(request, view):
            return False
        user = request.user
        if request.method in SAFE_METHODS:
            return True
        if request.method == 'DELETE':
            return is_admin_user(user)
        if not (is_admin_user(user) or getattr(user, 'role', None) in WRITE_ROLES):
            return False
        return self._within_assigned_branch(request)

    def _within_assigned_branch(self, request):
        branch_id = assigned_branch_id(request.user)
        if branch_id is None or not hasattr(request.data, 'get'):
            return True
        for field in BRANCH_FIELDS:
            value = request.data.get(field)
            if value not in (None, '') and str(value) != str(branch_id):
                self.message = 'You can only record documents for your assigned branch.'
                return False
        return True


class IsAdminRole(BasePermission):
    message = 'Admin role required.'

    def has_permission(self, request, view):
        return is_admin_user(request.user)
