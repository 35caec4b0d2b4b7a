from rest_framework.permissions import BasePermission

STAFF_ROLES = ('admin', 'accountant', 'manager')
EDITOR_ROLES = ('admin', 'accountant')


def user_role(user):
    if not user or not user.is_authenticated:
        return None
    if user.is_superuser:
        return 'admin'
    return getattr(user, 'role', None)


def is_backoffice_staff(user):
    """Admins, accountants, managers and Django staff accounts"""
    if not user or not user.is_authenticated:
        return False
    return user.is_staff or user_role(user) in STAFF_ROLES


def can_edit_records(user):
    """Roles allowed to edit ledger entries and wipe arrivals/receipts"""
    return user_role(user) in EDITOR_ROLES


def is_admin(user):
    return user_role(user) == 'admin'


class IsBackofficeStaff(BasePermission):
    message = 'Back-office access required.'

    def has_permission(self, request, view):
        return is_backoffice_staff(request.user)
