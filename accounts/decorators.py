from functools import wraps

from rest_framework.exceptions import NotAuthenticated, PermissionDenied
from rest_framework.permissions import SAFE_METHODS, BasePermission


def role_required(required_role):
    """
    Role-based decorator for function API views.
    Admins pass every role check.
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            user = request.user

            if not user or not user.is_authenticated:
                raise NotAuthenticated("Authentication required")

            if user.role != required_role and not user.is_admin_role:
                raise PermissionDenied(f"Access denied. This endpoint is for {required_role}s only.")

            return view_func(request, *args, **kwargs)
        return wrapper
    return decorator


class IsAdminRole(BasePermission):
    """Admin console access: role admin or Django superuser"""
    message = "Admin privileges required."

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and user.is_admin_role)


class IsOwnerOrAdmin(BasePermission):
    """
    Object-level check for writes; reads are open. The owner attribute is
    named by the view's `owner_field` (defaults to 'user').
    """
    message = "Only the owner or an admin can do this."

    def has_object_permission(self, request, view, obj):
        if request.method in SAFE_METHODS:
            return True
        user = request.user
        if user.is_admin_role:
            return True
        owner_field = getattr(view, 'owner_field', 'user')
        return getattr(obj, f'{owner_field}_id', None) == user.id


# REST API Token serializer
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer  # noqa: E402


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['role'] = user.role
        token['username'] = user.username
        return token
