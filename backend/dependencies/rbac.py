"""
RBAC dependencies for FastAPI routes
Role-based access control implemented as dependencies that run after authentication
"""
from fastapi import HTTPException, status, Request
import logging

logger = logging.getLogger(__name__)

RESOURCES_FOR_ROLES = {
    'admin': {
        'users': ['read', 'write', 'delete'],
        'users/me': ['read', 'write'],
        'materials': ['read', 'write', 'delete'],
        'cart': ['read', 'write', 'delete'],
        'orders': ['read', 'write', 'delete'],
        'orders/status': ['read', 'write'],
        'suppliers': ['read'],
    },
    'supplier': {
        'users/me': ['read', 'write'],
        'materials': ['read', 'write', 'delete'],  # Only their own materials
        'orders': ['read', 'write'],  # Orders containing their materials
        'orders/status': ['write'],  # Fulfillment updates
        'suppliers': ['read'],
    },
    'vendor': {
        'users/me': ['read', 'write'],
        'materials': ['read'],  # Can view materials only
        'cart': ['read', 'write', 'delete'],
        'orders': ['read', 'write'],  # Place and cancel their own orders
        'suppliers': ['read'],
    },
}

def normalize_path(path: str) -> str:
    """Normalize request path for RBAC checking"""
    if path.startswith('/'):
        path = path[1:]

    segments = path.split('/')

    if len(segments) == 0:
        return path

    if segments[0] == 'users':
        if len(segments) >= 2 and segments[1] == 'me':
            return 'users/me'
        return 'users'

    elif segments[0] == 'orders':
        if segments[-1] == 'status':
            return 'orders/status'
        return 'orders'

    return segments[0]

def translate_method_to_action(method: str) -> str:
    """Map HTTP methods to RBAC actions"""
    method_permission_mapping = {
        'GET': 'read',
        'POST': 'write',
        'PUT': 'write',
        'PATCH': 'write',
        'DELETE': 'delete',
    }
    return method_permission_mapping.get(method.upper(), 'read')

def has_permission(user_role: str, resource_name: str, required_permission: str) -> bool:
    """Check if user role has permission for the resource and action"""
    if user_role not in RESOURCES_FOR_ROLES:
        return False

    user_permissions = RESOURCES_FOR_ROLES[user_role]

    if resource_name in user_permissions:
        return required_permission in user_permissions[resource_name]

    parent_resource = resource_name.split('/')[0] if '/' in resource_name else resource_name
    if parent_resource in user_permissions:
        return required_permission in user_permissions[parent_resource]

    return False

def require_permission(resource: str = None, permission: str = None):
    """
    Create an RBAC dependency that checks permissions

    Args:
        resource: Specific resource name (auto-detected if not provided)
        permission: Specific permission (auto-detected if not provided)
    """
    def check_rbac(request: Request):
        """RBAC dependency function"""
        try:
            current_user = getattr(request.state, 'current_user', None)
            if not current_user:
                raise HTTPException(
                    status_code=status.HTTP_401_UNAUTHORIZED,
                    detail="Authentication required"
                )

            user_role = 'vendor'  # default fallback to match registration default
            if isinstance(current_user, dict) and current_user.get('role'):
                user_role = current_user['role']
            else:
                user_role = getattr(current_user, 'role', None) or 'vendor'

            resource_name = resource or normalize_path(str(request.url.path))
            required_permission = permission or translate_method_to_action(request.method)

            logger.info(f"RBAC Check - User: {user_role}, Resource: {resource_name}, Permission: {required_permission}")

            if not has_permission(user_role, resource_name, required_permission):
                logger.warning(f"Access denied - User: {user_role}, Resource: {resource_name}, Permission: {required_permission}")
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Access denied. {user_role.title()} role does not have {required_permission} permission for {resource_name}"
                )

            return True

        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"RBAC dependency error: {str(e)}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Authorization check failed"
            )

    return check_rbac

def require_role(*roles: str):
    """Dependency that only lets the listed roles through"""
    def check_role(request: Request):
        current_user = getattr(request.state, 'current_user', None)
        if not current_user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Authentication required"
            )

        user_role = current_user.get('role') if isinstance(current_user, dict) else getattr(current_user, 'role', None)
        if user_role not in roles:
            logger.warning(f"Access denied - Role {user_role} not in {roles}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {' or '.join(roles)}"
            )
        return True

    return check_role

# Profile permissions
require_profile_read = require_permission("users/me", "read")
require_profile_write = require_permission("users/me", "write")

# Material permissions
require_material_write = require_permission("materials", "write")  # Suppliers only
require_material_delete = require_permission("materials", "delete")  # Suppliers only

# Cart permissions (vendors)
require_cart_read = require_permission("cart", "read")
require_cart_write = require_permission("cart", "write")
require_cart_delete = require_permission("cart", "delete")

# Order permissions
require_order_read = require_permission("orders", "read")
require_order_write = require_permission("orders", "write")
require_order_status_write = require_permission("orders/status", "write")

# Role gates
require_vendor = require_role("vendor")
require_supplier = require_role("supplier")
