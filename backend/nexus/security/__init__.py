# Security module
from nexus.security.actor import Actor
from nexus.security.auth import (
    get_password_hash, verify_password, create_access_token,
    get_current_user, get_current_actor, require_role
)

__all__ = [
    'Actor',
    'get_password_hash', 'verify_password', 'create_access_token',
    'get_current_user', 'get_current_actor', 'require_role'
]
