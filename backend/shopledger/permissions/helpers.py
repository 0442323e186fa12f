# Overview: Utility functions for permission lookups.

from .roles import DEFAULT_ROLE_PERMISSIONS


def get_role_permissions(role):
    """Permission codes granted to a role; unknown roles get none."""
    return set(DEFAULT_ROLE_PERMISSIONS.get(role, ()))
