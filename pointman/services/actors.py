"""Lookups for the already-authenticated actors handed in by callers."""

from django.contrib.auth import get_user_model

from pointman.exceptions import NotFound
from pointman.models import Establishment


def get_user(user_id):
    """Active user by primary key."""
    User = get_user_model()
    try:
        return User.objects.get(pk=user_id, is_active=True)
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFound("USER_NOT_FOUND", user_id=user_id)


def get_establishment(establishment_id) -> Establishment:
    """Active establishment by primary key."""
    try:
        return Establishment.objects.get(pk=establishment_id, is_active=True)
    except (Establishment.DoesNotExist, ValueError, TypeError):
        raise NotFound("ESTABLISHMENT_NOT_FOUND", establishment_id=establishment_id)
