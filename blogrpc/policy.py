"""
Capability checks shared by every procedure.

Two tiers: admins may see unpublished posts and change data; everyone
else (anonymous or plain users) only ever sees published posts.
"""
from blogrpc.models import User, UserRole


def is_admin(user: User | None) -> bool:
    return user is not None and user.role == UserRole.ADMIN


def can_view_unpublished(user: User | None) -> bool:
    return is_admin(user)


def can_mutate(user: User | None) -> bool:
    return is_admin(user)
