from typing import Dict

from schemas import Permissions, Role

PERMISSION_FLAGS = ("can_publish", "can_edit_own_posts", "can_edit_all_posts", "can_manage_users")


def permissions_for_role(role) -> Permissions:
    """Permission record stored on the user when a role is assigned.

    The record is denormalized: changing this mapping does not touch users
    who already have a role.
    """
    role = Role(role)
    return Permissions(
        can_publish=role in (Role.admin, Role.collaborator),
        can_edit_own_posts=role in (Role.admin, Role.collaborator),
        can_edit_all_posts=role == Role.admin,
        can_manage_users=role == Role.admin,
    )


def role_fields(role) -> Dict:
    """Fields to $set on a user document when assigning a role."""
    role = Role(role)
    return {"role": role.value, "permissions": permissions_for_role(role).model_dump()}


def has_permission(user: dict, flag: str) -> bool:
    if flag not in PERMISSION_FLAGS:
        raise ValueError(f"Unknown permission: {flag}")
    return bool((user.get("permissions") or {}).get(flag))


def can_edit_post(user: dict, post: dict) -> bool:
    if has_permission(user, "can_edit_all_posts"):
        return True
    own = post.get("author_id") is not None and post.get("author_id") == user.get("id")
    return own and has_permission(user, "can_edit_own_posts")
