"""Role-based access control (RBAC) for learnhub.

Hierarchical permission system:
- ADMIN (level 3): Full system access
- TEACHER (level 2): Read any learner's progress, manage enrollments
- STUDENT (level 1): Read and write own progress
- USER (level 0): Registered user without enrollments
"""

from enum import Enum
from uuid import UUID


class UserRole(str, Enum):
    """User roles with hierarchical levels.

    Higher level = more permissions.
    ADMIN can do everything TEACHER can do, and more.
    """

    USER = "user"  # Level 0: Basic registered user
    STUDENT = "student"  # Level 1: Enrolled learner
    TEACHER = "teacher"  # Level 2: Course instructor
    ADMIN = "admin"  # Level 3: System administrator


# Role hierarchy mapping (role -> permission level)
ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.USER: 0,
    UserRole.STUDENT: 1,
    UserRole.TEACHER: 2,
    UserRole.ADMIN: 3,
}


def get_role_level(role: UserRole | str) -> int:
    """Get the permission level for a role.

    Args:
        role: UserRole enum or string representation

    Returns:
        Permission level (0-3), defaults to 0 for unknown roles
    """
    if isinstance(role, str):
        try:
            role = UserRole(role)
        except ValueError:
            return 0
    return ROLE_HIERARCHY.get(role, 0)


def has_permission(user_role: UserRole | str, required_role: UserRole | str) -> bool:
    """Check if user has at least the required permission level.

    Examples:
        >>> has_permission(UserRole.ADMIN, UserRole.TEACHER)
        True
        >>> has_permission("student", "teacher")
        False
    """
    return get_role_level(user_role) >= get_role_level(required_role)


def is_at_least_teacher(role: UserRole | str) -> bool:
    """Check if role is TEACHER or higher (ADMIN)."""
    return has_permission(role, UserRole.TEACHER)


# ==============================================================================
# Progress Access Policy
# ==============================================================================


def can_read_progress(actor_id: UUID, actor_role: UserRole | str, owner_id: UUID) -> bool:
    """Owners read their own progress; TEACHER and above read anyone's."""
    return actor_id == owner_id or is_at_least_teacher(actor_role)


def can_write_progress(actor_id: UUID, actor_role: UserRole | str, owner_id: UUID) -> bool:
    """Only the owner or an ADMIN may change a progress record."""
    return actor_id == owner_id or has_permission(actor_role, UserRole.ADMIN)
