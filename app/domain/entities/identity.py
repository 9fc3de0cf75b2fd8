"""Identity of the authenticated caller as provided by the auth service."""

from __future__ import annotations

from dataclasses import dataclass

ROLE_STUDENT = "student"
ROLE_TEACHER = "teacher"
ROLE_SUPER_ADMIN = "super-admin"
ROLES = (ROLE_STUDENT, ROLE_TEACHER, ROLE_SUPER_ADMIN)


@dataclass(frozen=True)
class Identity:
    """Current user id, role and department."""

    user_id: int
    role: str
    department_id: int | None
    name: str = ""

    def has_role(self, role: str) -> bool:
        """Return ``True`` when the caller's role matches ``role``."""

        return self.role.lower() == role.lower()

    def can_send_notifications(self) -> bool:
        return self.has_role(ROLE_TEACHER) or self.has_role(ROLE_SUPER_ADMIN)

    def is_super_admin(self) -> bool:
        return self.has_role(ROLE_SUPER_ADMIN)


__all__ = [
    "ROLE_STUDENT",
    "ROLE_TEACHER",
    "ROLE_SUPER_ADMIN",
    "ROLES",
    "Identity",
]
