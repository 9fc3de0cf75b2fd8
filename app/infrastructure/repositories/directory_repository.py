"""Directory queries over the portal's user table."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy.orm import Session

from app.infrastructure.models import UserModel


class UserDirectory:
    """Resolve role/department/year/section filters to active user ids."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def query_users(
        self,
        role: str,
        department_id: int | None,
        year: int | None = None,
        section: str | None = None,
        academic_year_id: str | None = None,
    ) -> list[int]:
        query = (
            self.session.query(UserModel.id)
            .filter(UserModel.role == role)
            .filter(UserModel.is_active.is_(True))
        )
        if department_id is not None:
            query = query.filter(UserModel.department_id == department_id)
        if year is not None:
            query = query.filter(UserModel.year == year)
        if section is not None:
            query = query.filter(UserModel.section == section)
        if academic_year_id is not None:
            query = query.filter(UserModel.academic_year_id == academic_year_id)
        return [user_id for (user_id,) in query.order_by(UserModel.id).all()]

    def active_users_among(
        self, user_ids: Iterable[int], department_id: int | None
    ) -> list[int]:
        ids = list(dict.fromkeys(int(user_id) for user_id in user_ids))
        if not ids:
            return []
        query = (
            self.session.query(UserModel.id)
            .filter(UserModel.id.in_(ids))
            .filter(UserModel.is_active.is_(True))
        )
        if department_id is not None:
            query = query.filter(UserModel.department_id == department_id)
        found = {user_id for (user_id,) in query.all()}
        # Keep the order the sender listed the users in.
        return [user_id for user_id in ids if user_id in found]

    def display_name(self, user_id: int) -> str | None:
        row = (
            self.session.query(UserModel.first_name, UserModel.last_name)
            .filter(UserModel.id == user_id)
            .one_or_none()
        )
        if row is None:
            return None
        first_name, last_name = row
        return f"{first_name} {last_name or ''}".strip()


__all__ = ["UserDirectory"]
