"""Persistence helpers for per-user push preferences."""

from __future__ import annotations

from collections.abc import Iterable

from sqlalchemy.orm import Session

from app.infrastructure.models import PushPreferenceModel
from app.utils import now_naive_utc


class PushPreferenceRepository:
    """Store the push on/off switch of each user."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def set_enabled(self, user_id: int, enabled: bool) -> None:
        model = self.session.get(PushPreferenceModel, user_id)
        if model is None:
            model = PushPreferenceModel(user_id=user_id)
        model.push_enabled = enabled
        model.updated_at = now_naive_utc()
        self.session.add(model)
        self.session.commit()

    def is_enabled(self, user_id: int) -> bool:
        model = self.session.get(PushPreferenceModel, user_id)
        return True if model is None else bool(model.push_enabled)

    def disabled_among(self, user_ids: Iterable[int]) -> set[int]:
        """Return the subset of ``user_ids`` that opted out of push."""

        ids = list({int(user_id) for user_id in user_ids})
        disabled: set[int] = set()
        for start in range(0, len(ids), 500):
            rows = (
                self.session.query(PushPreferenceModel.user_id)
                .filter(PushPreferenceModel.user_id.in_(ids[start : start + 500]))
                .filter(PushPreferenceModel.push_enabled.is_(False))
                .all()
            )
            disabled.update(user_id for (user_id,) in rows)
        return disabled


__all__ = ["PushPreferenceRepository"]
