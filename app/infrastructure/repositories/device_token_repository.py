"""Persistence helpers for push device tokens."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Sequence

import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.domain.entities import DeviceToken
from app.domain.errors import StorageFailure, TokenInvalidated
from app.infrastructure.models import DeviceTokenModel
from app.utils import ensure_utc, now_naive_utc

logger = logging.getLogger(__name__)


class DeviceTokenRepository:
    """Registry of device tokens keyed by the token value."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def register(self, user_id: int, token: str, platform: str) -> DeviceToken:
        """Insert ``token`` or refresh its ``last_seen_at``.

        A token already registered by another user follows the device to the
        new user. Invalidated tokens stay invalid.
        """

        return self._register(user_id, token, platform, retry=True)

    def _register(self, user_id: int, token: str, platform: str, *, retry: bool) -> DeviceToken:
        model = self._get_model(token)
        now = now_naive_utc()
        if model is None:
            model = DeviceTokenModel(
                user_id=user_id,
                token=token,
                platform=platform,
                registered_at=now,
                last_seen_at=now,
                valid=True,
            )
            self.session.add(model)
            try:
                self.session.commit()
            except IntegrityError as exc:
                self.session.rollback()
                if not retry:
                    raise StorageFailure("Could not store the device token") from exc
                # Another request may have registered the same token first.
                return self._register(user_id, token, platform, retry=False)
            return self._to_entity(model)

        if not model.valid:
            raise TokenInvalidated("This device token was rejected by the push gateway")

        if model.user_id != user_id:
            logger.info("Device token moved from user %s to user %s", model.user_id, user_id)
            model.user_id = user_id
            model.platform = platform
            model.registered_at = now
        model.last_seen_at = now
        self.session.add(model)
        self.session.commit()
        return self._to_entity(model)

    def invalidate(self, token: str, *, reason: str | None = None) -> bool:
        """Permanently invalidate ``token``. Returns ``True`` on the first call."""

        result = self.session.execute(
            update(DeviceTokenModel)
            .where(DeviceTokenModel.token == token, DeviceTokenModel.valid.is_(True))
            .values(valid=False, invalidated_at=now_naive_utc(), invalid_reason=reason)
            .execution_options(synchronize_session=False)
        )
        self.session.commit()
        return bool(result.rowcount)

    def touch(self, token: str) -> None:
        self.session.execute(
            update(DeviceTokenModel)
            .where(DeviceTokenModel.token == token)
            .values(last_seen_at=now_naive_utc())
            .execution_options(synchronize_session=False)
        )
        self.session.commit()

    def is_valid(self, token: str) -> bool:
        valid = (
            self.session.query(DeviceTokenModel.valid)
            .filter(DeviceTokenModel.token == token)
            .scalar()
        )
        return bool(valid)

    def get(self, token: str) -> DeviceToken | None:
        model = self._get_model(token)
        return self._to_entity(model) if model else None

    def active_tokens_for(self, user_id: int) -> Sequence[DeviceToken]:
        return self.active_tokens_for_users([user_id]).get(user_id, [])

    def active_tokens_for_users(
        self, user_ids: Iterable[int]
    ) -> dict[int, list[DeviceToken]]:
        ids = list({int(user_id) for user_id in user_ids})
        if not ids:
            return {}

        grouped: dict[int, list[DeviceToken]] = defaultdict(list)
        for start in range(0, len(ids), 500):
            query = (
                self.session.query(DeviceTokenModel)
                .populate_existing()
                .filter(DeviceTokenModel.user_id.in_(ids[start : start + 500]))
                .filter(DeviceTokenModel.valid.is_(True))
                .order_by(DeviceTokenModel.last_seen_at.desc(), DeviceTokenModel.id.desc())
            )
            for model in query.all():
                grouped[model.user_id].append(self._to_entity(model))
        return dict(grouped)

    def _get_model(self, token: str) -> DeviceTokenModel | None:
        return (
            self.session.query(DeviceTokenModel)
            .populate_existing()
            .filter(DeviceTokenModel.token == token)
            .one_or_none()
        )

    @staticmethod
    def _to_entity(model: DeviceTokenModel) -> DeviceToken:
        return DeviceToken(
            id=model.id,
            user_id=model.user_id,
            token=model.token,
            platform=model.platform,
            registered_at=ensure_utc(model.registered_at),
            last_seen_at=ensure_utc(model.last_seen_at),
            valid=bool(model.valid),
            invalidated_at=ensure_utc(model.invalidated_at),
            invalid_reason=model.invalid_reason,
        )


__all__ = ["DeviceTokenRepository"]
