"""Test doubles and data builders shared by the test modules."""

from __future__ import annotations

from typing import Any

from app.domain.entities import ROLE_STUDENT, Identity
from app.domain.errors import PushPermanentFailure, PushTransientFailure
from app.infrastructure.models import UserModel
from app.infrastructure.push import AccessTokenProvider, PushGateway
from app.infrastructure.security import create_access_token


class FakePushGateway(PushGateway):
    """Gateway double returning scripted outcomes per token.

    ``outcomes[token]`` is consumed one entry per send; ``None`` means success
    and an exception instance is raised. Tokens without a script succeed.
    """

    def __init__(self, outcomes: dict[str, list[Exception | None]] | None = None) -> None:
        self.outcomes = outcomes or {}
        self.sent: list[tuple[str, str, dict[str, Any]]] = []
        self.closed = False

    async def send(self, token: str, platform: str, payload: dict[str, Any]) -> str:
        self.sent.append((token, platform, payload))
        script = self.outcomes.get(token)
        if script:
            outcome = script.pop(0)
            if outcome is not None:
                raise outcome
        return f"projects/test/messages/{len(self.sent)}"

    async def aclose(self) -> None:
        self.closed = True

    def calls_for(self, token: str) -> int:
        return sum(1 for sent_token, _, _ in self.sent if sent_token == token)


def transient(message: str = "unavailable") -> PushTransientFailure:
    return PushTransientFailure(message)


def unregistered() -> PushPermanentFailure:
    return PushPermanentFailure("UNREGISTERED", token_invalid=True)


def add_user(
    session,
    user_id: int,
    *,
    role: str = ROLE_STUDENT,
    department_id: int | None = 1,
    year: int | None = None,
    section: str | None = None,
    academic_year_id: str | None = None,
    is_active: bool = True,
    first_name: str = "User",
) -> int:
    session.add(
        UserModel(
            id=user_id,
            first_name=first_name,
            last_name=str(user_id),
            role=role,
            department_id=department_id,
            year=year,
            section=section,
            academic_year_id=academic_year_id,
            is_active=is_active,
        )
    )
    session.commit()
    return user_id


def auth_headers(identity: Identity) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(identity)}"}


class RotatingTokens(AccessTokenProvider):
    """Token source handing out ``access-1``, ``access-2``... on each refresh."""

    def __init__(self) -> None:
        self.refreshes = 0

    async def token(self, *, stale: str | None = None) -> str:
        if stale is not None and stale == self.current:
            self.refreshes += 1
        return self.current

    @property
    def current(self) -> str:
        return f"access-{self.refreshes + 1}"
