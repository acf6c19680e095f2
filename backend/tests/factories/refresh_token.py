"""Factory Boy definition for :class:`session_auth.models.refresh_token.RefreshToken`."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import factory

from session_auth.models.refresh_token import RefreshToken
from session_auth.services.tokens import fingerprint, generate_secret
from tests.factories import BaseFactory
from tests.factories.user import UserFactory


class RefreshTokenFactory(BaseFactory):
    """
    Build persisted refresh token rows.

    Pass ``secret=...`` to control the plaintext; the row only stores its
    fingerprint.
    """

    class Meta:
        model = RefreshToken
        exclude = ("secret",)

    id = None
    secret = factory.LazyFunction(generate_secret)
    fingerprint = factory.LazyAttribute(lambda o: fingerprint(o.secret))
    user = factory.SubFactory(UserFactory)
    issued_at = factory.LazyFunction(lambda: datetime.now(UTC))
    expires_at = factory.LazyAttribute(lambda o: o.issued_at + timedelta(days=7))
    revoked = False
