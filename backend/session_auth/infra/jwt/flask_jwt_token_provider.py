# session_auth/infra/jwt/flask_jwt_token_provider.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, cast

import jwt as pyjwt
from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException

from session_auth.services._shared.errors import ExpiredTokenError, InvalidTokenError
from session_auth.services._shared.ports import TokenProvider


@dataclass(slots=True)
class JWTTokenProvider(TokenProvider):
    """
    Adapter for Flask-JWT-Extended.

    Signs with ``JWT_SECRET_KEY``/``JWT_ALGORITHM`` from the app config and
    converts library exceptions into service-level token errors.

    .. note::
       Requires an active Flask app context with proper JWT settings.
    """

    def create_access_token(
        self,
        *,
        identity: str,
        expires_delta: timedelta,
        additional_claims: dict[str, Any] | None = None,
    ) -> str:
        return cast(
            str,
            create_access_token(
                identity=identity,
                additional_claims=additional_claims,
                expires_delta=expires_delta,
                fresh=False,
            ),
        )

    def decode(self, token: str) -> dict[str, Any]:
        try:
            return cast(dict[str, Any], decode_token(token))
        except pyjwt.ExpiredSignatureError as exc:
            raise ExpiredTokenError("access token expired") from exc
        except (pyjwt.PyJWTError, JWTExtendedException) as exc:
            raise InvalidTokenError("access token invalid") from exc
