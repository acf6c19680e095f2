"""Authentication endpoints using the service layer."""

from __future__ import annotations

from flask import Blueprint, current_app

from session_auth.api.deps import (
    current_identity,
    json_body,
    json_response,
    no_content,
    require_auth,
    timing,
)
from session_auth.core.container import services
from session_auth.core.extensions import limiter
from session_auth.schemas import (
    AuthResponseSchema,
    LoginSchema,
    LogoutSchema,
    RefreshSchema,
    RegisterSchema,
    UserSchema,
)
from session_auth.services._shared.errors import ServiceError
from session_auth.services.auth import LoginIn, LogoutIn, RefreshIn, RegisterIn

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
logout_schema = LogoutSchema()
user_schema = UserSchema()
auth_response_schema = AuthResponseSchema()


def _login_rate_limit() -> str:
    return str(current_app.config.get("AUTH_LOGIN_RATE_LIMIT", "5 per minute"))


@bp.post("/register")
@timing
def register():
    """Create an account and return its first token pair."""

    data = register_schema.load(json_body())
    service = services().auth
    try:
        session = service.register(RegisterIn(**data))
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc
    return json_response(auth_response_schema.dump(session), status=201)


@bp.post("/login")
@limiter.limit(_login_rate_limit)
@timing
def login():
    """Authenticate credentials and issue a token pair."""

    data = login_schema.load(json_body())
    service = services().auth
    try:
        session = service.login(LoginIn(**data))
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc
    return json_response(auth_response_schema.dump(session))


@bp.post("/refresh")
@timing
def refresh():
    """Exchange a refresh token for a new pair; the old token is revoked."""

    data = refresh_schema.load(json_body())
    service = services().auth
    try:
        session = service.refresh(RefreshIn(**data))
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc
    return json_response(auth_response_schema.dump(session))


@bp.post("/logout")
@timing
def logout():
    """Revoke one refresh token. Unknown or already revoked tokens still get 204."""

    data = logout_schema.load(json_body())
    service = services().auth
    try:
        service.logout(LogoutIn(**data))
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc
    return no_content()


@bp.post("/logout-all")
@require_auth
@timing
def logout_all():
    """Revoke every refresh token of the caller."""

    service = services().auth
    try:
        service.logout_all(current_identity().user_id)
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc
    return no_content()


@bp.get("/me")
@require_auth
@timing
def me():
    """Return the authenticated user."""

    service = services().auth
    try:
        user = service.current_user(current_identity().user_id)
    except ServiceError as exc:
        raise service.translate_exceptions(exc) from exc
    return json_response(user_schema.dump(user))
