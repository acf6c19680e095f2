"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from typing import Any

from marshmallow import EXCLUDE, Schema, fields, post_load, validate


class _EmailNormalizingSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    @post_load
    def _normalize_email(self, data: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
        if "email" in data:
            data["email"] = data["email"].strip().lower()
        return data


class RegisterSchema(_EmailNormalizingSchema):
    """Input payload for account registration."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=8, max=128))
    username = fields.String(
        load_default=None, allow_none=True, validate=validate.Length(min=3, max=50)
    )


class LoginSchema(_EmailNormalizingSchema):
    """Input payload for authenticating a user."""

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))


class RefreshSchema(Schema):
    """Input payload carrying an opaque refresh token."""

    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.String(required=True, validate=validate.Length(min=1, max=512))


class LogoutSchema(RefreshSchema):
    """Input payload for logging out a single session."""


class UserSchema(Schema):
    """Public representation of a user."""

    id = fields.Integer(required=True)
    email = fields.Email(required=True)
    username = fields.String(allow_none=True)


class AuthResponseSchema(Schema):
    """Token pair plus the user it was issued for."""

    user = fields.Nested(UserSchema, required=True)
    access_token = fields.String(required=True)
    refresh_token = fields.String(required=True)
    token_type = fields.String(dump_default="bearer")
