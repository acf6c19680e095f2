"""Tests for the ``flask tokens`` command group."""

from __future__ import annotations

from tests.factories.refresh_token import RefreshTokenFactory


def test_revoke_user_prints_count(app, session):
    row = RefreshTokenFactory()
    RefreshTokenFactory(user=row.user)

    result = app.test_cli_runner().invoke(args=["tokens", "revoke-user", str(row.user_id)])

    assert result.exit_code == 0, result.output
    assert "Revoked 2 refresh token(s)" in result.output


def test_revoke_user_rejects_non_positive_id(app, session):
    result = app.test_cli_runner().invoke(args=["tokens", "revoke-user", "0"])

    assert result.exit_code != 0


def test_group_help_lists_only_real_options(app):
    result = app.test_cli_runner().invoke(args=["tokens", "--help"])

    assert result.exit_code == 0
    assert "revoke-user" in result.output
    assert "--verbose" not in result.output
