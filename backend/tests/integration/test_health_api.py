"""Smoke tests for the health endpoint and unknown routes."""

from __future__ import annotations

from tests.helpers.http import API


def test_health_reports_database(client):
    resp = client.get(f"{API}/health")

    assert resp.status_code == 200
    assert resp.get_json()["status"] == "ok"
    assert resp.get_json()["db"] == "ok"


def test_unknown_route_is_problem_json(client):
    resp = client.get(f"{API}/does-not-exist")

    assert resp.status_code == 404
    assert resp.mimetype == "application/problem+json"
