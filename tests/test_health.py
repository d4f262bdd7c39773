#!/usr/bin/env python3
"""
Basic health endpoint tests for CI/CD pipeline.
Tests fundamental application functionality against an in-memory database.
"""

import pytest
from fastapi.testclient import TestClient

from app.main import create_app


@pytest.fixture
def sync_client(test_settings):
    with TestClient(create_app(test_settings)) as client:
        yield client


def test_health_endpoint(sync_client):
    """Test that health endpoint returns 200 and proper structure"""
    response = sync_client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"ok": True}


def test_ready_endpoint(sync_client):
    """Ready endpoint round-trips a trivial query through the session factory"""
    response = sync_client.get("/readyz")

    assert response.status_code == 200
    assert response.json() == {"db": "ok"}


def test_responses_carry_correlation_id(sync_client):
    response = sync_client.get("/healthz")
    assert len(response.headers["X-Correlation-ID"]) == 8


def test_therapy_catalogue_is_public(test_settings):
    """Therapy listing needs no token; startup creates the tables when asked to"""
    settings = test_settings.model_copy(update={"CREATE_TABLES_ON_STARTUP": True})
    with TestClient(create_app(settings)) as client:
        response = client.get("/therapies")

    assert response.status_code == 200
    assert response.json() == []


def test_unknown_route_is_404(sync_client):
    assert sync_client.get("/nope").status_code == 404
