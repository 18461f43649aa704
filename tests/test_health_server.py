"""
Tests for health server

Tests Flask-based health check endpoints for liveness and readiness probes
against real event logs.

Fun fact: The concept of "health checks" in distributed systems was pioneered by Amazon
in the early 2000s when building their highly available retail platform. Today, every
cloud-native system uses similar patterns!
"""

import sqlite3

import pytest

from simple_dao import health_server
from simple_dao.dao import DAO
from simple_dao.health_server import app, initialize_health_server
from simple_dao.kernel.event_store import SQLiteEventStore


@pytest.fixture
def client():
    """Flask test client"""
    app.config["TESTING"] = True
    with app.test_client() as client:
        yield client
    # Reset global state after test
    health_server._db_path = None
    health_server._dao_instance = None


# =============================================================================
# Liveness
# =============================================================================


def test_liveness_always_alive(client):
    response = client.get("/health/live")

    assert response.status_code == 200
    assert response.get_json() == {"status": "alive", "service": "simple-dao"}


# =============================================================================
# Readiness
# =============================================================================


def test_readiness_not_initialized(client):
    response = client.get("/health/ready")

    assert response.status_code == 503
    assert response.get_json()["reason"] == "database_path_not_initialized"


def test_readiness_missing_file(client, tmp_path):
    initialize_health_server(tmp_path / "missing.db")

    response = client.get("/health/ready")

    assert response.status_code == 503
    assert response.get_json()["reason"] == "database_file_not_found"


def test_readiness_without_events_table(client, tmp_path):
    db_path = tmp_path / "other.db"
    conn = sqlite3.connect(str(db_path))
    conn.execute("CREATE TABLE unrelated (id INTEGER)")
    conn.commit()
    conn.close()
    initialize_health_server(db_path)

    response = client.get("/health/ready")

    assert response.status_code == 503
    assert response.get_json()["reason"] == "database_operational_error"


def test_readiness_before_founding(client, temp_db):
    SQLiteEventStore(temp_db)
    initialize_health_server(temp_db)

    response = client.get("/health/ready")

    assert response.status_code == 503
    assert response.get_json()["reason"] == "organization_not_founded"


def test_readiness_ready(client, dao: DAO):
    initialize_health_server(dao.sqlite_path)

    response = client.get("/health/ready")

    assert response.status_code == 200
    data = response.get_json()
    assert data["status"] == "ready"
    assert data["event_count"] == 1


# =============================================================================
# Detailed health
# =============================================================================


def test_detailed_health_not_initialized(client):
    response = client.get("/health")

    assert response.status_code == 503
    data = response.get_json()
    assert data["status"] == "degraded"
    assert data["database"]["status"] == "not_initialized"


def test_detailed_health_with_organization(client, dao: DAO):
    dao.create_proposal("alice", "Offsite", "", "MultipleChoice", ["Lisbon", "Berlin"])
    initialize_health_server(dao.sqlite_path, dao)

    response = client.get("/health")

    assert response.status_code == 200
    data = response.get_json()
    assert data["status"] == "healthy"
    assert data["database"]["event_count"] == 2
    assert data["database"]["stream_count"] == 2
    assert data["database"]["latest_block"] == 100
    assert data["organization"] == {
        "members": 3,
        "total_supply": 1000,
        "active_proposals": 1,
        "current_block": 100,
    }


def test_detailed_health_from_database_only(client, dao: DAO, clock):
    clock.advance(5)
    dao.distribute_tokens("bob", 1)
    initialize_health_server(dao.sqlite_path)

    response = client.get("/health")

    assert response.status_code == 200
    data = response.get_json()
    assert data["database"]["event_count"] == 2
    assert data["database"]["stream_count"] == 1
    assert data["database"]["latest_block"] == 105
    assert "organization" not in data


def test_detailed_health_unfounded_dao(client, temp_db):
    dao = DAO(temp_db)
    initialize_health_server(temp_db, dao)

    response = client.get("/health")

    assert response.status_code == 503
    assert response.get_json()["organization"] == {
        "status": "unavailable",
        "error": "OrganizationNotFound",
    }
