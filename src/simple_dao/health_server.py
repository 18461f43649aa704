"""
Health check HTTP server for liveness and readiness probes.

Reports whether the event log is reachable and holds a founded
organization, plus a few organization-level figures.
"""

import sqlite3
from pathlib import Path
from typing import Any

from flask import Flask, jsonify

from simple_dao.kernel.errors import DAOError
from simple_dao.kernel.event_store import SQLiteEventStore
from simple_dao.kernel.logging import get_logger

logger = get_logger(__name__)

app = Flask(__name__)

SERVICE_NAME = "simple-dao"

# Set by initialize_health_server()
_db_path: Path | None = None
_dao_instance: Any = None  # DAO instance for organization figures


def initialize_health_server(db_path: str | Path, dao_instance: Any = None) -> None:
    """
    Point the health server at an event log

    Args:
        db_path: Path to SQLite database
        dao_instance: Optional DAO for organization figures in /health
    """
    global _db_path, _dao_instance
    _db_path = Path(db_path)
    _dao_instance = dao_instance
    logger.info("Health server initialized", db_path=str(_db_path))


def _not_ready(reason: str, **details: Any) -> tuple[Any, int]:
    logger.error("Readiness check failed", reason=reason, **details)
    return jsonify({"status": "not_ready", "reason": reason, **details}), 503


@app.route("/health/live", methods=["GET"])
def liveness() -> tuple[Any, int]:
    """Liveness probe - the process is up"""
    return jsonify({"status": "alive", "service": SERVICE_NAME}), 200


@app.route("/health/ready", methods=["GET"])
def readiness() -> tuple[Any, int]:
    """
    Readiness probe

    Ready when the database file exists, the events table can be queried
    and an organization has been founded in it. 503 otherwise.
    """
    if _db_path is None:
        return _not_ready("database_path_not_initialized")

    if not _db_path.exists():
        return _not_ready("database_file_not_found", db_path=str(_db_path))

    try:
        conn = sqlite3.connect(str(_db_path), timeout=1.0)
        try:
            event_count = conn.execute("SELECT COUNT(*) FROM events").fetchone()[0]
            founded = conn.execute(
                "SELECT COUNT(*) FROM events WHERE event_type = 'OrganizationInitialized'"
            ).fetchone()[0]
        finally:
            conn.close()
    except sqlite3.Error as e:
        return _not_ready("database_operational_error", error=str(e))

    if not founded:
        return _not_ready("organization_not_founded")

    logger.debug("Readiness check passed", event_count=event_count)
    return (
        jsonify({"status": "ready", "database": "accessible", "event_count": event_count}),
        200,
    )


@app.route("/health", methods=["GET"])
def detailed_health() -> tuple[Any, int]:
    """Detailed health: database figures and, if available, organization figures"""
    health_data: dict[str, Any] = {
        "status": "healthy",
        "service": SERVICE_NAME,
    }

    if _db_path and _db_path.exists():
        try:
            store = (
                _dao_instance.event_store
                if _dao_instance is not None
                else SQLiteEventStore(_db_path)
            )
            health_data["database"] = {
                "status": "healthy",
                "path": str(_db_path),
                "event_count": store.count_events(),
                "stream_count": store.count_streams(),
                "latest_block": store.latest_block(),
            }
        except sqlite3.Error as e:
            logger.error("Database health check failed", error=str(e))
            health_data["database"] = {"status": "unhealthy", "error": str(e)}
            health_data["status"] = "degraded"
    else:
        health_data["database"] = {"status": "not_initialized"}
        health_data["status"] = "degraded"

    if _dao_instance is not None:
        try:
            health_data["organization"] = {
                "members": len(_dao_instance.get_members()),
                "total_supply": _dao_instance.get_total_supply(),
                "active_proposals": len(_dao_instance.get_active_proposals()),
                "current_block": _dao_instance.current_block(),
            }
        except DAOError as e:
            logger.warning("Organization figures unavailable", error=str(e))
            health_data["organization"] = {"status": "unavailable", "error": e.code}
            health_data["status"] = "degraded"

    status_code = 200 if health_data["status"] == "healthy" else 503
    return jsonify(health_data), status_code


def run_health_server(port: int = 8080, debug: bool = False) -> None:
    """Run the health check server on ``port``"""
    logger.info("Starting health check server", port=port)
    app.run(host="0.0.0.0", port=port, debug=debug)
