"""Flask application factory for the deadlock-lab HTTP service.

The ``create_app`` function returns a Flask app exposing the analysis
engine as JSON-over-HTTP.  The service is **stateless**: every request
carries the complete system state, and the step-by-step endpoint hands
its ``step_state`` snapshot back to the client, which must send it
with the next request.

- ``GET /`` — render the HTML front page.
- ``GET /health`` — liveness check.
- ``GET /api/scenarios`` — the built-in sample states.
- ``POST /api/detect`` — batch safety check.
- ``POST /api/detect/step`` — one step of the safety loop.
- ``POST /api/resolve`` — terminate a victim and re-check.
- ``POST /api/simulate-request`` — dry-run a resource request.
- ``POST /api/rag`` — resource allocation graph.
- ``POST /api/export`` — download the state as a JSON file.
- ``POST /api/import`` — validate an exported JSON file.
- ``GET /api/log`` — the service's audit log.
"""

from __future__ import annotations

import os
from typing import Any

from flask import Flask, Response, jsonify, render_template, request

from deadlock_lab.avoidance import simulate_request
from deadlock_lab.env import Environment, load_environment, log_level
from deadlock_lab.graph import build_graph, has_cycle
from deadlock_lab.logging import Logger, LogLevel
from deadlock_lab.persistence import dumps_state
from deadlock_lab.resolution import PreconditionError, resolve_deadlock
from deadlock_lab.safety import StepState, check_safety, step_safety
from deadlock_lab.scenarios import SCENARIOS
from deadlock_lab.state import SystemState, ValidationError

_HTTP_BAD_REQUEST = 400
_SERVICE_NAME = "deadlock-detection-api"
_EXPORT_FILENAME = "system-state.json"


def _json_body() -> dict[str, Any]:
    """Return the request's JSON object.

    Raises:
        ValidationError: If the body is missing or not a JSON object.

    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        msg = "Request body must be a JSON object"
        raise ValidationError(msg)
    return data


def _require_int(data: dict[str, Any], key: str) -> int:
    if key not in data:
        msg = f"missing field: {key}"
        raise ValidationError(msg)
    value = data[key]
    if not isinstance(value, int) or isinstance(value, bool):
        msg = f"{key} must be an integer"
        raise ValidationError(msg)
    return value


def create_app(env: Environment | None = None) -> Flask:
    """Create and configure the Flask application.

    Args:
        env: Configuration (defaults only if omitted).

    Returns:
        A configured Flask application ready to serve.

    """
    env = env if env is not None else load_environment()
    logger = Logger(min_level=log_level(env))

    app = Flask(__name__)

    @app.errorhandler(ValidationError)
    @app.errorhandler(PreconditionError)
    def bad_request(error: Exception) -> tuple[Response, int]:  # pyright: ignore[reportUnusedFunction]
        """Turn engine errors into 400 responses."""
        logger.log(LogLevel.WARNING, f"{request.path}: {error}", source="api")
        return jsonify({"error": str(error)}), _HTTP_BAD_REQUEST

    @app.route("/")
    def index() -> str:  # pyright: ignore[reportUnusedFunction]
        """Render the front page."""
        return render_template("index.html", scenarios=list(SCENARIOS.values()))

    @app.route("/health")
    def health() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Report that the service is up."""
        return jsonify({"status": "ok", "service": _SERVICE_NAME})

    @app.route("/api/scenarios")
    def scenarios() -> Response:  # pyright: ignore[reportUnusedFunction]
        """List the built-in sample states."""
        return jsonify(
            [
                {"name": s.name, "description": s.description, "state": s.state.to_dict()}
                for s in SCENARIOS.values()
            ]
        )

    @app.route("/api/detect", methods=["POST"])
    def detect() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Run the batch safety check.

        Expects the system state as the JSON body.
        """
        result = check_safety(SystemState.from_dict(_json_body()))
        logger.log(
            LogLevel.INFO,
            f"detect: {'deadlocked' if result.is_deadlocked else 'safe'}",
            source="api",
        )
        return jsonify(result.to_dict())

    @app.route("/api/detect/step", methods=["POST"])
    def detect_step() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Run one step of the safety loop.

        Expects the system state plus an optional ``step_state``
        (omitted or null to start from the beginning).
        """
        body = _json_body()
        state = SystemState.from_dict(body)
        raw = body.get("step_state")
        snapshot = StepState.from_dict(raw, state) if raw is not None else None
        result = step_safety(state, snapshot)
        logger.log(LogLevel.DEBUG, f"step: {result.status}", source="api")
        return jsonify(result.to_dict())

    @app.route("/api/resolve", methods=["POST"])
    def resolve() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Terminate one deadlocked process.

        Expects the system state plus an optional
        ``victim_process_index``.
        """
        body = _json_body()
        state = SystemState.from_dict(body)
        victim = None
        if body.get("victim_process_index") is not None:
            victim = _require_int(body, "victim_process_index")
        resolution = resolve_deadlock(state, victim)
        logger.log(LogLevel.INFO, f"resolve: terminated P{resolution.victim}", source="api")
        return jsonify(resolution.to_dict())

    @app.route("/api/simulate-request", methods=["POST"])
    def simulate() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Dry-run a resource request.

        Expects the system state plus ``process_index``,
        ``resource_index`` and ``amount``.
        """
        body = _json_body()
        state = SystemState.from_dict(body)
        result = simulate_request(
            state,
            _require_int(body, "process_index"),
            _require_int(body, "resource_index"),
            _require_int(body, "amount"),
        )
        logger.log(
            LogLevel.INFO,
            f"simulate-request: {'granted' if result.granted else 'blocked'}",
            source="api",
        )
        return jsonify(result.to_dict())

    @app.route("/api/rag", methods=["POST"])
    def rag() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return the resource allocation graph."""
        graph = build_graph(SystemState.from_dict(_json_body()))
        return jsonify({**graph.to_dict(), "has_cycle": has_cycle(graph)})

    @app.route("/api/export", methods=["POST"])
    def export() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return the validated state as a downloadable JSON file."""
        state = SystemState.from_dict(_json_body())
        logger.log(LogLevel.INFO, "export", source="api")
        return Response(
            dumps_state(state),
            mimetype="application/json",
            headers={"Content-Disposition": f"attachment; filename={_EXPORT_FILENAME}"},
        )

    @app.route("/api/import", methods=["POST"])
    def import_state() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Validate a previously exported state and echo it back."""
        state = SystemState.from_dict(_json_body())
        logger.log(LogLevel.INFO, "import", source="api")
        return jsonify(state.to_dict())

    @app.route("/api/log")
    def audit_log() -> Response:  # pyright: ignore[reportUnusedFunction]
        """Return the audit log, oldest first."""
        return jsonify({"entries": [str(e) for e in logger.entries]})

    return app


def main() -> None:
    """Run the web service development server.

    This is the ``deadlock-lab-web`` console entry point.  ``HOST``,
    ``PORT`` and ``DEBUG`` come from ``DEADLOCK_LAB_*`` variables.
    """
    env = load_environment(os.environ)
    app = create_app(env)
    app.run(
        host=env.get("HOST") or "127.0.0.1",
        port=env.get_int("PORT"),
        debug=env.get_bool("DEBUG"),
    )
