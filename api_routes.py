"""API routes for the scout service."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable

from flask import jsonify, request

from scout import ScoutRuntime
from scout.errors import ConfigError

logger = logging.getLogger("scout.api")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def register_routes(app, runtime_factory: Callable[[], ScoutRuntime]):
    """Register all API routes with the Flask app.

    Args:
        app: Flask app instance.
        runtime_factory: Callable returning the shared ScoutRuntime.
    """

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", "timestamp": _now()})

    @app.route("/scouts")
    def list_scouts():
        return jsonify({"scouts": runtime_factory().describe(), "timestamp": _now()})

    @app.route("/scouts/<name>", methods=["POST"])
    def run_scout(name: str):
        """Run one scout; an optional JSON body ``{"groups": [...]}`` narrows the run."""
        runtime = runtime_factory()
        if name not in runtime.scouts:
            return jsonify({"success": False, "error": f"Unknown scout: {name}", "timestamp": _now()}), 404

        payload = request.get_json(silent=True) or {}
        groups = payload.get("groups") if isinstance(payload, dict) else None
        if groups is not None and not (isinstance(groups, list) and all(isinstance(g, str) for g in groups)):
            return jsonify({"success": False, "error": "groups must be a list of names", "timestamp": _now()}), 400

        logger.info("Running scout %s (groups=%s)", name, groups)
        try:
            result = runtime.run(name, groups=groups)
        except ConfigError as exc:
            logger.error("Scout %s misconfigured: %s", name, exc)
            return jsonify({"success": False, "error": str(exc), "timestamp": _now()}), 400
        except Exception as exc:
            logger.error("Scout %s crashed: %s", name, exc, exc_info=True)
            return jsonify({"success": False, "error": str(exc), "timestamp": _now()}), 500
        return jsonify(result.to_dict())

    @app.route("/scouts/<name>/topics")
    def recent_topics(name: str):
        runtime = runtime_factory()
        if name not in runtime.scouts:
            return jsonify({"error": f"Unknown scout: {name}"}), 404
        limit = request.args.get("limit", default=20, type=int)
        topics = runtime.store.recent_topics(runtime.scouts[name].platform_id, limit=max(1, min(limit, 200)))
        for topic in topics:
            if isinstance(topic.get("created_at"), datetime):
                topic["created_at"] = topic["created_at"].isoformat()
        return jsonify({"topics": topics, "count": len(topics)})

    @app.route("/api/status")
    def api_status():
        try:
            return jsonify(runtime_factory().status())
        except Exception as exc:
            logger.error("Status check failed: %s", exc, exc_info=True)
            return jsonify({"status": "error", "error": "Failed to build status", "timestamp": _now()}), 500

    @app.route("/api/notify", methods=["POST"])
    def api_notify():
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            return jsonify({"success": False, "error": "JSON body required"}), 400
        try:
            sent = runtime_factory().dispatcher.send_notification(payload)
        except ValueError as exc:
            return jsonify({"success": False, "error": str(exc)}), 400
        except ConfigError as exc:
            return jsonify({"success": False, "error": str(exc)}), 500
        if not sent:
            return jsonify({"success": False, "error": "Webhook rejected the notification"}), 502
        return jsonify({"success": True, "timestamp": _now()})
