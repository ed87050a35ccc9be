"""
API routes — trigger surface and run status.

    POST /api/trigger      manual trigger → 202 {run_id, queued_behind}
    POST /api/hooks/push   code-push webhook, honoured for the main branch only
    GET  /api/status       coordinator state
    GET  /api/runs?n=20    recent run history, newest first
"""

from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify, request

from mirrorpub.core.models.run import Trigger, TriggerKind
from mirrorpub.core.services.coordinator import CoordinatorClosed
from mirrorpub.core.use_cases.publish import Publisher

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)


def _publisher() -> Publisher:
    return current_app.config["PUBLISHER"]


def _submit(trigger: Trigger):  # type: ignore[no-untyped-def]
    coordinator = _publisher().coordinator
    was_busy = coordinator.busy
    try:
        ticket = coordinator.submit(trigger)
    except CoordinatorClosed as e:
        return jsonify({"error": str(e)}), 503
    return jsonify({
        "run_id": ticket.run_id,
        "kind": str(trigger.kind),
        "queued_behind": was_busy,
    }), 202


@api_bp.route("/trigger", methods=["POST"])
def trigger():  # type: ignore[no-untyped-def]
    """Manual deployment trigger."""
    return _submit(Trigger(kind=TriggerKind.MANUAL, source="api"))


@api_bp.route("/hooks/push", methods=["POST"])
def push_hook():  # type: ignore[no-untyped-def]
    """Code-push webhook.  Pushes to other branches are acknowledged and ignored."""
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    ref = payload.get("ref", "")
    wanted = f"refs/heads/{current_app.config['PUSH_BRANCH']}"

    if ref != wanted:
        logger.debug("Ignoring push to %s (want %s)", ref or "-", wanted)
        return jsonify({"ignored": True, "ref": ref}), 200

    return _submit(Trigger(kind=TriggerKind.PUSH, source="webhook", ref=ref))


@api_bp.route("/status")
def status():  # type: ignore[no-untyped-def]
    """Coordinator phase, queued trigger and last outcome."""
    publisher = _publisher()
    data = publisher.coordinator.status()
    data["name"] = publisher.config.name
    data["regions"] = [r.path for r in publisher.config.regions]
    return jsonify(data)


@api_bp.route("/runs")
def runs():  # type: ignore[no-untyped-def]
    """Recent run history."""
    n = request.args.get("n", default=20, type=int)
    n = max(1, min(n, 200))
    outcomes = _publisher().history.load(n=n)
    return jsonify({"runs": [o.model_dump(mode="json") for o in outcomes]})
