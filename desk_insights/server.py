"""Flask service exposing the issue report and the raw issue listing."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from flask import Blueprint, Flask, current_app, jsonify

from .analytics import analyze
from .config import validate_config
from .errors import EmptyDatasetError
from .service_desk_client import ServiceDeskClient, create_client
from .workflow import analysis_datapoints, listing_datapoints

LOGGER = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__, url_prefix="/api")


def _error_message(exc: BaseException) -> str:
    return str(exc) or "Unknown error"


def _client() -> ServiceDeskClient:
    return current_app.extensions["desk_insights.client"]


def _settings() -> Dict[str, Any]:
    return current_app.config["DESK_INSIGHTS"]


@api_bp.route("/analyze", methods=["GET"])
def analyze_issues():
    """Fetch a batch of issues and return the computed report."""
    clock: Optional[Callable[[], datetime]] = current_app.extensions.get("desk_insights.clock")
    try:
        records = _client().fetch_issues(analysis_datapoints(_settings()))
        report = analyze(records, now=clock() if clock else None)
    except EmptyDatasetError:
        LOGGER.warning("No issues returned by the service desk API")
        return jsonify({"error": "No data found"}), 404
    except Exception as exc:
        LOGGER.exception("Error analyzing data")
        return jsonify({"error": "Failed to analyze data", "message": _error_message(exc)}), 500
    return jsonify(report.as_dict())


@api_bp.route("/issues", methods=["GET"])
def list_issues():
    """Proxy a smaller batch of raw issues for the list view."""
    try:
        payload = _client().fetch_payload(listing_datapoints(_settings()))
    except Exception as exc:
        LOGGER.exception("Error fetching issues")
        return jsonify({"error": "Failed to fetch issues", "message": _error_message(exc)}), 500
    return jsonify(payload)


@api_bp.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"})


def create_app(
    config: Optional[Dict[str, Any]] = None,
    *,
    client: Optional[ServiceDeskClient] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> Flask:
    """Build the Flask application.

    ``client`` and ``clock`` let callers substitute the upstream API and the
    evaluation time; by default a client is built from ``config`` and the
    current UTC time is used for each request.
    """
    config = validate_config(config or {})
    app = Flask(__name__)
    app.config["DESK_INSIGHTS"] = config
    app.extensions["desk_insights.client"] = client or create_client(config)
    if clock is not None:
        app.extensions["desk_insights.clock"] = clock
    app.register_blueprint(api_bp)
    return app
