"""HTTP service for fitpick.

Endpoints:
  GET /health       liveness check
  GET /config       search defaults and business rules
  GET /solve        run a search, JSON results
  GET /export       run a search, .xlsx download
  GET /communities  community names of the ready collection

Searches run on the dispatcher's worker pool, one task per request.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from flask import Blueprint, Flask, current_app, jsonify, request, send_file

from fitpick.config import ProjectConfig
from fitpick.data.dataset import Dataset
from fitpick.data.export import export_xlsx
from fitpick.exceptions import (
    DispatchTimeoutError,
    FitPickError,
    InvalidInputError,
    QueueFullError,
)
from fitpick.service import SearchDispatcher, SearchRequest, make_task, resolve_request

logger = logging.getLogger("fitpick.server")

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

bp = Blueprint("fitpick", __name__)


@dataclass
class ServiceState:
    config: ProjectConfig
    dataset: Dataset
    dispatcher: SearchDispatcher


def _state() -> ServiceState:
    return current_app.extensions["fitpick"]


def _request_from_query(config: ProjectConfig) -> SearchRequest:
    q = request.args
    return resolve_request(
        config,
        target=q.get("target"),
        top_k=q.get("topK"),
        source=q.get("source"),
        min_size=q.get("minSize"),
        max_size=q.get("maxSize"),
        communities=q.getlist("community"),
        bonus=q.get("bonus"),
    )


def _run(search_request: SearchRequest):
    state = _state()
    task = make_task(state.dataset, search_request, state.config)
    logger.info(
        f"Dispatching target={task.target:g} top_k={task.k} "
        f"source={search_request.source} candidates={len(task.items)}"
    )
    return state.dispatcher.run(task, timeout=state.config.server.timeout)


@bp.route("/health", methods=["GET"])
def health():
    return jsonify({"status": "ok"})


@bp.route("/config", methods=["GET"])
def show_config():
    config = _state().config
    return jsonify(
        {
            "search": config.search.model_dump(),
            "policy": config.policy.model_dump(),
        }
    )


@bp.route("/communities", methods=["GET"])
def communities():
    return jsonify(_state().dataset.communities())


@bp.route("/solve", methods=["GET"])
def solve():
    search_request = _request_from_query(_state().config)
    results = _run(search_request)
    return jsonify([r.model_dump() for r in results])


@bp.route("/export", methods=["GET"])
def export():
    search_request = _request_from_query(_state().config)
    results = _run(search_request)
    buffer = io.BytesIO()
    export_xlsx(results, buffer)
    buffer.seek(0)
    return send_file(
        buffer,
        mimetype=XLSX_MIMETYPE,
        as_attachment=True,
        download_name=f"results-{search_request.effective_target:g}.xlsx",
    )


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(InvalidInputError)
    def invalid_input(e: InvalidInputError):
        return _error(str(e), 400)

    @app.errorhandler(QueueFullError)
    def queue_full(e: QueueFullError):
        return _error(str(e), 503)

    @app.errorhandler(DispatchTimeoutError)
    def timed_out(e: DispatchTimeoutError):
        return _error(str(e), 504)

    @app.errorhandler(FitPickError)
    def failed(e: FitPickError):
        logger.error(f"Request failed: {e}")
        return _error(str(e), 500)


def create_app(
    config: ProjectConfig,
    dataset: Dataset,
    dispatcher: SearchDispatcher | None = None,
) -> Flask:
    """Build the Flask app around a loaded dataset and a dispatcher."""
    app = Flask(__name__)
    app.json.ensure_ascii = False
    app.extensions["fitpick"] = ServiceState(
        config=config,
        dataset=dataset,
        dispatcher=dispatcher or SearchDispatcher.from_config(config.server),
    )
    app.register_blueprint(bp)
    _register_error_handlers(app)
    return app
