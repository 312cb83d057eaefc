import logging
import os
import uuid

from dotenv import load_dotenv
from flask import Flask, g, jsonify, request
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from pipeline import DatasetUnavailableError, get_trees
from presentation import (
    GRID_CELL_COUNT,
    collection_summary,
    pick_random_trees,
    serialize_tree,
)
from scoring_config import SCORING_MODEL

load_dotenv()

# ---------------------------------------------------------------------------
# Sentry error tracking, gated on SENTRY_DSN (silent when unset in local dev)
# ---------------------------------------------------------------------------
_sentry_dsn = os.environ.get("SENTRY_DSN")
if _sentry_dsn:
    import sentry_sdk
    from sentry_sdk.integrations.flask import FlaskIntegration

    def _sentry_before_send(event, hint):
        """Demote missing-dataset failures to breadcrumbs; they are deploy config, not bugs."""
        exc_info = hint.get("exc_info")
        if exc_info:
            exc_type, exc_value, _ = exc_info
            if exc_type is not None and issubclass(exc_type, DatasetUnavailableError):
                sentry_sdk.add_breadcrumb(
                    category="dataset",
                    message=str(exc_value),
                    level="warning",
                )
                return None
        return event

    sentry_sdk.init(
        dsn=_sentry_dsn,
        integrations=[FlaskIntegration()],
        traces_sample_rate=0.0,
        environment=os.environ.get("TREEFRIENDS_ENVIRONMENT", "production"),
        before_send=_sentry_before_send,
    )

app = Flask(__name__)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Rate limiting. In-memory storage is per-process (with 2 gunicorn workers
# the effective limit is ~2x nominal).
# ---------------------------------------------------------------------------
RATE_LIMIT_DEFAULT = os.environ.get("RATE_LIMIT_DEFAULT", "60/minute")

limiter = Limiter(
    get_remote_address,
    app=app,
    default_limits=[RATE_LIMIT_DEFAULT],
    storage_uri="memory://",
)
logging.getLogger("flask-limiter").setLevel(logging.WARNING)


# ---------------------------------------------------------------------------
# Request ID middleware: every request gets a unique ID for tracing
# ---------------------------------------------------------------------------
def _generate_request_id():
    return uuid.uuid4().hex[:10]


@app.before_request
def _set_request_context():
    g.request_id = _generate_request_id()


@app.after_request
def _after_request(response):
    request_id = getattr(g, "request_id", None)
    if request_id:
        response.headers["X-Request-ID"] = request_id
    return response


def _error(message, status):
    return jsonify({"error": message, "request_id": getattr(g, "request_id", None)}), status


def _load_trees_or_none():
    """The scored collection, or None if the datasets cannot be read."""
    try:
        return get_trees()
    except DatasetUnavailableError as e:
        logger.warning("[%s] %s", g.request_id, e)
        return None


def _parse_count(raw):
    """Validate the ?count= parameter. Returns (count, error_message)."""
    if raw is None or raw == "":
        return 1, None
    try:
        count = int(raw)
    except ValueError:
        return None, "count must be an integer"
    if not 1 <= count <= GRID_CELL_COUNT:
        return None, f"count must be between 1 and {GRID_CELL_COUNT}"
    return count, None


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.route("/healthz")
@limiter.exempt
def healthz():
    trees = _load_trees_or_none()
    if trees is None:
        return _error("Tree datasets are unavailable", 503)
    return jsonify({
        "status": "ok",
        "trees": len(trees),
        "model_version": SCORING_MODEL.version,
    })


@app.route("/api/trees/random")
def random_trees():
    count, error = _parse_count(request.args.get("count"))
    if error:
        return _error(error, 400)

    trees = _load_trees_or_none()
    if trees is None:
        return _error("Tree datasets are unavailable", 503)

    picked = pick_random_trees(trees, count)
    return jsonify({
        "trees": [serialize_tree(tree) for tree in picked],
        "request_id": g.request_id,
    })


@app.route("/api/summary")
def summary():
    trees = _load_trees_or_none()
    if trees is None:
        return _error("Tree datasets are unavailable", 503)
    payload = collection_summary(trees)
    payload["request_id"] = g.request_id
    return jsonify(payload)


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------

@app.errorhandler(429)
def rate_limit_exceeded(e):
    return _error("Too many requests. Please wait and try again.", 429)


@app.errorhandler(404)
def not_found(e):
    return _error("Not found", 404)


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5001))
    debug = os.environ.get("FLASK_DEBUG", "0") == "1"
    app.run(host="0.0.0.0", port=port, debug=debug)
