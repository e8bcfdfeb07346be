import hashlib
import json
import os
import socket
import sys
from typing import Any, Dict, Optional, Tuple

from dotenv import load_dotenv
from flask import Flask, jsonify, request

from task_analytics import (
    AnalyticsCache,
    AnalyticsCalculator,
    AnalyticsSettings,
    UnknownCardError,
    get_card_type,
)

# Load environment variables from .env file
load_dotenv()

# --- App Initialization ---
DEFAULT_PORT = 5002

app = Flask(__name__)
app.config['JSON_SORT_KEYS'] = False

SETTINGS = AnalyticsSettings.from_env()
calculator = AnalyticsCalculator(SETTINGS)
analytics_cache = AnalyticsCache(
    ttl_seconds=SETTINGS.cache_ttl_seconds,
    max_size=SETTINGS.cache_max_size,
)


class PayloadError(ValueError):
    """Raised when an analytics request body is missing required values."""


def _reporter_signature(reporters: Any) -> str:
    if not reporters:
        return 'none'
    payload = json.dumps(reporters, sort_keys=True, default=str)
    return hashlib.sha256(payload.encode('utf-8')).hexdigest()[:12]


def _read_analytics_payload() -> Tuple[Any, str, Optional[str], Any]:
    payload = request.get_json(force=True, silent=True) or {}
    if not isinstance(payload, dict):
        raise PayloadError('Request body must be a JSON object.')
    month_id = payload.get('monthId') or payload.get('month_id')
    if not month_id:
        raise PayloadError('monthId is required.')
    tasks = payload.get('tasks')
    if tasks is not None and not isinstance(tasks, list):
        raise PayloadError('tasks must be a list.')
    user_id = payload.get('userId') or payload.get('user_id') or None
    reporters = payload.get('reporters')
    return tasks or [], str(month_id), user_id, reporters


def _cached_analytics(tasks: Any, month_id: str, user_id: Optional[str], reporters: Any) -> Dict[str, Any]:
    scoped = calculator.filter_tasks_by_user(tasks, user_id)
    key = f"{calculator.generate_cache_key(scoped, month_id, user_id)}_{_reporter_signature(reporters)}"
    analytics = analytics_cache.get(key)
    if analytics is not None:
        app.logger.debug("Serving cached analytics for %s", key)
        return analytics
    try:
        analytics = calculator.calculate_all_analytics(
            tasks, month_id, user_id, reporters, strict=True
        )
    except Exception as exc:
        # Serve the empty dashboard for this request only; never cache a fallback.
        app.logger.exception("Analytics calculation failed for %s: %s", key, exc)
        analytics = calculator.get_empty_analytics(month_id, user_id)
        analytics['cacheKey'] = calculator.generate_cache_key(scoped, month_id, user_id)
        return analytics
    analytics_cache.set(key, analytics)
    return analytics


# --- Analytics API ---
@app.route('/api/analytics/cards', methods=['GET'])
def api_list_card_types():
    return jsonify({'cards': calculator.card_types()})


@app.route('/api/analytics', methods=['POST'])
def api_calculate_analytics():
    try:
        tasks, month_id, user_id, reporters = _read_analytics_payload()
    except PayloadError as exc:
        return jsonify({'message': str(exc)}), 400
    try:
        analytics = _cached_analytics(tasks, month_id, user_id, reporters)
        return jsonify({'analytics': analytics})
    except Exception as exc:  # pragma: no cover - defensive logging
        app.logger.exception("Failed to calculate analytics for %s: %s", month_id, exc)
        return jsonify({'message': 'Failed to calculate analytics.'}), 500


@app.route('/api/analytics/cards/<card_type>', methods=['POST'])
def api_card_metric(card_type):
    try:
        get_card_type(card_type)
    except UnknownCardError:
        return jsonify({'metric': calculator.get_metric_for_card(card_type, None)}), 404
    try:
        tasks, month_id, user_id, reporters = _read_analytics_payload()
    except PayloadError as exc:
        return jsonify({'message': str(exc)}), 400
    category = (request.get_json(force=True, silent=True) or {}).get('category')
    try:
        analytics = _cached_analytics(tasks, month_id, user_id, reporters)
        metric = calculator.get_metric_for_card(card_type, analytics, category)
        return jsonify({'metric': metric})
    except Exception as exc:  # pragma: no cover - defensive logging
        app.logger.exception("Failed to extract %s metric: %s", card_type, exc)
        return jsonify({'message': 'Failed to load dashboard metric.'}), 500


@app.route('/api/analytics/metrics', methods=['POST'])
def api_all_metrics():
    try:
        tasks, month_id, user_id, reporters = _read_analytics_payload()
    except PayloadError as exc:
        return jsonify({'message': str(exc)}), 400
    try:
        analytics = _cached_analytics(tasks, month_id, user_id, reporters)
        return jsonify({'metrics': calculator.get_all_metrics(analytics)})
    except Exception as exc:  # pragma: no cover - defensive logging
        app.logger.exception("Failed to load dashboard metrics for %s: %s", month_id, exc)
        return jsonify({'message': 'Failed to load dashboard metrics.'}), 500


def is_port_in_use(port):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        return s.connect_ex(('127.0.0.1', port)) == 0


def main():
    try:
        port = int(os.getenv('TASKBOARD_PORT', DEFAULT_PORT))
    except ValueError:
        port = DEFAULT_PORT
    if is_port_in_use(port):
        print(f"Port {port} is already in use. Is another analytics server running?")
        sys.exit(1)
    print(f"Port {port} is free. Starting analytics server.")
    app.run(host='0.0.0.0', port=port, debug=False)


if __name__ == '__main__':
    main()
