"""
Inventory Snapshot Function
===========================

HTTP trigger returning the cached or freshly loaded inventory snapshot.

Endpoints:
    GET    /api/inventory     Load (or return cached) snapshot
    DELETE /api/inventory     Clear the cached snapshot and attempt counter

Query parameters (GET, all optional):
    useCache         true|false  (default true)
    progressive      true|false  (default true)
    includeInactive  true|false  (default false)
    timeoutMs        number      (default from INVENTORY_TIMEOUT_MS)

Retry budget:
    The attempt counter lives for the life of the function host and is only
    reset by DELETE /api/inventory. Every load attempt advances it, whether
    it succeeds or fails; only connectivity failures are refunded. Each
    reload (cache expiry or ``useCache=false``) therefore leaves fewer retries
    for later failures, and once INVENTORY_MAX_ATTEMPTS is reached a failing
    GET gets a single attempt with no retry. Send DELETE to restore the full
    retry budget.

Response (success):
{
    "success": true,
    "trace_id": "trace-...",
    "inventory": {
        "categories": [...],
        "products": [...],
        "stats": {"total_products": 12, ...},
        "meta": {"strategy_used": "progressive", ...}
    }
}

Response (terminal load failure, HTTP 503):
{
    "success": false,
    "error": "Inventory loading failed after 3 attempt(s): ...",
    "attempts": 3,
    "inventory": { ...default snapshot... }
}
"""

import json
import logging
import azure.functions as func
from typing import Any, Dict

from inventory_loader import (
    InventoryLoadError,
    default_snapshot,
    generate_trace_id,
    get_inventory_coordinator,
)

logger = logging.getLogger(__name__)

_BOOL_PARAMS = {
    "useCache": "use_cache",
    "progressive": "progressive",
    "includeInactive": "include_inactive",
}


def main(req: func.HttpRequest) -> func.HttpResponse:
    """HTTP trigger for inventory loading."""
    trace_id = req.headers.get("X-Trace-ID") or generate_trace_id()
    logger.info(f"[{trace_id}] Inventory request received: {req.method}")

    try:
        coordinator = get_inventory_coordinator()

        if req.method == "DELETE":
            coordinator.clear_cache()
            return _json_response({"success": True, "status": "CLEARED", "trace_id": trace_id}, trace_id)

        try:
            options = _parse_options(req.params)
        except ValueError as e:
            return _error_response(str(e), trace_id, status_code=400)

        try:
            snapshot = coordinator.fetch_inventory(profile=None, options=options)
        except InventoryLoadError as e:
            logger.error(f"[{trace_id}] Inventory unavailable after {e.attempts} attempts: {e}")
            return _json_response(
                {
                    "success": False,
                    "error": str(e),
                    "attempts": e.attempts,
                    "trace_id": trace_id,
                    "inventory": default_snapshot().model_dump(mode="json"),
                },
                trace_id,
                status_code=503,
            )

        logger.info(
            f"[{trace_id}] Inventory served: strategy={snapshot.meta.strategy_used.value}, "
            f"products={snapshot.stats.total_products}"
        )
        return _json_response(
            {"success": True, "trace_id": trace_id, "inventory": snapshot.model_dump(mode="json")},
            trace_id,
        )

    except Exception as e:
        logger.exception(f"[{trace_id}] Error serving inventory: {e}")
        return _error_response(f"Internal server error: {str(e)}", trace_id, status_code=500)


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in ("true", "1", "yes"):
        return True
    if value in ("false", "0", "no"):
        return False
    raise ValueError(f"Invalid boolean for '{name}': {raw}")


def _parse_options(params: Dict[str, str]) -> Dict[str, Any]:
    """Translate query parameters into ``LoadOptions`` fields."""
    options: Dict[str, Any] = {}
    for param, field_name in _BOOL_PARAMS.items():
        if params.get(param) is not None:
            options[field_name] = _parse_bool(param, params[param])

    raw_timeout = params.get("timeoutMs")
    if raw_timeout is not None:
        try:
            timeout_ms = float(raw_timeout)
        except ValueError:
            raise ValueError(f"Invalid number for 'timeoutMs': {raw_timeout}")
        if timeout_ms <= 0:
            raise ValueError("'timeoutMs' must be positive")
        options["timeout_ms"] = timeout_ms

    return options


def _json_response(data: Dict[str, Any], trace_id: str, status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(
        body=json.dumps(data),
        status_code=status_code,
        mimetype="application/json",
        headers={"X-Trace-ID": trace_id},
    )


def _error_response(message: str, trace_id: str, status_code: int = 500) -> func.HttpResponse:
    """Build error response."""
    return _json_response(
        {"success": False, "error": message, "trace_id": trace_id},
        trace_id,
        status_code=status_code,
    )
