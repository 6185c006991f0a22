"""
Inventory Diagnostics Function
==============================

HTTP trigger exposing the loader's debug state.

Endpoint: GET /api/inventory/diagnostics

Query parameters:
    probe=true          also run one connection test query
    checkNetwork=true   refresh the network flag from the health URL first

Response:
{
    "success": true,
    "debug": {"is_cached": true, "attempts": 1, "network_status": "online", ...},
    "connection": {"success": true, "response_time_ms": 84.2}    // only with probe=true
}
"""

import json
import logging
import azure.functions as func

from inventory_loader import generate_trace_id, get_inventory_coordinator

logger = logging.getLogger(__name__)


def main(req: func.HttpRequest) -> func.HttpResponse:
    """HTTP trigger for loader diagnostics."""
    trace_id = req.headers.get("X-Trace-ID") or generate_trace_id()
    logger.info(f"[{trace_id}] Inventory diagnostics request received")

    try:
        coordinator = get_inventory_coordinator()

        if _flag(req.params.get("checkNetwork")):
            coordinator.network.check()

        response_data = {
            "success": True,
            "trace_id": trace_id,
            "debug": coordinator.get_debug_stats().model_dump(mode="json"),
        }

        if _flag(req.params.get("probe")):
            connection = coordinator.test_connection()
            response_data["connection"] = connection.model_dump(mode="json")
            logger.info(f"[{trace_id}] Connection test: success={connection.success}")

        return func.HttpResponse(
            body=json.dumps(response_data),
            status_code=200,
            mimetype="application/json",
            headers={"X-Trace-ID": trace_id},
        )

    except Exception as e:
        logger.exception(f"[{trace_id}] Error in inventory diagnostics: {e}")
        return func.HttpResponse(
            body=json.dumps({"success": False, "error": f"Internal server error: {str(e)}", "trace_id": trace_id}),
            status_code=500,
            mimetype="application/json",
            headers={"X-Trace-ID": trace_id},
        )


def _flag(value) -> bool:
    return value is not None and value.strip().lower() in ("true", "1", "yes")
