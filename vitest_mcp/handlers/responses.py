"""Response formatting shared by the tool handlers."""

from __future__ import annotations

import json
from typing import Any

from mcp.types import TextContent

from ..services import ServiceResult


def json_response(payload: Any) -> list[TextContent]:
    """Serialize a result payload as indented JSON text."""
    return [TextContent(type="text", text=json.dumps(payload, indent=2, default=str, allow_nan=False))]


def error_response(result: ServiceResult, prefix: str = "") -> list[TextContent]:
    """Create an error response from a failed ServiceResult."""
    error = result.error
    payload = {
        "success": False,
        "error": f"{prefix}{error.message}",
        "errorCode": error.code.value,
    }
    if error.details:
        payload["details"] = error.details
    return json_response(payload)
