"""
Response envelope shared by every endpoint.

Success: {"success": true, "data": ..., "message": ...}
Failure: {"success": false, "error": {"code": ..., "message": ...}}
"""

from typing import Any, Optional

from fastapi.encoders import jsonable_encoder


def success_response(data: Any, message: Optional[str] = None) -> dict[str, Any]:
    return {
        "success": True,
        "data": jsonable_encoder(data),
        "message": message,
    }


def error_response(code: str, message: str, details: Optional[Any] = None) -> dict[str, Any]:
    error = {"code": code, "message": message}
    if details is not None:
        error["details"] = jsonable_encoder(details)
    return {"success": False, "error": error}
