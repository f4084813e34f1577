"""
Uniform response envelope.

Every endpoint answers ``{"status": int, "error": str | null, "data": any}``
and the HTTP status code always equals ``status``.
"""
from typing import Any, Optional
from fastapi import status as http_status
from fastapi.encoders import jsonable_encoder
from starlette.responses import JSONResponse


def basic_response(
    status: int = http_status.HTTP_200_OK,
    error: Optional[str] = None,
    data: Any = None,
) -> JSONResponse:
    """Build the envelope, encoding datetimes and ORM-free values on the way."""
    return JSONResponse(
        status_code=status,
        content=jsonable_encoder({"status": status, "error": error, "data": data}),
    )
