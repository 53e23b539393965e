"""
Configure generic models not specific
to a particular feature.
"""
from http import HTTPStatus
from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlmodel import SQLModel


class ResponseEnvelope(SQLModel):
    """JSON body shared by every endpoint"""
    success: bool
    status_code: int
    status_text: str
    error_code: int = 0
    error_text: str = ""
    content: Any | None = None


def generate_response(
    status_code: int,
    success: bool,
    error_text: str = "No Error.",
    content: Any | None = None,
    error_code: int = 0,
) -> JSONResponse:
    """
    Wrap content in the response envelope.
    status_text is the standard reason phrase for status_code.
    """
    envelope = ResponseEnvelope(
        success=success,
        status_code=status_code,
        status_text=HTTPStatus(status_code).phrase,
        error_code=error_code,
        error_text=error_text,
        content=jsonable_encoder(content),
    )
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(envelope),
    )
