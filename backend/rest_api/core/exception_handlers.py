"""
Exception handlers.
Renders every AppException as {"detail", "code", ...context}.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from shared.utils.exceptions import AppException


def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Render a domain error.

    The exception already logged itself when it was raised.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)
