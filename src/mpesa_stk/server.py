"""
FastAPI front end exposing ``POST /send`` for push payment requests.

The app only maps HTTP onto :class:`mpesa_stk.core.client.StkPushClient`;
validation, token handling and the provider call all live in the core.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any, Dict, Optional, Tuple

import uvicorn
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel

from .core.client import StkPushClient
from .core.errors import MpesaError, ValidationError
from .core.payloads import PaymentRequest

__all__ = [
    "PushRequestBody",
    "create_app",
    "handle_push_request",
    "serve",
]


class PushRequestBody(BaseModel):
    """Body of ``POST /send``; field values are checked by the core."""

    phoneNumber: Any = None
    amount: Any = None
    accountReference: Optional[str] = None
    transactionDescription: Optional[str] = None


def handle_push_request(client: StkPushClient, body: Any) -> Tuple[int, Dict[str, Any]]:
    """
    Run one ``/send`` request body through ``client``.

    Returns the HTTP status and the JSON document to send back. Provider
    results always map to 200 with ``success`` set from the response code.
    """
    if not isinstance(body, dict):
        error = ValidationError("Request body must be a JSON object")
        return HTTPStatus.BAD_REQUEST, error.to_dict()

    request = PaymentRequest(
        phone_number=body.get("phoneNumber"),
        amount=body.get("amount"),
        account_reference=body.get("accountReference"),
        transaction_description=body.get("transactionDescription"),
    )
    try:
        result = client.submit(request)
    except ValidationError as exc:
        return HTTPStatus.BAD_REQUEST, exc.to_dict()
    except MpesaError as exc:
        logging.error("STK push failed: %s", exc)
        return HTTPStatus.BAD_GATEWAY, exc.to_dict()

    response = {"success": result.accepted}
    response.update(result.as_dict())
    return HTTPStatus.OK, response


def create_app(client: StkPushClient) -> FastAPI:
    app = FastAPI(title="M-Pesa STK push")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(client.config.allowed_origins),
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = ValidationError("Invalid request body", detail=jsonable_encoder(exc.errors()))
        return JSONResponse(error.to_dict(), status_code=HTTPStatus.BAD_REQUEST)

    @app.get("/", response_class=HTMLResponse)
    def index() -> str:
        return "<h1>M-Pesa STK push</h1>"

    # Sync handler: FastAPI runs it in its threadpool, so a slow provider
    # call does not block the event loop.
    @app.post("/send")
    def send(body: PushRequestBody) -> JSONResponse:
        status, document = handle_push_request(client, body.model_dump())
        return JSONResponse(document, status_code=status)

    return app


def serve(client: StkPushClient, *, host: str = "0.0.0.0", port: Optional[int] = None) -> None:
    bind_port = client.config.port if port is None else port
    logging.info("Listening on http://%s:%s", host, bind_port)
    uvicorn.run(create_app(client), host=host, port=bind_port)
