"""Request and response objects plus the shared JSON response writers."""

from __future__ import annotations

import json
import socket
from dataclasses import dataclass, field
from typing import Any

from lagwatch_http.responses import ErrorResponse, RequestInfo, to_json_dict
from lagwatch_http.settings import Settings

_ENCODE_FAILURE = b'{"error":true,"message":"could not encode JSON","result":{}}'
_NOT_FOUND_BODY = '{"error":true,"message":"invalid request type","result":{}}'


@dataclass
class Request:
    """An incoming HTTP request as seen by the handlers."""

    method: str = "GET"
    path: str = "/"
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class Response:
    """An outgoing HTTP response produced by a handler."""

    status: int = 200
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    def json(self) -> Any:
        """Decode the body as JSON."""
        return json.loads(self.body)


def make_request_info(request: Request) -> RequestInfo:
    """Describe the request path and the host answering it."""
    return RequestInfo(uri=request.path, host=socket.gethostname())


def _cors_headers(settings: Settings) -> dict[str, str]:
    origin = settings.get_string("general.access-control-allow-origin")
    return {"Access-Control-Allow-Origin": origin} if origin else {}


def write_response(settings: Settings, request: Request, status: int, payload: Any) -> Response:
    """Encode ``payload`` as compact JSON; a payload that cannot be encoded gives a 500."""
    headers = _cors_headers(settings)
    headers["Content-Type"] = "application/json"
    try:
        body = json.dumps(
            to_json_dict(payload), separators=(",", ":"), allow_nan=False
        ).encode()
    except (TypeError, ValueError):
        return Response(status=500, headers=headers, body=_ENCODE_FAILURE)
    return Response(status=status, headers=headers, body=body)


def write_error_response(
    settings: Settings, request: Request, status: int, message: str
) -> Response:
    """Write an error body with the given status and message."""
    return write_response(
        settings,
        request,
        status,
        ErrorResponse(error=True, message=message, request=make_request_info(request)),
    )


def not_found_response() -> Response:
    """The catch-all answer for URLs that match no route."""
    return Response(
        status=404,
        headers={
            "Content-Type": "text/plain; charset=utf-8",
            "X-Content-Type-Options": "nosniff",
        },
        body=(_NOT_FOUND_BODY + "\n").encode(),
    )