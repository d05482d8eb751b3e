"""
Signup endpoint.

A single GET handler on every path, driven by the raw query string:

- ?r=<base64url csv>  - signup request, mails a verification link
- ?v=<payload.sig>    - verification link click
- ?d=<password>       - list download for the operator

The query is percent-decoded as a whole with unquote (not unquote_plus),
so a literal "+" in a base64 signature survives. Everything after the
3-character prefix is the value.
"""

from __future__ import annotations

from urllib.parse import unquote

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, Response

from src.api.deps import get_mailing_list_service
from src.components.mailing_list import (
    DownloadInput,
    MailingListService,
    ProcessorOutput,
    SignupRequestInput,
    VerifyInput,
)

router = APIRouter()

CORS_HEADERS = {"Access-Control-Allow-Origin": "*"}

REQUEST_PREFIX = "r="
VERIFY_PREFIX = "v="
DOWNLOAD_PREFIX = "d="


def get_client_ip(request: Request) -> str:
    """Peer address as seen by the server (uvicorn rewrites it for trusted proxies)."""
    return request.client.host if request.client else "unknown"


def _text_response(result: ProcessorOutput) -> Response:
    headers = dict(CORS_HEADERS)
    if result.retry_after_seconds is not None:
        headers["Retry-After"] = str(result.retry_after_seconds)
    return PlainTextResponse(result.message, status_code=result.status_code, headers=headers)


def _download_response(result: ProcessorOutput, filename: str) -> Response:
    if result.content is None:
        return _text_response(result)
    headers = dict(CORS_HEADERS)
    headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return Response(
        content=result.content,
        status_code=result.status_code,
        media_type="text/csv",
        headers=headers,
    )


@router.get("/{path:path}", include_in_schema=False)
def handle_signup(
    request: Request,
    path: str,
    service: MailingListService = Depends(get_mailing_list_service),
) -> Response:
    query = unquote(request.url.query)

    if query.startswith(REQUEST_PREFIX):
        result = service.run_request(
            SignupRequestInput(
                payload=query[len(REQUEST_PREFIX) :],
                ip_address=get_client_ip(request),
            )
        )
        return _text_response(result)

    if query.startswith(VERIFY_PREFIX):
        result = service.run_verify(VerifyInput(token=query[len(VERIFY_PREFIX) :]))
        return _text_response(result)

    if query.startswith(DOWNLOAD_PREFIX):
        result = service.run_download(DownloadInput(password=query[len(DOWNLOAD_PREFIX) :]))
        return _download_response(result, service.download_filename)

    return PlainTextResponse("Not Found", status_code=404, headers=CORS_HEADERS)
