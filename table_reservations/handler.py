"""
AWS Lambda entry point for the table reservation API.

API Gateway proxy events are routed on (httpMethod, path):

    POST /signup          create a user
    POST /signin          authenticate, returns {"accessToken": ...}
    POST /tables          create a table
    GET  /tables          list tables
    GET  /tables/{id}     fetch one table
    POST /reservations    create a reservation (conflict-checked)
    GET  /reservations    list reservations

Every response carries the same CORS headers. Any failure, whether a bad
request, a business rule or an AWS error, is a 400 with {"message": ...}.
"""

import base64
import binascii
import json
import logging
import re
import threading
from typing import Any, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .config import Settings, configure_logging
from .errors import BookingError, InvalidRequestError
from .service import BookingService

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Headers": "Content-Type,X-Amz-Date,Authorization,X-Api-Key,X-Amz-Security-Token",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "*",
    "Accept-Version": "*",
}
INVALID_REQUEST_MESSAGE = "Invalid request"

_TABLE_ID_PATH = re.compile(r"^/tables/([^/]+)$")
_TABLE_ID_PATTERN = re.compile(r"[0-9]+")

_service: Optional[BookingService] = None
_service_lock = threading.Lock()


def build_response(status_code: int, payload: Any) -> dict:
    """Wrap ``payload`` in the API Gateway proxy response envelope."""
    return {
        "statusCode": status_code,
        "headers": {**CORS_HEADERS, "Content-Type": "application/json"},
        "body": json.dumps(payload),
    }


def parse_body(event: dict) -> dict:
    """Decode the JSON object carried in ``event["body"]``."""
    raw = event.get("body")
    if raw is None or raw == "":
        raise InvalidRequestError("Request body is required")

    if event.get("isBase64Encoded"):
        try:
            raw = base64.b64decode(raw).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise InvalidRequestError("Request body is not valid base64") from e

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        raise InvalidRequestError("Request body is not valid JSON") from e

    if not isinstance(payload, dict):
        raise InvalidRequestError("Request body must be a JSON object")
    return payload


def _request_line(event: dict) -> tuple[str, str]:
    # REST API (v1) events first, HTTP API (v2) events as a fallback
    http = (event.get("requestContext") or {}).get("http") or {}
    method = event.get("httpMethod") or http.get("method") or ""
    path = event.get("path") or event.get("rawPath") or ""
    return str(method).upper(), str(path)


def _parse_table_id(raw: str) -> int:
    if not _TABLE_ID_PATTERN.fullmatch(raw):
        raise InvalidRequestError("Invalid table id")
    return int(raw)


def _route(method: str, path: str, event: dict, service: BookingService) -> Any:
    if path == "/signup" and method == "POST":
        return service.signup(parse_body(event))
    if path == "/signin" and method == "POST":
        return service.signin(parse_body(event))
    if path == "/tables" and method == "POST":
        return service.create_table(parse_body(event))
    if path == "/tables" and method == "GET":
        return service.list_tables()
    if path == "/reservations" and method == "POST":
        return service.create_reservation(parse_body(event))
    if path == "/reservations" and method == "GET":
        return service.list_reservations()

    match = _TABLE_ID_PATH.match(path)
    if match and method == "GET":
        return service.get_table(_parse_table_id(match.group(1)))

    raise InvalidRequestError(INVALID_REQUEST_MESSAGE)


def dispatch(event: dict, service: BookingService) -> dict:
    """Route one event to ``service`` and build its response."""
    method, path = _request_line(event)
    logger.info("%s %s", method, path)

    try:
        return build_response(200, _route(method, path, event, service))
    except BookingError as e:
        logger.warning("Rejected %s %s: %s", method, path, e.message)
        return build_response(400, {"message": e.message})
    except ClientError as e:
        message = e.response.get("Error", {}).get("Message") or str(e)
        logger.warning("AWS error on %s %s: %s", method, path, message)
        return build_response(400, {"message": message})
    except BotoCoreError as e:
        logger.warning("AWS client error on %s %s: %s", method, path, e)
        return build_response(400, {"message": str(e)})
    except Exception as e:
        logger.exception("Unhandled error on %s %s", method, path)
        return build_response(400, {"message": str(e)})


def get_service() -> BookingService:
    """Build the service once per process and reuse it on warm invocations."""
    global _service
    with _service_lock:
        if _service is None:
            from .factory import build_service

            settings = Settings()
            configure_logging(settings.log_level)
            _service = build_service(settings)
        return _service


def lambda_handler(event, context):
    """
    Main Lambda entry point.

    Returns:
        dict with statusCode, headers and body
    """
    try:
        service = get_service()
    except Exception as e:
        logger.exception("Failed to initialise booking service")
        return build_response(400, {"message": str(e)})
    return dispatch(event, service)
