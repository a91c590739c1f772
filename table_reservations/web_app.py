from __future__ import annotations

from typing import Any

from flask import Flask, Response, request

from .config import Settings, configure_logging
from .factory import build_service
from .handler import CORS_HEADERS, dispatch
from .service import BookingService

ROUTED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def create_app(service: BookingService | None = None) -> Flask:
    """Serve the Lambda routes over HTTP for local development."""
    app = Flask(__name__)
    booking_service = service or build_service(Settings(store_backend="yaml"))

    def _to_event(path: str) -> dict[str, Any]:
        body = request.get_data(as_text=True)
        return {
            "httpMethod": request.method,
            "path": path,
            "headers": dict(request.headers),
            "queryStringParameters": request.args.to_dict() or None,
            "body": body or None,
            "isBase64Encoded": False,
        }

    @app.after_request
    def add_cors_headers(response: Any) -> Any:
        for name, value in CORS_HEADERS.items():
            response.headers[name] = value
        return response

    @app.route("/", defaults={"path": ""}, methods=ROUTED_METHODS)
    @app.route("/<path:path>", methods=ROUTED_METHODS)
    def proxy(path: str) -> Any:
        if request.method == "OPTIONS":
            return Response(status=204)

        result = dispatch(_to_event("/" + path), booking_service)
        return Response(
            result["body"],
            status=result["statusCode"],
            headers=result["headers"],
        )

    return app


if __name__ == "__main__":
    settings = Settings(store_backend="yaml")
    configure_logging(settings.log_level)
    app = create_app(build_service(settings))
    app.run(host="127.0.0.1", port=5000, debug=False)
