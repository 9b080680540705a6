from __future__ import annotations

import logging
import time
from typing import Optional

from flask import Flask, Response, jsonify, redirect, render_template, request
from werkzeug.exceptions import HTTPException

from streamseries.config import Settings
from streamseries.errors import BadRequestError, NotFoundError, UpstreamError
from streamseries.ratelimit import FixedWindowLimiter, rate_limited
from streamseries.relay import RelayRedirect, StreamRelay
from streamseries.repository import CatalogRepository

logger = logging.getLogger(__name__)

TRUTHY = {"1", "true", "yes", "on"}
CONTENT_SECURITY_POLICY = "; ".join(
    [
        "default-src 'self'",
        "style-src 'self' 'unsafe-inline'",
        "script-src 'self' 'unsafe-inline'",
        "img-src 'self' data: https: http:",
        "media-src 'self' blob: data: https: http:",
        "connect-src 'self' https: http:",
    ]
)


def _int_arg(name: str) -> Optional[int]:
    value = request.args.get(name, "").strip()
    try:
        return int(value)
    except ValueError:
        return None


def create_app(
    settings: Optional[Settings] = None,
    repository: Optional[CatalogRepository] = None,
    relay: Optional[StreamRelay] = None,
    limiter: Optional[FixedWindowLimiter] = None,
) -> Flask:
    settings = settings or Settings.from_env()
    if repository is None:
        repository = CatalogRepository(settings.data_file, page_size=settings.default_page_size)
        repository.reload()
    relay = relay or StreamRelay(
        user_agent=settings.relay_user_agent,
        connect_timeout=settings.relay_connect_timeout,
        read_timeout=settings.relay_read_timeout,
        allowed_domains=settings.allowed_domains,
    )
    limiter = limiter or FixedWindowLimiter(settings.relay_rate_limit, settings.relay_rate_window)
    started = time.monotonic()

    app = Flask(__name__)
    app.config.update(settings.as_flask_config())
    app.json.sort_keys = False
    app.extensions["streamseries"] = {"repository": repository, "relay": relay, "limiter": limiter}

    @app.after_request
    def add_headers(response: Response):
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers.setdefault("Content-Security-Policy", CONTENT_SECURITY_POLICY)
        return response

    @app.errorhandler(NotFoundError)
    def series_not_found(exc: NotFoundError):
        return jsonify({"status": "error", "message": "Series not found"}), 404

    @app.errorhandler(BadRequestError)
    def bad_relay_target(exc: BadRequestError):
        logger.info("Rejected relay request: %s", exc)
        return Response(status=400)

    @app.errorhandler(UpstreamError)
    def upstream_failed(exc: UpstreamError):
        return Response(status=502)

    @app.errorhandler(HTTPException)
    def http_error(exc: HTTPException):
        message = "Route not found" if exc.code == 404 else exc.description
        response = jsonify({"status": "error", "message": message})
        response.status_code = exc.code
        for name, value in exc.get_headers():
            if name.lower() != "content-type":
                response.headers[name] = value
        return response

    @app.get("/")
    def index():
        return render_template("index.html", page_size=repository.page_size)

    @app.get("/api/stats")
    @app.get("/stats")
    def stats():
        return jsonify({"status": "ok", **repository.stats()})

    @app.get("/api/series")
    @app.get("/series")
    def list_series():
        result = repository.list_series(
            page=_int_arg("page"),
            limit=_int_arg("limit"),
            query=request.args.get("q", ""),
            shuffle=request.args.get("random", "").strip().lower() in TRUTHY,
        )
        return jsonify({"status": "ok", **result.to_dict()})

    @app.get("/api/series/<path:name>")
    @app.get("/series/<path:name>")
    def series_detail(name: str):
        return jsonify({"status": "ok", "data": repository.get_series(name).to_dict()})

    @app.post("/api/reload")
    def reload_catalog():
        if not repository.reload():
            return jsonify({"status": "error", "message": "Catalog reload failed, previous catalog kept"}), 500
        return jsonify({"status": "ok", **repository.stats()})

    @app.get("/api/debug")
    def debug():
        return jsonify(repository.describe_source())

    @app.get("/video-proxy")
    @rate_limited(limiter)
    def video_proxy():
        result = relay.open(request.args.get("url"), request.headers.get("Range"))
        if isinstance(result, RelayRedirect):
            return redirect(request.script_root + result.proxy_location, code=302)
        response = Response(result.body, status=result.status, headers=result.headers, direct_passthrough=True)
        response.call_on_close(result.close)
        return response

    @app.get("/health")
    def health():
        summary = repository.stats()
        return jsonify(
            {
                "status": "ok",
                "uptime": round(time.monotonic() - started, 3),
                "series": summary["series"],
                "episodes": summary["episodes"],
                "loaded": summary["loaded"],
            }
        )

    return app
