# nrgkick_panel/web.py

"""Same-origin proxy for the NRGKick local API.

Routes:
  GET /api/config             public view of the server-side device config
  GET /api/<endpoint>         fixed-address mode, forwards to the configured IP
  GET /api/<ip>/<endpoint>    path-addressed mode, IPv4 validated first
  OPTIONS *                   CORS preflight (204)

Optionally serves the static panel assets from a directory.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from flask import Flask, Response, jsonify, request, send_from_directory
from werkzeug.security import safe_join

from nrgkick_panel.config import DeviceSettings, ProxyConfig, public_config
from nrgkick_panel.errors import ConfigurationError, ValidationError
from nrgkick_panel.services.proxy_forwarder import ProxyForwarder

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}
PREFLIGHT_MAX_AGE = "86400"


def _json_error(status: int, message: str) -> Response:
    resp = jsonify({"error": message})
    resp.status_code = status
    return resp


def create_app(
    settings: DeviceSettings,
    proxy_cfg: ProxyConfig,
    log,
    forwarder: Optional[ProxyForwarder] = None,
) -> Flask:
    app = Flask(__name__, static_folder=None)
    forwarder = forwarder or ProxyForwarder(settings, log, timeout=proxy_cfg.timeout)
    static_dir = Path(proxy_cfg.static_dir).resolve() if proxy_cfg.static_dir else None

    @app.before_request
    def preflight():
        if request.method == "OPTIONS":
            resp = Response(status=204)
            resp.headers["Access-Control-Max-Age"] = PREFLIGHT_MAX_AGE
            return resp
        return None

    @app.after_request
    def add_cors_headers(resp: Response) -> Response:
        for name, value in CORS_HEADERS.items():
            resp.headers[name] = value
        return resp

    # ------------------------------------------------------------------
    @app.route("/api/config")
    def api_config():
        return jsonify(public_config(settings))

    @app.route("/api/<path:subpath>")
    def api_proxy(subpath: str):
        query = request.query_string.decode("latin-1")
        auth_header = request.headers.get("Authorization")

        try:
            if proxy_cfg.mode == "path":
                address, _, endpoint = subpath.partition("/")
                status, body = forwarder.forward_path(address, "/" + endpoint, query, auth_header)
            else:
                status, body = forwarder.forward_fixed("/" + subpath, query, auth_header)
        except ValidationError as exc:
            log.warning("Rejected proxy request: %s", exc)
            return _json_error(400, str(exc))
        except ConfigurationError as exc:
            return _json_error(503, str(exc))

        return Response(body, status=status, mimetype="application/json")

    # ------------------------------------------------------------------
    if static_dir is not None:

        @app.route("/", defaults={"filename": "index.html"})
        @app.route("/<path:filename>")
        def static_files(filename: str):
            if safe_join(str(static_dir), filename) is None:
                return Response("Forbidden", status=403, mimetype="text/plain")
            if not (static_dir / filename).is_file():
                return Response("File not found", status=404, mimetype="text/plain")
            resp = send_from_directory(static_dir, filename)
            resp.headers["X-Content-Type-Options"] = "nosniff"
            return resp

    app.logger.debug("Proxy app created (mode=%s)", proxy_cfg.mode)
    return app
