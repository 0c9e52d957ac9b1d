"""
Data API
--------

Flask surface for the ``/api/data`` endpoint the value pages poll:

* ``GET /api/data?type=codes|fish|rods`` -- the latest list for one entity
  kind as ``{"data": [...], "lastUpdated": <epoch ms>, "source": "api"}``.
  Unknown or missing types get ``400 {"error": "Invalid data type"}``.

Requests evict expired gateway cache entries at most once per cache TTL, so
the server needs no background timer.
"""

from __future__ import annotations

from typing import Any

from flask import Flask, jsonify, request

from fisch.infrastructure.upstream_gateway import UpstreamDataGateway


def create_web_app(gateway: UpstreamDataGateway) -> Flask:
    app = Flask(__name__)
    app.config["DATA_GATEWAY"] = gateway

    @app.get("/api/data")
    def api_data() -> Any:
        gateway.maybe_sweep()
        result = gateway.handle(request.args.get("type"))
        return jsonify(result.body), result.status_code

    return app
