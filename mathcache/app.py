"""Flask application exposing cached Fibonacci and factorial lookups."""

from __future__ import annotations

import time
from http import HTTPStatus
from logging import getLogger
from typing import Callable, Mapping, Optional

from flask import Flask, Response, g, jsonify, request  # type: ignore[import-not-found,import-untyped]
from flask_cors import CORS  # type: ignore[import-untyped]
from pydantic import BaseModel, ValidationError

from .engine import InvalidInputError, SequenceEngine
from .metrics import REQUEST_LATENCY, SEQUENCE_RESOLUTIONS, render_latest
from .sequences import FACTORIAL, FIBONACCI, build_engines
from .store import InMemoryStore, StorageError

LOGGER = getLogger(__name__)

HEALTHY_MESSAGE = "Service is up and running"
STORAGE_UNAVAILABLE_MESSAGE = "Storage backend unavailable"
MISSING_NUM_MESSAGE = "Missing 'num' parameter"
INVALID_NUM_MESSAGE = "Invalid 'num' parameter"


class NumRequest(BaseModel):
    """Query string accepted by the sequence endpoints."""

    num: Optional[int] = None


class MathResponse(BaseModel):
    """Resolved term; ``result`` is a decimal string to avoid JSON overflow."""

    message: str
    result: str
    cached: bool


class BasicResponse(BaseModel):
    message: str


def _fibonacci_message(num: int, cached: bool) -> str:
    if cached:
        return f"Fibonacci number {num} retrieved from cache"
    return f"Fibonacci number {num} calculated"


def _factorial_message(num: int, cached: bool) -> str:
    if cached:
        return f"Factorial of {num} retrieved from cache"
    return f"Factorial of {num} calculated"


def _message(payload: str, status: HTTPStatus) -> tuple[Response, HTTPStatus]:
    return jsonify(BasicResponse(message=payload).model_dump()), status


def create_app(
    engines: Mapping[str, SequenceEngine] | None = None,
    *,
    readiness: Callable[[], bool] | None = None,
) -> Flask:
    """Create a configured Flask application instance.

    ``engines`` maps ``"fibonacci"`` and ``"factorial"`` to their engines; when
    omitted both run against fresh, seeded in-memory stores.  ``readiness``
    reports whether the storage backend is reachable and drives ``/health``.
    """

    app = Flask(__name__)
    CORS(app)

    if engines is None:
        engines = build_engines(InMemoryStore(), InMemoryStore())
    missing = {FIBONACCI.name, FACTORIAL.name} - set(engines)
    if missing:
        raise ValueError(f"Missing engines for: {', '.join(sorted(missing))}")
    app.extensions["mathcache.engines"] = dict(engines)

    @app.before_request
    def _start_timer() -> None:
        g.request_started = time.perf_counter()

    @app.after_request
    def _record_latency(response: Response) -> Response:
        started = g.pop("request_started", None)
        if started is not None:
            endpoint = request.url_rule.rule if request.url_rule else request.path
            REQUEST_LATENCY.labels(request.method, endpoint).observe(
                time.perf_counter() - started
            )
        return response

    def _resolve(
        sequence: str, describe: Callable[[int, bool], str]
    ) -> tuple[Response, HTTPStatus]:
        try:
            params = NumRequest.model_validate(request.args.to_dict())
        except ValidationError:
            LOGGER.info("Rejected malformed num", extra={"sequence": sequence})
            return _message(INVALID_NUM_MESSAGE, HTTPStatus.BAD_REQUEST)
        if params.num is None:
            return _message(MISSING_NUM_MESSAGE, HTTPStatus.BAD_REQUEST)

        num = params.num
        engine = app.extensions["mathcache.engines"][sequence]
        try:
            value, cached = engine.resolve(num)
        except InvalidInputError as exc:
            LOGGER.info(
                "Rejected negative index", extra={"sequence": sequence, "num": num}
            )
            return _message(exc.message, HTTPStatus.BAD_REQUEST)
        except StorageError:
            LOGGER.exception(
                "Storage backend failed while resolving",
                extra={"sequence": sequence, "num": num},
            )
            return _message(STORAGE_UNAVAILABLE_MESSAGE, HTTPStatus.SERVICE_UNAVAILABLE)

        SEQUENCE_RESOLUTIONS.labels(sequence, str(cached).lower()).inc()
        payload = MathResponse(
            message=describe(num, cached), result=str(value), cached=cached
        )
        return jsonify(payload.model_dump()), HTTPStatus.OK

    @app.get("/health")
    def health():
        if readiness is not None and not readiness():
            LOGGER.warning("Health check failed: storage backend unreachable")
            return _message(STORAGE_UNAVAILABLE_MESSAGE, HTTPStatus.SERVICE_UNAVAILABLE)
        return _message(HEALTHY_MESSAGE, HTTPStatus.OK)

    @app.get("/fib")
    def fibonacci():
        return _resolve(FIBONACCI.name, _fibonacci_message)

    @app.get("/factorial")
    def factorial():
        return _resolve(FACTORIAL.name, _factorial_message)

    @app.get("/metrics")
    def metrics():
        body, content_type = render_latest()
        return Response(body, content_type=content_type)

    return app


__all__ = [
    "BasicResponse",
    "MathResponse",
    "NumRequest",
    "create_app",
]
