"""
Test suite for correlation id propagation.

System role: Verification of request correlation in logs and headers
"""

import logging

from fastapi import FastAPI
from fastapi.testclient import TestClient

from community_backend.observability.correlation import (
    CorrelationIdFilter,
    clear_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from community_backend.observability.middleware import CORRELATION_HEADER, CorrelationMiddleware


def test_set_generates_id_when_missing():
    generated = set_correlation_id()
    try:
        assert generated
        assert get_correlation_id() == generated
    finally:
        clear_correlation_id()
    assert get_correlation_id() == ""


def test_filter_injects_correlation_id():
    record = logging.LogRecord("test", logging.INFO, __file__, 1, "msg", None, None)
    set_correlation_id("abc-123")
    try:
        assert CorrelationIdFilter().filter(record) is True
    finally:
        clear_correlation_id()
    assert record.correlation_id == "abc-123"


def test_middleware_echoes_header():
    app = FastAPI()
    app.add_middleware(CorrelationMiddleware)

    @app.get("/ping")
    async def ping():
        return {"correlation_id": get_correlation_id()}

    client = TestClient(app)

    response = client.get("/ping", headers={CORRELATION_HEADER: "req-42"})
    generated = client.get("/ping")

    assert response.headers[CORRELATION_HEADER] == "req-42"
    assert response.json() == {"correlation_id": "req-42"}
    assert generated.headers[CORRELATION_HEADER]
