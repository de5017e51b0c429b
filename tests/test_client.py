from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from rampbench.config import MockConfig, PayloadSpec, TargetConfig, TargetKind
from rampbench.loadgen import HttpTarget, MockTarget, RequestExecutor

PAYLOAD = PayloadSpec().generate()
TARGET = TargetConfig(kind=TargetKind.CUSTOM, base_url="http://backend.test/", path="/api/v1/data/all")


def _send_http(handler, executor: RequestExecutor | None = None, timeout: float = 5.0):
    executor = executor or RequestExecutor()

    async def main():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await executor.send(HttpTarget(client, TARGET), PAYLOAD, timeout)

    return asyncio.run(main())


def test_http_success_records_timings() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"ok": True, "result": 42})

    outcome = _send_http(handler)
    assert outcome.success
    assert outcome.error is None
    assert outcome.status_code == 200
    assert outcome.ttfb_ms is not None
    assert 0 <= outcome.ttfb_ms <= outcome.total_duration_ms
    assert outcome.bytes_received > 0
    assert all(outcome.checks.values())
    request = seen[0]
    assert request.method == "GET"
    assert str(request.url) == "http://backend.test/api/v1/data/all"
    assert request.headers["content-type"] == "application/json"
    assert json.loads(request.content) == {"items": [12, 5, 8, 20, 3, 15], "iterations": 4, "multiplier": 3}


def test_http_201_is_success() -> None:
    outcome = _send_http(lambda request: httpx.Response(201, json={"ok": True}))
    assert outcome.success


def test_unavailable_backend_is_failure() -> None:
    outcome = _send_http(lambda request: httpx.Response(503, text="database not configured"))
    assert not outcome.success
    assert outcome.status_code == 503
    assert outcome.error == "unexpected status 503"


def test_ok_false_body_fails_checks() -> None:
    outcome = _send_http(lambda request: httpx.Response(200, json={"ok": False}))
    assert not outcome.success
    assert outcome.checks["ok_field"] is False
    assert "ok_field" in outcome.error


def test_non_json_body_fails_checks_unless_disabled() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="hello")

    assert not _send_http(handler).success
    relaxed = _send_http(handler, RequestExecutor(check_body=False))
    assert relaxed.success
    assert relaxed.checks == {"status": True}


def test_connect_error_is_captured() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    outcome = _send_http(handler)
    assert not outcome.success
    assert outcome.status_code is None
    assert "connect error" in outcome.error


def test_transport_timeout_is_reported_as_timeout() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    outcome = _send_http(handler)
    assert not outcome.success
    assert outcome.error == "timeout"
    assert outcome.ttfb_ms is None


def test_overall_timeout_bounds_slow_target() -> None:
    target = MockTarget(MockConfig(latency_sec=1.0))
    outcome = asyncio.run(RequestExecutor().send(target, PAYLOAD, timeout=0.05))
    assert not outcome.success
    assert outcome.error == "timeout"
    assert outcome.status_code is None
    assert outcome.total_duration_ms < 900


def test_mock_target_is_deterministic() -> None:
    target = MockTarget(MockConfig(latency_sec=0.01))
    executor = RequestExecutor()

    async def main():
        return [await executor.send(target, PAYLOAD, timeout=1.0) for _ in range(3)]

    outcomes = asyncio.run(main())
    assert target.calls == 3
    assert all(o.success and o.status_code == 200 for o in outcomes)
    assert all(o.ttfb_ms == pytest.approx(5.0) for o in outcomes)
    assert all(o.total_duration_ms >= 5.0 for o in outcomes)


def test_mock_target_error_status() -> None:
    target = MockTarget(MockConfig(latency_sec=0.0, status_code=500))
    outcome = asyncio.run(RequestExecutor().send(target, PAYLOAD, timeout=1.0))
    assert not outcome.success
    assert outcome.status_code == 500


def test_os_level_failure_is_captured() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise OverflowError("connect(): port must be 0-65535")

    outcome = _send_http(handler)
    assert not outcome.success
    assert outcome.status_code is None
    assert outcome.error.startswith("transport error: OverflowError")


def test_null_json_body_fails_ok_check() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"null", headers={"content-type": "application/json"})

    outcome = _send_http(handler)
    assert not outcome.success
    assert outcome.checks["ok_field"] is False


def test_json_array_body_passes_ok_check() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=[1, 2, 3])

    assert _send_http(handler).success
