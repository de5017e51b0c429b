from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass, field
from typing import Any, Mapping, Protocol

import httpx

from rampbench.config import MockConfig, TargetConfig
from rampbench.errors import RequestError, RequestTimeout
from rampbench.metrics import RequestOutcome


@dataclass(frozen=True, slots=True)
class TargetResponse:
    status_code: int
    ttfb_sec: float | None
    body: bytes
    headers: Mapping[str, str] = field(default_factory=dict)


class Target(Protocol):
    label: str

    async def fetch(self, payload: Mapping[str, Any]) -> TargetResponse:
        ...


class HttpTarget:
    """Real endpoint reached through a shared ``httpx.AsyncClient``."""

    def __init__(self, client: httpx.AsyncClient, config: TargetConfig) -> None:
        self._client = client
        self._config = config
        self.label = config.label

    async def fetch(self, payload: Mapping[str, Any]) -> TargetResponse:
        start = time.perf_counter()
        content = json.dumps(payload).encode()
        try:
            async with self._client.stream(
                self._config.method,
                self._config.url,
                content=content,
                headers=dict(self._config.headers),
            ) as resp:
                ttfb = time.perf_counter() - start
                body = await resp.aread()
                return TargetResponse(
                    status_code=resp.status_code,
                    ttfb_sec=ttfb,
                    body=body,
                    headers=dict(resp.headers),
                )
        except httpx.TimeoutException as exc:
            raise RequestTimeout(time.perf_counter() - start) from exc
        except httpx.ConnectError as exc:
            raise RequestError(f"connect error: {exc}") from exc
        except httpx.ReadError as exc:
            raise RequestError(f"read error: {exc}") from exc
        except httpx.HTTPError as exc:
            raise RequestError(f"{type(exc).__name__}: {exc}") from exc
        except (OSError, ValueError, OverflowError) as exc:
            raise RequestError(f"transport error: {type(exc).__name__}: {exc}") from exc


class MockTarget:
    """Deterministic stand-in for a backend, used to exercise the harness."""

    def __init__(self, config: MockConfig | None = None, label: str = "mock") -> None:
        self._config = config or MockConfig()
        self.label = label
        self.calls = 0

    async def fetch(self, payload: Mapping[str, Any]) -> TargetResponse:
        self.calls += 1
        latency = self._config.latency_sec
        ttfb = latency * self._config.ttfb_fraction
        await asyncio.sleep(ttfb)
        await asyncio.sleep(latency - ttfb)
        ok = 200 <= self._config.status_code < 300
        body = json.dumps({"ok": ok, "count": len(payload.get("items", ()))}).encode()
        return TargetResponse(
            status_code=self._config.status_code,
            ttfb_sec=ttfb,
            body=body,
            headers={"content-type": "application/json"},
        )


def run_checks(response: TargetResponse, success_statuses: frozenset[int], check_body: bool) -> dict[str, bool]:
    checks = {"status": response.status_code in success_statuses}
    if not check_body:
        return checks
    content_type = ""
    for key, value in response.headers.items():
        if key.lower() == "content-type":
            content_type = value.lower()
    checks["content_type_json"] = "application/json" in content_type
    checks["has_body"] = bool(response.body)
    try:
        doc = json.loads(response.body)
    except ValueError:
        checks["ok_field"] = False
    else:
        if doc is None:
            checks["ok_field"] = False
        elif isinstance(doc, dict):
            checks["ok_field"] = doc.get("ok", True) is True
        else:
            checks["ok_field"] = True
    return checks


class RequestExecutor:
    def __init__(self, success_statuses: frozenset[int] = frozenset({200, 201}), check_body: bool = True) -> None:
        self.success_statuses = success_statuses
        self.check_body = check_body

    async def send(self, target: Target, payload: Mapping[str, Any], timeout: float) -> RequestOutcome:
        issued_at = time.time()
        start = time.perf_counter()
        try:
            response = await asyncio.wait_for(target.fetch(payload), timeout=timeout)
        except (asyncio.TimeoutError, RequestTimeout):
            return self._failed(issued_at, start, "timeout")
        except RequestError as exc:
            return self._failed(issued_at, start, str(exc))
        except (OSError, ValueError, OverflowError) as exc:
            return self._failed(issued_at, start, f"transport error: {type(exc).__name__}: {exc}")
        total_ms = (time.perf_counter() - start) * 1000.0
        checks = run_checks(response, self.success_statuses, self.check_body)
        success = all(checks.values())
        error = None
        if not checks["status"]:
            error = f"unexpected status {response.status_code}"
        elif not success:
            failed = ", ".join(name for name, passed in checks.items() if not passed)
            error = f"failed checks: {failed}"
        return RequestOutcome(
            issued_at=issued_at,
            total_duration_ms=total_ms,
            ttfb_ms=response.ttfb_sec * 1000.0 if response.ttfb_sec is not None else None,
            status_code=response.status_code,
            success=success,
            error=error,
            bytes_received=len(response.body),
            checks=checks,
        )

    @staticmethod
    def _failed(issued_at: float, start: float, error: str) -> RequestOutcome:
        return RequestOutcome(
            issued_at=issued_at,
            total_duration_ms=(time.perf_counter() - start) * 1000.0,
            ttfb_ms=None,
            status_code=None,
            success=False,
            error=error,
        )
