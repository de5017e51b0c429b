"""Resolve environment variables and CLI flags into a single RunConfig.

Everything ambient is read here, once, before the run starts.
"""
from __future__ import annotations

import argparse
import math
import re
from typing import Mapping, Sequence

import httpx

from rampbench.config.models import MockConfig, PayloadSpec, RunConfig, Stage, TargetConfig, TargetKind
from rampbench.errors import ConfigError
from rampbench.thresholds.models import ThresholdSpec
from rampbench.thresholds.parser import parse_threshold, parse_thresholds

DEFAULT_GO_BASE = "http://localhost:8080"
DEFAULT_TS_BASE = "http://localhost:3000"
DEFAULT_MOCK_BASE = "mock://local"

DEFAULT_STAGES = ("30s:10", "1m:10", "30s:50", "1m:50", "30s:0")

DEFAULT_THRESHOLDS: Mapping[str, Sequence[str]] = {
    "http_req_failed": ["rate<0.01"],
    "http_req_duration": ["p(95)<500", "p(99)<1000"],
    "api_duration_ms": ["p(95)<500"],
    "api_ttfb_ms": ["p(95)<500"],
    "api_ok": ["rate>0.99"],
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_UNIT_SEC = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(text: str) -> float:
    """Parse ``"30s"``, ``"1m30s"``, ``"250ms"`` or a bare number of seconds."""
    raw = text.strip()
    if not raw:
        msg = "Empty duration"
        raise ConfigError(msg)
    try:
        value = float(raw)
    except ValueError:
        pass
    else:
        if not math.isfinite(value) or value < 0:
            msg = f"Duration must be finite and >= 0, got {text!r}"
            raise ConfigError(msg)
        return value
    pos = 0
    total = 0.0
    for match in _DURATION_PART.finditer(raw):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _UNIT_SEC[match.group(2)]
        pos = match.end()
    if pos != len(raw):
        msg = f"Unparseable duration: {text!r}"
        raise ConfigError(msg)
    return total


def parse_stage(text: str) -> Stage:
    duration, sep, target = text.partition(":")
    if not sep:
        msg = f"Stage must look like duration:target, got {text!r}"
        raise ConfigError(msg)
    try:
        concurrency = int(target.strip())
    except ValueError:
        msg = f"Stage target must be an integer, got {target!r}"
        raise ConfigError(msg) from None
    return Stage(duration_sec=parse_duration(duration), target=concurrency)


def parse_items(text: str) -> tuple[int, ...]:
    try:
        return tuple(int(part) for part in text.split(",") if part.strip())
    except ValueError:
        msg = f"ITEMS must be comma-separated integers, got {text!r}"
        raise ConfigError(msg) from None


def _int(value: str, name: str) -> int:
    try:
        return int(value)
    except ValueError:
        msg = f"{name} must be an integer, got {value!r}"
        raise ConfigError(msg) from None


def _float(value: str, name: str) -> float:
    try:
        return float(value)
    except ValueError:
        msg = f"{name} must be a number, got {value!r}"
        raise ConfigError(msg) from None


def validate_base_url(base: str) -> None:
    try:
        url = httpx.URL(base)
    except (httpx.InvalidURL, ValueError) as exc:
        msg = f"Invalid target URL {base!r}: {exc}"
        raise ConfigError(msg) from None
    if url.scheme not in ("http", "https"):
        msg = f"Target URL {base!r} must use http or https"
        raise ConfigError(msg)
    if not url.host:
        msg = f"Target URL {base!r} has no host"
        raise ConfigError(msg)
    if url.port is not None and not 0 < url.port <= 65535:
        msg = f"Target URL {base!r} has port {url.port} outside 1..65535"
        raise ConfigError(msg)


def resolve_target(kind: str, environ: Mapping[str, str], path: str, method: str) -> TargetConfig:
    try:
        target_kind = TargetKind(kind)
    except ValueError:
        msg = f"Unknown target {kind!r}; expected one of {[k.value for k in TargetKind]}"
        raise ConfigError(msg) from None
    if target_kind is TargetKind.GO:
        base = environ.get("GO_BASE", DEFAULT_GO_BASE)
    elif target_kind is TargetKind.TS:
        base = environ.get("TS_BASE", DEFAULT_TS_BASE)
    elif target_kind is TargetKind.MOCK:
        base = DEFAULT_MOCK_BASE
    else:
        base = environ.get("BASE_URL") or environ.get("GO_BASE", DEFAULT_GO_BASE)
    if target_kind is not TargetKind.MOCK:
        validate_base_url(base)
    return TargetConfig(kind=target_kind, base_url=base, path=path, method=method.upper())


def _pick(cli_value: object, environ: Mapping[str, str], key: str) -> str | None:
    if cli_value is not None:
        return str(cli_value)
    return environ.get(key)


def load_config(args: argparse.Namespace, environ: Mapping[str, str]) -> RunConfig:
    """Build the immutable RunConfig. CLI flags win over environment variables."""
    stages, path, method = request_shape(args, environ)
    target = resolve_target(_pick(args.target, environ, "TARGET") or "go", environ, path, method)
    return build_config(args, environ, stages, target)


def request_shape(args: argparse.Namespace, environ: Mapping[str, str]) -> tuple[tuple[Stage, ...], str, str]:
    """Stages, path and method shared by every target of one invocation."""
    stages = tuple(parse_stage(text) for text in (args.stage or DEFAULT_STAGES))
    path = _pick(args.path, environ, "API_PATH") or "/api/v1/data/all"
    method = _pick(args.method, environ, "METHOD") or "GET"
    return stages, path, method


def build_config(
    args: argparse.Namespace,
    environ: Mapping[str, str],
    stages: tuple[Stage, ...],
    target: TargetConfig,
) -> RunConfig:
    items = _pick(args.items, environ, "ITEMS")
    iterations = _pick(args.iterations, environ, "ITERATIONS")
    multiplier = _pick(args.multiplier, environ, "MULTIPLIER")
    defaults = PayloadSpec()
    payload = PayloadSpec(
        items=parse_items(items) if items else defaults.items,
        iterations=_int(iterations, "ITERATIONS") if iterations else defaults.iterations,
        multiplier=_int(multiplier, "MULTIPLIER") if multiplier else defaults.multiplier,
    )

    timeout = _pick(args.timeout, environ, "TIMEOUT")
    sleep = _pick(args.sleep, environ, "SLEEP")

    thresholds: tuple[ThresholdSpec, ...]
    if args.no_default_thresholds:
        thresholds = ()
    else:
        thresholds = parse_thresholds(DEFAULT_THRESHOLDS)
    if args.threshold:
        thresholds = thresholds + tuple(parse_threshold(t) for t in args.threshold)
    # duplicates collapse, first occurrence keeps its position
    thresholds = tuple(dict.fromkeys(thresholds))

    mock = MockConfig(
        latency_sec=parse_duration(args.mock_latency) if args.mock_latency else MockConfig().latency_sec,
        status_code=args.mock_status if args.mock_status is not None else MockConfig().status_code,
    )

    return RunConfig(
        stages=stages,
        target=target,
        payload=payload,
        per_request_timeout_sec=parse_duration(timeout) if timeout else 30.0,
        inter_iteration_sleep_sec=_float(sleep, "SLEEP") if sleep else 1.0,
        thresholds=thresholds,
        tick_interval_sec=parse_duration(args.tick) if args.tick else 0.1,
        start_concurrency=args.start_vus or 0,
        success_statuses=frozenset(args.success_status or (200, 201)),
        check_body=not args.no_body_checks,
        mock=mock,
    )


def add_run_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--target", choices=[k.value for k in TargetKind], help="Backend to load (env TARGET)")
    parser.add_argument("--path", help="Request path (env API_PATH)")
    parser.add_argument("--method", help="HTTP method (env METHOD)")
    parser.add_argument(
        "--stage",
        action="append",
        metavar="DURATION:TARGET",
        help="Ramp stage, repeatable and ordered, e.g. --stage 30s:10 --stage 30s:0",
    )
    parser.add_argument(
        "--threshold",
        action="append",
        metavar="METRIC=EXPR",
        help="Extra threshold, e.g. 'http_req_duration=p(95)<500'",
    )
    parser.add_argument("--no-default-thresholds", action="store_true")
    parser.add_argument("--items", help="Comma-separated payload items (env ITEMS)")
    parser.add_argument("--iterations", type=int, help="Payload iterations (env ITERATIONS)")
    parser.add_argument("--multiplier", type=int, help="Payload multiplier (env MULTIPLIER)")
    parser.add_argument("--timeout", help="Per-request timeout, e.g. 30s (env TIMEOUT)")
    parser.add_argument("--sleep", type=float, help="Seconds between iterations (env SLEEP)")
    parser.add_argument("--tick", help="Scheduler tick interval, e.g. 100ms")
    parser.add_argument("--start-vus", type=int, default=0)
    parser.add_argument("--success-status", type=int, action="append")
    parser.add_argument("--no-body-checks", action="store_true")
    parser.add_argument("--mock-latency", help="Mock target latency, e.g. 10ms")
    parser.add_argument("--mock-status", type=int)
