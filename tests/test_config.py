from __future__ import annotations

import pytest

from rampbench.config import (
    DEFAULT_STAGES,
    PayloadSpec,
    Stage,
    TargetKind,
    load_config,
    parse_duration,
    parse_stage,
)
from rampbench.errors import ConfigError


@pytest.mark.parametrize(
    ("text", "seconds"),
    [("30s", 30.0), ("1m", 60.0), ("1m30s", 90.0), ("250ms", 0.25), ("2h", 7200.0), ("1.5", 1.5), ("0s", 0.0)],
)
def test_parse_duration(text: str, seconds: float) -> None:
    assert parse_duration(text) == pytest.approx(seconds)


@pytest.mark.parametrize("text", ["", "abc", "10x", "-5", "s30", "1m 30s", "nan", "inf", "-inf"])
def test_bad_duration(text: str) -> None:
    with pytest.raises(ConfigError):
        parse_duration(text)


def test_parse_stage() -> None:
    assert parse_stage("30s:10") == Stage(30.0, 10)
    assert parse_stage("0s:50") == Stage(0.0, 50)


@pytest.mark.parametrize("text", ["30s", "30s:-1", "-1s:10", "30s:ten", "nan:10", "inf:10"])
def test_bad_stage(text: str) -> None:
    with pytest.raises(ConfigError):
        parse_stage(text)


def test_negative_stage_values_rejected() -> None:
    with pytest.raises(ConfigError):
        Stage(-1.0, 5)
    with pytest.raises(ConfigError):
        Stage(1.0, -5)


@pytest.mark.parametrize(
    "kwargs",
    [{"items": ()}, {"iterations": 0}, {"multiplier": 100_001}],
)
def test_payload_range_validation(kwargs) -> None:
    with pytest.raises(ConfigError):
        PayloadSpec(**kwargs)


def test_defaults(parse_run_args) -> None:
    config = load_config(parse_run_args(), environ={})
    assert config.target.kind is TargetKind.GO
    assert config.target.url == "http://localhost:8080/api/v1/data/all"
    assert len(config.stages) == len(DEFAULT_STAGES)
    assert config.total_duration_sec == 210.0
    assert config.per_request_timeout_sec == 30.0
    assert config.inter_iteration_sleep_sec == 1.0
    assert config.success_statuses == frozenset({200, 201})
    assert {str(t) for t in config.thresholds} == {
        "http_req_failed: rate<0.01",
        "http_req_duration: p(95)<500",
        "http_req_duration: p(99)<1000",
        "api_duration_ms: p(95)<500",
        "api_ttfb_ms: p(95)<500",
        "api_ok: rate>0.99",
    }


def test_environment_is_read_once_into_config(parse_run_args) -> None:
    environ = {
        "TARGET": "ts",
        "TS_BASE": "https://ts.example",
        "ITEMS": "1,2,3",
        "ITERATIONS": "7",
        "MULTIPLIER": "9",
        "TIMEOUT": "5s",
        "SLEEP": "0.5",
    }
    config = load_config(parse_run_args(), environ)
    assert config.target.url == "https://ts.example/api/v1/data/all"
    assert config.payload.generate() == {"items": [1, 2, 3], "iterations": 7, "multiplier": 9}
    assert config.per_request_timeout_sec == 5.0
    assert config.inter_iteration_sleep_sec == 0.5


def test_cli_overrides_environment(parse_run_args) -> None:
    args = parse_run_args(
        "--target",
        "custom",
        "--iterations",
        "2",
        "--stage",
        "10s:5",
        "--stage",
        "5s:0",
        "--threshold",
        "api_ok=rate>0.5",
        "--no-default-thresholds",
        "--method",
        "post",
        "--path",
        "/api/v1/auth/load-test",
    )
    config = load_config(args, {"BASE_URL": "http://custom:9000", "ITERATIONS": "50"})
    assert config.target.url == "http://custom:9000/api/v1/auth/load-test"
    assert config.target.method == "POST"
    assert config.payload.iterations == 2
    assert config.stages == (Stage(10.0, 5), Stage(5.0, 0))
    assert [str(t) for t in config.thresholds] == ["api_ok: rate>0.5"]


def test_duplicate_thresholds_collapse(parse_run_args) -> None:
    args = parse_run_args("--threshold", "api_ok=rate>0.99")
    config = load_config(args, {})
    assert [str(t) for t in config.thresholds].count("api_ok: rate>0.99") == 1


@pytest.mark.parametrize(
    "environ",
    [
        {"TARGET": "rust"},
        {"ITEMS": "1,x"},
        {"ITERATIONS": "0"},
        {"SLEEP": "soon"},
        {"TIMEOUT": "forever"},
        {"TIMEOUT": "inf"},
        {"SLEEP": "nan"},
        {"SLEEP": "inf"},
        {"TARGET": "custom", "BASE_URL": "http://localhost:99999"},
        {"TARGET": "custom", "BASE_URL": "http://[::1"},
        {"TARGET": "custom", "BASE_URL": "ftp://files.example"},
        {"TARGET": "go", "GO_BASE": "localhost:8080"},
    ],
)
def test_bad_environment_is_config_error(parse_run_args, environ) -> None:
    with pytest.raises(ConfigError):
        load_config(parse_run_args(), environ)


def test_bad_threshold_is_config_error(parse_run_args) -> None:
    with pytest.raises(ConfigError):
        load_config(parse_run_args("--threshold", "api_ok=ratio>1"), {})


def test_non_finite_stage_rejected() -> None:
    with pytest.raises(ConfigError):
        Stage(float("nan"), 5)
    with pytest.raises(ConfigError):
        Stage(float("inf"), 5)


def test_mock_target_skips_url_validation(parse_run_args) -> None:
    config = load_config(parse_run_args("--target", "mock"), {"BASE_URL": "http://localhost:99999"})
    assert config.target.kind is TargetKind.MOCK
