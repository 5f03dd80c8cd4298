"""Tests for the verification script against the real app and scripted transports."""

import asyncio

import httpx
import pytest

from shipyard import __main__ as cli
from shipyard.api.server import create_app
from shipyard.config import AppConfig, Settings
from shipyard.pipeline import BuildResult, CommandResult, PipelineRunner, StageSpec
from shipyard.verify import CheckResult, VerificationReport, run_verification

EXPECTED_NAME = "Devops Bharat"
EXPECTED_VERSION = "v1.0.0.0"


def app_client(**app) -> httpx.AsyncClient:
    application = create_app(Settings(app=AppConfig(**app)))
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=application), base_url="http://testserver")


def verify_with(client: httpx.AsyncClient) -> VerificationReport:
    async def run() -> VerificationReport:
        async with client:
            return await run_verification(
                "http://testserver",
                EXPECTED_NAME,
                EXPECTED_VERSION,
                client=client,
            )

    return asyncio.run(run())


def test_verification_passes_against_expected_service() -> None:
    report = verify_with(app_client())

    assert report.passed
    assert report.exit_code == 0
    assert [c.path for c in report.checks] == ["/name", "/version"]
    assert all(c.status_code == 200 for c in report.checks)


def test_case_mismatch_fails_verification() -> None:
    report = verify_with(app_client(developer_name="devops bharat"))

    assert not report.passed
    assert report.exit_code == 1
    name_check, version_check = report.checks
    assert not name_check.passed
    assert name_check.body == "devops bharat"
    assert version_check.passed


def test_non_200_status_fails_even_with_matching_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        body = EXPECTED_NAME if request.url.path == "/name" else EXPECTED_VERSION
        return httpx.Response(500, text=body)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://testserver")

    report = verify_with(client)

    assert not report.passed
    assert [c.status_code for c in report.checks] == [500, 500]


def test_connection_errors_are_failed_checks() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://testserver")

    report = verify_with(client)

    assert not report.passed
    assert len(report.checks) == 2
    assert all(c.error and "ConnectError" in c.error for c in report.checks)
    assert report.checks[0].describe().startswith("FAIL /name")


def test_service_still_starting_is_retried() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        if len(calls) <= 2:
            raise httpx.ConnectError("connection refused", request=request)
        body = EXPECTED_NAME if request.url.path == "/name" else EXPECTED_VERSION
        return httpx.Response(200, text=body)

    async def run() -> VerificationReport:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://testserver") as client:
            return await run_verification(
                "http://testserver",
                EXPECTED_NAME,
                EXPECTED_VERSION,
                client=client,
                connect_attempts=3,
                retry_delay_seconds=0,
            )

    report = asyncio.run(run())

    assert report.passed
    assert calls == ["/name", "/name", "/name", "/version"]


def test_wrong_body_is_not_retried() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        return httpx.Response(200, text="devops bharat" if request.url.path == "/name" else EXPECTED_VERSION)

    async def run() -> VerificationReport:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://testserver") as client:
            return await run_verification(
                "http://testserver",
                EXPECTED_NAME,
                EXPECTED_VERSION,
                client=client,
                connect_attempts=5,
                retry_delay_seconds=0,
            )

    report = asyncio.run(run())

    assert not report.passed
    assert calls == ["/name", "/version"]


def test_service_that_never_comes_up_fails_after_all_attempts() -> None:
    calls: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        raise httpx.ConnectError("connection refused", request=request)

    async def run() -> VerificationReport:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://testserver") as client:
            return await run_verification(
                "http://testserver",
                EXPECTED_NAME,
                EXPECTED_VERSION,
                client=client,
                connect_attempts=2,
                retry_delay_seconds=0,
            )

    report = asyncio.run(run())

    assert report.exit_code == 1
    assert calls == ["/name", "/name", "/version", "/version"]


def test_check_result_describe() -> None:
    passed = CheckResult(path="/name", expected="a", status_code=200, body="a")
    failed = CheckResult(path="/name", expected="a", status_code=200, body="A")

    assert passed.describe() == "PASS /name: 'a'"
    assert "expected 200 'a', got 200 'A'" in failed.describe()


@pytest.mark.parametrize("passed,expected_exit", [(True, 0), (False, 1)])
def test_verify_command_exit_code(monkeypatch, passed: bool, expected_exit: int) -> None:
    body = EXPECTED_NAME if passed else "devops bharat"

    async def fake_verification(base_url, expected_name, expected_version, **kwargs):
        return VerificationReport(
            base_url=base_url,
            checks=[CheckResult(path="/name", expected=expected_name, status_code=200, body=body)],
        )

    monkeypatch.setattr(cli, "run_verification", fake_verification)

    assert cli.main(["verify", "--base-url", "http://service:5000"]) == expected_exit


def test_pipeline_fails_and_notifies_when_service_returns_wrong_name() -> None:
    """Case-mismatched /name makes the Test stage fail the whole run."""
    stages = [
        StageSpec(name="Setup", kind="setup", command="true"),
        StageSpec(name="Deploy", kind="deploy", command="true"),
        StageSpec(name="Start", kind="start", command="true"),
        StageSpec(name="Test", kind="test", command="python -m shipyard verify"),
    ]

    async def executor(stage: StageSpec) -> CommandResult:
        if stage.kind != "test":
            return CommandResult(exit_code=0)
        async with app_client(developer_name="devops bharat") as client:
            report = await run_verification(
                "http://testserver", EXPECTED_NAME, EXPECTED_VERSION, client=client
            )
        return CommandResult(exit_code=report.exit_code)

    notified: list[BuildResult] = []

    async def notifier(result: BuildResult) -> None:
        notified.append(result)

    result = asyncio.run(PipelineRunner(stages, executor=executor, notifier=notifier).run())

    assert result.status == "FAILURE"
    assert result.stage_that_failed == "Test"
    assert len(notified) == 1
    assert notified[0].status == "FAILURE"
