"""Verification script: GET /name and /version and compare the bodies exactly."""

import asyncio
import logging

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class CheckResult(BaseModel):
    """Outcome of one endpoint check."""

    path: str
    expected: str
    status_code: int | None = None
    body: str | None = None
    error: str | None = None

    @property
    def passed(self) -> bool:
        return self.error is None and self.status_code == 200 and self.body == self.expected

    def describe(self) -> str:
        if self.passed:
            return f"PASS {self.path}: {self.body!r}"
        if self.error:
            return f"FAIL {self.path}: {self.error}"
        return (
            f"FAIL {self.path}: expected 200 {self.expected!r}, "
            f"got {self.status_code} {self.body!r}"
        )


class VerificationReport(BaseModel):
    base_url: str
    checks: list[CheckResult]

    @property
    def passed(self) -> bool:
        return all(check.passed for check in self.checks)

    @property
    def exit_code(self) -> int:
        return 0 if self.passed else 1


async def _get(
    client: httpx.AsyncClient,
    path: str,
    connect_attempts: int,
    retry_delay_seconds: float,
) -> httpx.Response:
    """GET path, retrying transport errors while a freshly restarted service comes up."""
    attempts = max(1, connect_attempts)
    for attempt in range(1, attempts):
        try:
            return await client.get(path)
        except httpx.TransportError as e:
            logger.info(f"{path} not reachable yet (attempt {attempt}/{attempts}): {e}")
            await asyncio.sleep(retry_delay_seconds)
    return await client.get(path)


async def _check(
    client: httpx.AsyncClient,
    path: str,
    expected: str,
    connect_attempts: int = 1,
    retry_delay_seconds: float = 1.0,
) -> CheckResult:
    try:
        response = await _get(client, path, connect_attempts, retry_delay_seconds)
    except httpx.HTTPError as e:
        return CheckResult(path=path, expected=expected, error=f"{type(e).__name__}: {e}")
    return CheckResult(
        path=path,
        expected=expected,
        status_code=response.status_code,
        body=response.text,
    )


async def run_verification(
    base_url: str,
    expected_name: str,
    expected_version: str,
    client: httpx.AsyncClient | None = None,
    timeout_seconds: float = 10.0,
    connect_attempts: int = 1,
    retry_delay_seconds: float = 1.0,
) -> VerificationReport:
    """Check both endpoints; every check runs even when an earlier one fails.

    Connection errors are retried up to `connect_attempts` times so a service
    that is still starting after a restart is not reported as broken.
    Wrong status codes and bodies are never retried.
    """
    retry = {"connect_attempts": connect_attempts, "retry_delay_seconds": retry_delay_seconds}
    expectations = [("/name", expected_name), ("/version", expected_version)]

    if client is None:
        async with httpx.AsyncClient(base_url=base_url, timeout=timeout_seconds) as owned:
            checks = [await _check(owned, path, expected, **retry) for path, expected in expectations]
    else:
        checks = [await _check(client, path, expected, **retry) for path, expected in expectations]

    report = VerificationReport(base_url=base_url, checks=checks)
    for check in report.checks:
        if check.passed:
            logger.info(check.describe())
        else:
            logger.error(check.describe())
    return report
