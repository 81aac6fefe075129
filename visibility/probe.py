"""Bounded-time HTTP probes on top of Playwright's request API.

The ProbeClient drives Playwright's ``APIRequestContext``: plain HTTP requests
that share the Playwright driver but need no browser binary. Every probe is
bounded by ``asyncio.wait_for``; when the bound expires the pending request is
cancelled and the probe settles as ``ProbeOutcome(status=None)``.

Design Rationale:
    Probe failures are values, not exceptions. The orchestrator fans probes
    out with ``asyncio.gather`` and must get one outcome per probe no matter
    how the others fared, so ``fetch`` converts every network error and
    timeout into a ``None`` status at this boundary.
"""

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Self

from playwright.async_api import (
    APIRequestContext,
    Error as PlaywrightError,
    Playwright,
    async_playwright,
)
from pydantic import BaseModel, ConfigDict

from config.settings import VisibilityConfig, get_config
from visibility.exceptions import PayloadFormatError, ProbeClientError
from visibility.logger import get_logger

log = get_logger(__name__)


class ProbeOutcome(BaseModel):
    """Result of a single GET.

    Attributes:
        status: HTTP status code, or None when the request did not complete
            (network error or timeout).
        url: The URL that was requested.
        body: Decoded response body, captured only when requested.
    """

    model_config = ConfigDict(frozen=True)

    status: int | None
    url: str
    body: str | None = None

    @property
    def is_ok(self) -> bool:
        """True for exactly HTTP 200."""
        return self.status == 200

    @property
    def status_text(self) -> str:
        """Status for diagnostics: the code, or ``no response``."""
        return "no response" if self.status is None else str(self.status)

    def text(self) -> str:
        """Body of a 200 response; anything else reads as empty content."""
        return (self.body or "") if self.is_ok else ""

    def json_body(self) -> Any:
        """Decode the body as JSON.

        Raises:
            PayloadFormatError: If no body was captured, it is not JSON, or it nests
                too deeply to decode.
        """
        if self.body is None:
            raise PayloadFormatError(url=self.url, reason="no body captured")
        try:
            return json.loads(self.body)
        except (ValueError, RecursionError) as exc:
            raise PayloadFormatError(url=self.url, reason=str(exc)) from exc


class ProbeClient:
    """Owns the Playwright driver and request context for one run.

    Attributes:
        config: VisibilityConfig instance for runtime configuration.
        _playwright: Playwright instance (initialized on context entry).
        _request: APIRequestContext carrying the configured user agent.

    Example:
        async with ProbeClient.create() as client:
            outcome = await client.fetch("https://example.org/", read_body=True)
            if outcome.is_ok:
                html = outcome.text()
    """

    def __init__(self, config: VisibilityConfig) -> None:
        """Initialize ProbeClient with configuration.

        Note:
            Use the ``create()`` class method so the Playwright driver is
            started and stopped around the client's lifetime.
        """
        self.config = config
        self._playwright: Playwright | None = None
        self._request: APIRequestContext | None = None

    @classmethod
    @asynccontextmanager
    async def create(
        cls, config: VisibilityConfig | None = None
    ) -> AsyncGenerator[Self, None]:
        """Factory method with async context manager for lifecycle management.

        Yields:
            Initialized ProbeClient instance.

        Raises:
            ProbeClientError: If the Playwright driver cannot be started.
        """
        if config is None:
            config = get_config()

        instance = cls(config)
        try:
            await instance._initialize()
            yield instance
        finally:
            await instance._cleanup()

    @property
    def timeout_seconds(self) -> float:
        return self.config.request_timeout_ms / 1000

    async def _initialize(self) -> None:
        """Start Playwright and open the request context.

        Raises:
            ProbeClientError: If any initialization step fails.
        """
        try:
            self._playwright = await async_playwright().start()
            self._request = await self._playwright.request.new_context(
                user_agent=self.config.visibility_user_agent,
                timeout=self.config.request_timeout_ms,
            )
        except Exception as exc:
            await self._cleanup()
            raise ProbeClientError(reason=str(exc)) from exc

        log.debug(
            "Probe client initialized",
            user_agent=self.config.visibility_user_agent,
            timeout_ms=self.config.request_timeout_ms,
        )

    async def fetch(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        read_body: bool = False,
    ) -> ProbeOutcome:
        """GET ``url`` once, bounded by the configured timeout.

        Args:
            url: Absolute URL to request.
            headers: Extra request headers for this probe only.
            read_body: Capture the decoded body in the outcome.

        Returns:
            ProbeOutcome; ``status`` is None if the request failed or timed out.
        """
        if self._request is None:
            raise ProbeClientError(reason="Request context not initialized")

        try:
            return await asyncio.wait_for(
                self._get(url, headers, read_body),
                timeout=self.timeout_seconds,
            )
        except TimeoutError:
            log.warning("Probe timed out", url=url, timeout_ms=self.config.request_timeout_ms)
        except PlaywrightError as exc:
            log.warning("Probe failed", url=url, error=exc.message)
        return ProbeOutcome(status=None, url=url)

    async def _get(
        self,
        url: str,
        headers: dict[str, str] | None,
        read_body: bool,
    ) -> ProbeOutcome:
        response = await self._request.get(
            url,
            headers=headers,
            timeout=self.config.request_timeout_ms,
        )
        try:
            body = None
            if read_body:
                body = (await response.body()).decode("utf-8", errors="replace")
            log.debug("Probe completed", url=url, status=response.status)
            return ProbeOutcome(status=response.status, url=url, body=body)
        finally:
            await response.dispose()

    async def _cleanup(self) -> None:
        """Release the request context and stop the driver."""
        if self._request is not None:
            try:
                await self._request.dispose()
            except PlaywrightError as exc:
                log.warning("Error disposing request context", error=exc.message)
            self._request = None

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except PlaywrightError as exc:
                log.warning("Error stopping playwright", error=exc.message)
            self._playwright = None

    @property
    def is_initialized(self) -> bool:
        return self._playwright is not None and self._request is not None
