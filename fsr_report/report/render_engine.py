"""
Render Engine - browser-driven PDF rasterization.

Lifecycle of one render:

    Idle -> Launching -> Ready -> Injecting -> Exporting -> Closed
                  \\          \\           \\            \\
                   +----------+-----------+------------+--> Failed

Launch configuration comes from a strategy table keyed by runtime
environment. Export is retried exactly once, and only for the one transient
Chromium print failure that is known to succeed on a second attempt. The
browser is released on every path. A wall-clock deadline bounds the whole
render.
"""

import asyncio
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from playwright.async_api import async_playwright
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_fixed

from fsr_report.common.config import ReportSettings
from fsr_report.common.error_handling import (
    BrowserLaunchError,
    EmptyContentError,
    RasterizationError,
    RenderTimeoutError,
    log_on_exception,
)
from fsr_report.common.logger import get_logger
from fsr_report.report.assembler import RenderedDocument

logger = get_logger(__name__)

TRANSIENT_PRINT_FAILURE = "Protocol error (Page.printToPDF): Printing failed"
MAX_EXPORT_ATTEMPTS = 2

CHROME_CANDIDATE_PATHS: Tuple[str, ...] = (
    "/Applications/Google Chrome.app/Contents/MacOS/Google Chrome",
    "/opt/homebrew/bin/chromium",
    "/usr/bin/google-chrome",
    "/usr/bin/chromium-browser",
    "/usr/bin/chromium",
    "/Applications/Chromium.app/Contents/MacOS/Chromium",
    "/opt/homebrew/Caskroom/chromium/latest/chrome-mac/Chromium.app/Contents/MacOS/Chromium",
)

LOCAL_ARGS: Tuple[str, ...] = (
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
    "--disable-web-security",
    "--disable-features=VizDisplayCompositor",
)

# Fallback launch through the installed Chrome channel
SAFE_ARGS: Tuple[str, ...] = LOCAL_ARGS
FALLBACK_CHANNEL = "chrome"

HOSTED_ARGS: Tuple[str, ...] = (
    "--allow-running-insecure-content",
    "--autoplay-policy=user-gesture-required",
    "--disable-component-update",
    "--disable-domain-reliability",
    "--disable-features=AudioServiceOutOfProcess,IsolateOrigins,site-per-process",
    "--disable-print-preview",
    "--disable-setuid-sandbox",
    "--disable-site-isolation-trials",
    "--disable-speech-api",
    "--disable-web-security",
    "--disk-cache-size=33554432",
    "--enable-features=SharedArrayBuffer",
    "--hide-scrollbars",
    "--ignore-gpu-blocklist",
    "--in-process-gpu",
    "--mute-audio",
    "--no-default-browser-check",
    "--no-pings",
    "--no-sandbox",
    "--no-zygote",
    "--single-process",
    "--use-gl=swiftshader",
    "--window-size=1920,1080",
)

# Applies bindings in the live DOM; ids absent from the page are skipped.
BIND_SCRIPT = """
(bindings) => {
  let bound = 0;
  for (const binding of bindings) {
    const element = document.getElementById(binding.id);
    if (!element) {
      continue;
    }
    if (binding.html) {
      element.innerHTML = binding.value;
    } else {
      element.textContent = binding.value;
    }
    bound += 1;
  }
  return bound;
}
"""


class RenderState(str, Enum):
    IDLE = "idle"
    LAUNCHING = "launching"
    READY = "ready"
    INJECTING = "injecting"
    EXPORTING = "exporting"
    CLOSED = "closed"
    FAILED = "failed"


@dataclass(frozen=True)
class LaunchConfig:
    """Everything needed for one chromium.launch() call."""

    executable_path: Optional[str] = None
    channel: Optional[str] = None
    args: Tuple[str, ...] = ()
    headless: bool = True

    def launch_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"headless": self.headless, "args": list(self.args)}
        if self.executable_path:
            kwargs["executable_path"] = self.executable_path
        if self.channel:
            kwargs["channel"] = self.channel
        return kwargs


@dataclass(frozen=True)
class BundledChromium:
    """Descriptor of the browser the hosting platform ships."""

    executable_path: str
    args: Tuple[str, ...] = HOSTED_ARGS
    headless: bool = True

    @classmethod
    def from_settings(cls, settings: ReportSettings) -> "BundledChromium":
        return cls(executable_path=settings.hosted_chromium_path)


@dataclass(frozen=True)
class LaunchOutcome:
    browser: Any
    config: LaunchConfig
    used_fallback: bool = False


@dataclass
class RenderSession:
    """State of one render invocation."""

    call_no: str = ""
    state: RenderState = RenderState.IDLE
    history: List[RenderState] = field(default_factory=lambda: [RenderState.IDLE])
    export_attempts: int = 0

    def advance(self, state: RenderState) -> None:
        self.state = state
        self.history.append(state)
        logger.debug(f"Render {self.call_no or '<unnamed>'} -> {state.value}")


@dataclass(frozen=True)
class RenderOutcome:
    content: bytes
    launch: LaunchConfig
    used_fallback: bool
    export_attempts: int
    history: Tuple[RenderState, ...]


def local_launch_config(settings: ReportSettings, path_exists: Callable[[str], bool] = os.path.exists) -> LaunchConfig:
    """
    Developer machines: configured executable, then the first installed
    candidate, then Playwright's own Chromium build.
    """
    if settings.use_executable_path and settings.browser_executable_path:
        logger.info(f"Using configured browser executable: {settings.browser_executable_path}")
        return LaunchConfig(executable_path=settings.browser_executable_path, args=LOCAL_ARGS)

    for candidate in CHROME_CANDIDATE_PATHS:
        if path_exists(candidate):
            logger.info(f"Using Chrome executable: {candidate}")
            return LaunchConfig(executable_path=candidate, args=LOCAL_ARGS)

    logger.warning("No Chrome executable found, launching bundled Chromium")
    return LaunchConfig(args=LOCAL_ARGS)


def hosted_launch_config(settings: ReportSettings, path_exists: Callable[[str], bool] = os.path.exists) -> LaunchConfig:
    """Hosted runtimes take the platform's bundled browser as-is."""
    bundled = BundledChromium.from_settings(settings)
    return LaunchConfig(executable_path=bundled.executable_path, args=bundled.args, headless=bundled.headless)


LAUNCH_STRATEGIES: Dict[str, Callable[..., LaunchConfig]] = {
    "local": local_launch_config,
    "hosted": hosted_launch_config,
}


def error_message(exc: BaseException) -> str:
    """Playwright errors carry their text on .message; fall back to str()."""
    message = getattr(exc, "message", None)
    return message if isinstance(message, str) else str(exc)


def is_transient_print_failure(exc: BaseException) -> bool:
    return error_message(exc) == TRANSIENT_PRINT_FAILURE


class RenderEngine:
    """
    Renders assembled documents to PDF bytes.

    The Playwright entry point, filesystem probe and sleep are injectable so
    the launch and retry paths can be exercised without a browser.
    """

    def __init__(
        self,
        settings: ReportSettings,
        playwright_factory: Callable[[], Any] = async_playwright,
        path_exists: Callable[[str], bool] = os.path.exists,
        sleep: Callable[[float], Any] = asyncio.sleep,
    ):
        self.settings = settings
        self._playwright_factory = playwright_factory
        self._path_exists = path_exists
        self._sleep = sleep

    def launch_config(self) -> LaunchConfig:
        strategy = LAUNCH_STRATEGIES["local" if self.settings.is_local else "hosted"]
        return strategy(self.settings, self._path_exists)

    async def render(self, document: RenderedDocument, call_no: str = "") -> RenderOutcome:
        """
        Render a document within the configured deadline.

        Raises:
            BrowserLaunchError: browser could not be started
            RasterizationError: export failed (EmptyContentError for no bytes)
            RenderTimeoutError: deadline exceeded
        """
        session = RenderSession(call_no=call_no)
        deadline = self.settings.render_timeout_seconds
        try:
            return await asyncio.wait_for(self._render(document, session), timeout=deadline)
        except asyncio.TimeoutError:
            stalled_in = next(
                (state for state in reversed(session.history) if state is not RenderState.FAILED),
                RenderState.IDLE,
            )
            if session.state is not RenderState.FAILED:
                session.advance(RenderState.FAILED)
            raise RenderTimeoutError(
                f"Render exceeded {deadline:g}s deadline while {stalled_in.value}"
            ) from None

    async def _render(self, document: RenderedDocument, session: RenderSession) -> RenderOutcome:
        async with self._playwright_factory() as playwright:
            session.advance(RenderState.LAUNCHING)
            try:
                launched = await self._launch(playwright)
            except BrowserLaunchError:
                session.advance(RenderState.FAILED)
                raise

            browser = launched.browser
            session.advance(RenderState.READY)
            try:
                page = await browser.new_page()
                page.set_default_timeout(self.settings.playwright_timeout)

                session.advance(RenderState.INJECTING)
                await self._inject(page, document)

                session.advance(RenderState.EXPORTING)
                content = await self._export(page, session)
            except BaseException:
                session.advance(RenderState.FAILED)
                raise
            finally:
                with log_on_exception(logger.logger, "Browser close", suppress=True):
                    await browser.close()

            session.advance(RenderState.CLOSED)
            return RenderOutcome(
                content=content,
                launch=launched.config,
                used_fallback=launched.used_fallback,
                export_attempts=session.export_attempts,
                history=tuple(session.history),
            )

    async def _launch(self, playwright: Any) -> LaunchOutcome:
        """
        Primary launch, then at most one fallback through the installed Chrome
        channel. The fallback is only tried when the primary attempt did not
        name an executable.
        """
        config = self.launch_config()
        try:
            browser = await playwright.chromium.launch(**config.launch_kwargs())
            return LaunchOutcome(browser=browser, config=config)
        except Exception as primary_error:
            logger.error(f"Browser launch failed: {error_message(primary_error)}")
            if config.executable_path:
                raise BrowserLaunchError(
                    f"Failed to launch browser: {error_message(primary_error)}"
                ) from primary_error

            fallback = LaunchConfig(channel=FALLBACK_CHANNEL, args=SAFE_ARGS)
            logger.info("Retrying launch through the installed Chrome channel")
            try:
                browser = await playwright.chromium.launch(**fallback.launch_kwargs())
            except Exception as fallback_error:
                raise BrowserLaunchError(
                    f"Failed to launch browser: {error_message(primary_error)}. "
                    f"Fallback also failed: {error_message(fallback_error)}"
                ) from fallback_error
            logger.info("Launched browser through fallback channel")
            return LaunchOutcome(browser=browser, config=fallback, used_fallback=True)

    async def _inject(self, page: Any, document: RenderedDocument) -> None:
        await page.set_content(document.html, wait_until="networkidle")
        bound = await page.evaluate(BIND_SCRIPT, document.binding_payload())
        logger.debug(f"Bound {bound} elements in page for template {document.template_name}")

    async def _export(self, page: Any, session: RenderSession) -> bytes:
        delay = self.settings.reattempt_delay_seconds

        def _log_reattempt(retry_state: RetryCallState) -> None:
            logger.warning(
                f"Transient print failure on attempt {retry_state.attempt_number}, "
                f"re-attempting PDF export after {self.settings.fsr_reattempt_timeout}ms"
            )

        retrying = AsyncRetrying(
            retry=retry_if_exception(is_transient_print_failure),
            stop=stop_after_attempt(MAX_EXPORT_ATTEMPTS),
            wait=wait_fixed(delay),
            sleep=self._sleep,
            before_sleep=_log_reattempt,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    session.export_attempts += 1
                    content = await page.pdf(format=self.settings.page_format, print_background=True)
        except Exception as e:
            raise RasterizationError(error_message(e)) from e

        if not content:
            raise EmptyContentError("PDF content is not generated or undefined")
        return content
