"""Device fingerprint acquisition through a Playwright browser session.

The provider loads the signals test page, waits for the SDK, fills the login
form as the identity and returns the SDK's opaque ``getData()`` payload.
Playwright is imported lazily so runs without fingerprinting never need it.
"""

from typing import Protocol

import structlog

from riskgen.identity.models import BrowserKind, IdentityProfile
from riskgen.shared.errors import FingerprintError

logger = structlog.get_logger()

_SDK_READY = "() => typeof _pingOneSignals !== 'undefined' && !!_pingOneSignals.init"

_INIT_SDK = """async () => {
    if (typeof initializeSDK !== 'function') {
        throw new Error('SDK initialization function not found');
    }
    return await initializeSDK();
}"""

_GET_DATA = """async () => {
    if (typeof _pingOneSignals === 'undefined' || !_pingOneSignals.getData) {
        throw new Error('Signals SDK is not loaded or getData() is undefined');
    }
    return await _pingOneSignals.getData();
}"""

_CHROMIUM_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--disable-infobars",
    "--window-size=1280,800",
]


def _load_playwright():
    try:
        from playwright.async_api import Error, async_playwright
    except ImportError as exc:
        raise FingerprintError(
            "browser fingerprinting needs playwright; install the 'browser' extra"
        ) from exc
    return Error, async_playwright


class FingerprintProvider(Protocol):
    async def __call__(self, profile: IdentityProfile) -> str: ...


class BrowserFingerprintProvider:
    def __init__(
        self,
        page_url: str,
        password: str,
        timeout_seconds: float = 60.0,
        headless: bool = True,
        default_browser: BrowserKind = BrowserKind.CHROMIUM,
    ):
        self.page_url = page_url
        self.password = password
        self.timeout_ms = timeout_seconds * 1000
        self.headless = headless
        self.default_browser = default_browser

    async def _launch(self, playwright, kind: BrowserKind):
        browser_type = getattr(playwright, kind.value)
        if kind == BrowserKind.CHROMIUM:
            return await browser_type.launch(headless=self.headless, args=_CHROMIUM_ARGS)
        return await browser_type.launch(headless=self.headless)

    async def detect_user_agent(self) -> str:
        """Report ``navigator.userAgent`` of the default browser."""
        PlaywrightError, async_playwright = _load_playwright()

        try:
            async with async_playwright() as p:
                browser = await self._launch(p, self.default_browser)
                try:
                    page = await browser.new_page()
                    return await page.evaluate("() => navigator.userAgent")
                finally:
                    await browser.close()
        except PlaywrightError as exc:
            raise FingerprintError(f"user agent detection failed: {exc}") from exc

    async def __call__(self, profile: IdentityProfile) -> str:
        PlaywrightError, async_playwright = _load_playwright()

        kind = profile.assigned_browser or self.default_browser
        log = logger.bind(identity_key=profile.key, browser=kind.value)

        try:
            async with async_playwright() as p:
                browser = await self._launch(p, kind)
                try:
                    context = await browser.new_context(
                        viewport={"width": 1280, "height": 800},
                        user_agent=profile.user_agent,
                    )
                    page = await context.new_page()
                    page.set_default_timeout(self.timeout_ms)

                    log.debug("fingerprint_page_loading", url=self.page_url)
                    await page.goto(self.page_url, wait_until="networkidle")
                    await page.wait_for_function(_SDK_READY, polling=500)
                    await page.evaluate(_INIT_SDK)

                    await page.wait_for_selector("#username")
                    await page.click("#username")
                    await page.type("#username", profile.key, delay=80)
                    await page.click("#password")
                    await page.type("#password", self.password, delay=80)
                    await page.click("#submit")

                    payload = await page.evaluate(_GET_DATA)
                finally:
                    await browser.close()
        except PlaywrightError as exc:
            raise FingerprintError(f"fingerprint generation failed: {exc}") from exc

        if not payload:
            raise FingerprintError("signals SDK returned an empty payload")
        log.debug("fingerprint_acquired", size=len(str(payload)))
        return str(payload)
