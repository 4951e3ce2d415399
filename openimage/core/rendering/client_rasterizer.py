"""
Client Rasterizer
=================

Playwright-based capture of the live canvas. The scene is laid out by a real
browser exactly as the editor shows it, screenshotted at an export scale and
cropped to the fixed frame, then flattened to JPEG.
"""

from typing import Optional, Any, List, AsyncGenerator, Callable
import asyncio
import io
import time
from contextlib import asynccontextmanager

from playwright.async_api import async_playwright, Browser, BrowserContext
from PIL import Image

from openimage.config.logging import get_logger
from openimage.config.settings import get_settings
from openimage.core.rendering.html_generator import SceneHTMLGenerator
from openimage.core.scene.scene import Scene
from openimage.models.schemas import CANVAS_HEIGHT, CANVAS_WIDTH, CaptureOptions, ExportResult

logger = get_logger(__name__)

CANVAS_SELECTOR = ".canvas-editor"


class ClientCaptureError(Exception):
    """Exception raised when capturing the live canvas fails."""

    pass


def export_filename(now_ms: Optional[int] = None) -> str:
    """Download name for an export taken at now_ms (epoch milliseconds)."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"open-image-{now_ms}.jpg"


class BrowserPool:
    """Browser instance pool for efficient resource management."""

    def __init__(self, pool_size: int = 2):
        self.pool_size = pool_size
        self.browsers: List[Browser] = []
        self._semaphore = asyncio.Semaphore(pool_size)
        self._playwright: Any = None
        self.settings = get_settings()
        self.logger: Any = logger.bind(component="browser_pool")

    async def initialize(self) -> None:
        """Initialize browser pool."""
        try:
            self._playwright = await async_playwright().start()

            for _ in range(self.pool_size):
                browser = await self._playwright.chromium.launch(
                    headless=self.settings.playwright_headless,
                    args=[
                        "--no-sandbox",
                        "--disable-setuid-sandbox",
                        "--disable-dev-shm-usage",
                    ],
                )
                self.browsers.append(browser)

            self.logger.info("Browser pool initialized", pool_size=self.pool_size)
        except Exception as e:
            self.logger.error("Failed to initialize browser pool", error=str(e))
            await self._discard_partial_start()
            raise ClientCaptureError(f"Browser pool initialization failed: {e}") from e

    async def _discard_partial_start(self) -> None:
        """Release browsers and the driver left behind by a failed start."""
        for browser in self.browsers:
            try:
                await browser.close()
            except Exception as e:
                self.logger.warning("Failed to close browser after start failure", error=str(e))
        self.browsers = []

        if self._playwright:
            try:
                await self._playwright.stop()
            except Exception as e:
                self.logger.warning("Failed to stop Playwright after start failure", error=str(e))
            self._playwright = None

    async def close(self) -> None:
        """Close all browsers in the pool."""
        for browser in self.browsers:
            await browser.close()
        self.browsers = []

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

        self.logger.info("Browser pool closed")

    @asynccontextmanager
    async def get_browser(self) -> AsyncGenerator[Browser, None]:
        """Get a browser instance from the pool."""
        async with self._semaphore:
            if not self.browsers:
                raise ClientCaptureError("Browser pool not initialized")

            browser = self.browsers.pop()
            try:
                yield browser
            finally:
                self.browsers.append(browser)


class PlaywrightClientRasterizer:
    """Captures the canvas page in a pooled headless browser."""

    def __init__(
        self,
        browser_pool: BrowserPool,
        html_generator: Optional[SceneHTMLGenerator] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = get_settings()
        self.logger: Any = logger.bind(rasterizer="playwright")
        self.browser_pool = browser_pool
        self.html_generator = html_generator or SceneHTMLGenerator()
        self.clock = clock

    async def capture(self, scene: Scene, options: Optional[CaptureOptions] = None) -> ExportResult:
        """
        Capture the scene as the browser lays it out.

        The selection highlight is removed before the page is built. One
        attempt only; any failure surfaces as ClientCaptureError.

        Args:
            scene: Scene to export
            options: Capture options (scale, JPEG quality, background)

        Returns:
            ExportResult with the JPEG bytes and download name
        """
        options = options or CaptureOptions(
            scale=self.settings.capture_scale, jpeg_quality=self.settings.capture_jpeg_quality
        )
        scene = scene.clear_selection()

        try:
            html_content = await self.html_generator.generate(scene, show_selection=False)

            async with self.browser_pool.get_browser() as browser:
                context = await self._create_browser_context(browser, options)
                try:
                    page = await context.new_page()
                    page.set_default_timeout(self.settings.playwright_timeout)

                    await page.set_content(html_content, wait_until="domcontentloaded")
                    if options.wait_for_load:
                        await page.wait_for_load_state("networkidle")

                    screenshot_bytes = await page.locator(CANVAS_SELECTOR).screenshot(type="png")
                finally:
                    await context.close()

            jpeg_bytes, width, height = self._flatten_to_jpeg(screenshot_bytes, options)

        except ClientCaptureError:
            raise
        except Exception as e:
            error_msg = f"Canvas capture failed: {e}"
            self.logger.error("Canvas capture error", error=error_msg)
            raise ClientCaptureError(error_msg) from e

        result = ExportResult(
            filename=export_filename(int(self.clock() * 1000)),
            data=jpeg_bytes,
            width=width,
            height=height,
            file_size=len(jpeg_bytes),
        )
        self.logger.info(
            "Canvas captured",
            filename=result.filename,
            file_size=result.file_size,
            elements=len(scene),
        )
        return result

    async def _create_browser_context(
        self, browser: Browser, options: CaptureOptions
    ) -> BrowserContext:
        """Create browser context sized to the canvas frame."""
        return await browser.new_context(
            viewport={"width": CANVAS_WIDTH, "height": CANVAS_HEIGHT},
            device_scale_factor=options.scale,
        )

    def _flatten_to_jpeg(self, png_bytes: bytes, options: CaptureOptions) -> tuple[bytes, int, int]:
        """Composite onto the background colour, crop to the frame and encode JPEG."""
        image = Image.open(io.BytesIO(png_bytes)).convert("RGBA")

        frame = (round(CANVAS_WIDTH * options.scale), round(CANVAS_HEIGHT * options.scale))
        if image.size != frame:
            image = image.crop((0, 0, frame[0], frame[1]))

        background = Image.new("RGBA", image.size, options.background_color)
        flattened = Image.alpha_composite(background, image).convert("RGB")

        output = io.BytesIO()
        flattened.save(output, format="JPEG", quality=options.jpeg_quality, subsampling=0)
        return output.getvalue(), flattened.width, flattened.height


# Global browser pool instance
_global_browser_pool: Optional[BrowserPool] = None
# Serializes the lazy start so concurrent first exports share one pool
_pool_lock = asyncio.Lock()


async def initialize_browser_pool() -> BrowserPool:
    """Initialize global browser pool."""
    global _global_browser_pool
    settings = get_settings()
    pool = BrowserPool(settings.browser_pool_size)
    await pool.initialize()
    _global_browser_pool = pool
    return pool


async def close_browser_pool() -> None:
    """Close global browser pool."""
    global _global_browser_pool
    if _global_browser_pool:
        await _global_browser_pool.close()
        _global_browser_pool = None


def browser_pool_available() -> bool:
    return _global_browser_pool is not None and bool(_global_browser_pool.browsers)


async def capture_scene(scene: Scene, options: Optional[CaptureOptions] = None) -> ExportResult:
    """
    Export a scene through the shared browser pool.

    The pool is started on first use.
    """
    pool = _global_browser_pool
    if pool is None:
        async with _pool_lock:
            pool = _global_browser_pool
            if pool is None:
                logger.info("Auto-initializing browser pool for canvas capture")
                pool = await initialize_browser_pool()

    return await PlaywrightClientRasterizer(pool).capture(scene, options)
