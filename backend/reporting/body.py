"""
Memo body: Jinja2 template -> HTML -> paginated PDF in headless Chromium.

The template receives the view-model plus two plain functions (presence test and
newline filter) as render arguments; nothing is registered on the environment.
The browser sits behind HtmlPdfEngine so tests and other engines can stand in.
"""
from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, Sequence

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape
from markupsafe import Markup, escape

from config import (
    CHROMIUM_ARGS,
    FONT_WAIT_TIMEOUT_MS,
    IMAGE_WAIT_TIMEOUT_MS,
    PDF_PAGE_FORMAT,
    STATIC_DIR,
    TEMPLATE_DIR,
)

from .errors import BodyRenderError
from .view_model import ViewModel, has_any_value

logger = logging.getLogger(__name__)

BODY_TEMPLATE = "document.html.j2"

_NEWLINE = re.compile(r"\r\n|\r|\n")


def nl2br(text: Any) -> Markup:
    """HTML-escape text, then turn each literal newline into <br/>."""
    if text is None:
        return Markup("")
    return Markup(_NEWLINE.sub("<br/>", str(escape(str(text)))))


def _build_env(template_dir: Path, static_dir: Path) -> Environment:
    return Environment(
        loader=FileSystemLoader([str(template_dir), str(static_dir)]),
        autoescape=select_autoescape(enabled_extensions=("html", "j2")),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def render_body_html(
    view_model: ViewModel,
    *,
    has_value: Callable[[Any], bool] = has_any_value,
    nl2br: Callable[[Any], Markup] = nl2br,
    template_name: str = BODY_TEMPLATE,
    template_dir: Path = TEMPLATE_DIR,
    static_dir: Path = STATIC_DIR,
) -> str:
    env = _build_env(template_dir, static_dir)
    template = env.get_template(template_name)
    return template.render(
        vm=view_model,
        p=view_model.payload,
        show=view_model.show,
        assets=view_model.assets,
        feasibility_groups=view_model.feasibility_groups,
        has_value=has_value,
        nl2br=nl2br,
        base_href=static_dir.resolve().as_uri() + "/",
    )


@dataclass(frozen=True)
class WaitConditions:
    """What the engine must wait for between page load and printing."""
    fonts: bool = True
    images: bool = True
    image_timeout_ms: int = IMAGE_WAIT_TIMEOUT_MS
    font_timeout_ms: int = FONT_WAIT_TIMEOUT_MS


class HtmlPdfEngine(Protocol):
    def render(self, html: str, base_path: Path, wait: WaitConditions) -> bytes:
        ...


_WAIT_FONTS_JS = """
async (timeoutMs) => {
  if (!document.fonts || !document.fonts.ready) return;
  await Promise.race([
    document.fonts.ready.catch(() => undefined),
    new Promise(resolve => setTimeout(resolve, timeoutMs)),
  ]);
}
"""

# Each image settles on decode, decode failure, or its own timeout
_WAIT_IMAGES_JS = """
async (timeoutMs) => {
  const imgs = Array.from(document.images || []);
  await Promise.all(imgs.map(img => Promise.race([
    img.decode().catch(() => undefined),
    new Promise(resolve => setTimeout(resolve, timeoutMs)),
  ])));
}
"""


class PlaywrightEngine:
    """Launches Chromium per call; every render gets its own browser context."""

    def __init__(
        self,
        page_format: str = PDF_PAGE_FORMAT,
        launch_args: Optional[Sequence[str]] = None,
        navigation_timeout_ms: int = 30000,
    ):
        self.page_format = page_format
        self.launch_args = list(launch_args) if launch_args is not None else list(CHROMIUM_ARGS)
        self.navigation_timeout_ms = navigation_timeout_ms

    def render(self, html: str, base_path: Path, wait: WaitConditions) -> bytes:
        try:
            from playwright.sync_api import sync_playwright
        except ImportError as e:
            raise BodyRenderError("Playwright is not installed") from e

        start = time.perf_counter()
        try:
            with sync_playwright() as p:
                browser = p.chromium.launch(args=self.launch_args)
                try:
                    context = browser.new_context(base_url=base_path.resolve().as_uri() + "/")
                    page = context.new_page()
                    # Pending images are gated by the bounded waits below, not by the load event
                    page.set_content(html, wait_until="domcontentloaded", timeout=self.navigation_timeout_ms)
                    page.emulate_media(media="print")
                    if wait.fonts:
                        page.evaluate(_WAIT_FONTS_JS, wait.font_timeout_ms)
                    if wait.images:
                        page.evaluate(_WAIT_IMAGES_JS, wait.image_timeout_ms)
                    pdf_bytes = page.pdf(
                        format=self.page_format,
                        print_background=True,
                        display_header_footer=False,
                        margin={"top": "0mm", "right": "0mm", "bottom": "0mm", "left": "0mm"},
                    )
                    context.close()
                finally:
                    browser.close()
        except Exception as e:
            raise BodyRenderError(f"Browser rendering failed: {e}") from e

        logger.info("[body] pdf duration=%.2fs size=%d", time.perf_counter() - start, len(pdf_bytes))
        return pdf_bytes


def render_body_pdf(
    view_model: ViewModel,
    engine: HtmlPdfEngine,
    *,
    wait: Optional[WaitConditions] = None,
    base_path: Path = STATIC_DIR,
) -> bytes:
    html_str = render_body_html(view_model)
    return engine.render(html_str, base_path, wait or WaitConditions())
