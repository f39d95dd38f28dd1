"""
One request, one PDF: payload + uploads -> view-model -> (cover || body) -> merge.

The cover compile and the browser render have no shared inputs beyond the
payload, so they run side by side. Leaving the executor block waits for both,
which means a failing stage never leaves its sibling's browser or temp
directory behind when the error reaches the caller.
"""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from config import COVER_FIT_TOLERANCE, COVER_FRAME_RATIO, STATIC_DIR
from models import MemoPayload
from models_branding import BrandConfig

from .assets import MemoUploads, choose_cover_fit, encode_assets
from .body import HtmlPdfEngine, PlaywrightEngine, WaitConditions, render_body_pdf
from .cover import CoverFields, cover_fields_from_payload, render_cover_pdf
from .merge import merge_cover_and_body
from .view_model import ViewModel, build_view_model

logger = logging.getLogger(__name__)

CoverRenderer = Callable[..., bytes]


@dataclass
class PipelineOptions:
    """Swappable collaborators; defaults are Chromium and Tectonic."""
    engine: HtmlPdfEngine = field(default_factory=PlaywrightEngine)
    cover_renderer: CoverRenderer = render_cover_pdf
    wait: WaitConditions = field(default_factory=WaitConditions)
    base_path: Path = STATIC_DIR
    fit_tolerance: float = COVER_FIT_TOLERANCE
    frame_ratio: float = COVER_FRAME_RATIO


def prepare(payload: MemoPayload, uploads: MemoUploads, brand: BrandConfig) -> tuple[ViewModel, CoverFields]:
    assets = encode_assets(uploads)
    return build_view_model(payload, assets, brand), cover_fields_from_payload(payload, brand)


def generate_memo_pdf(
    payload: MemoPayload,
    uploads: MemoUploads,
    brand: BrandConfig,
    options: Optional[PipelineOptions] = None,
    request_id: str = "-",
) -> bytes:
    opts = options or PipelineOptions()
    start = time.perf_counter()

    view_model, cover_fields = prepare(payload, uploads, brand)
    fit = choose_cover_fit(view_model.assets.cover_image.dimensions, opts.frame_ratio, opts.fit_tolerance)
    logger.info(
        "[generate] rid=%s prepared cover_fit=%s property_images=%d",
        request_id, fit, len(view_model.assets.property_images),
    )

    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="memo-render") as pool:
        cover_future = pool.submit(opts.cover_renderer, cover_fields, uploads.cover_image, fit=fit)
        body_future = pool.submit(
            render_body_pdf, view_model, opts.engine, wait=opts.wait, base_path=opts.base_path
        )
        cover_pdf = cover_future.result()
        body_pdf = body_future.result()

    merged = merge_cover_and_body(cover_pdf, body_pdf)
    logger.info(
        "[generate] rid=%s done duration=%.2fs size=%d",
        request_id, time.perf_counter() - start, len(merged),
    )
    return merged
