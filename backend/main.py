from __future__ import annotations

import json
import logging
import re
import shutil
import time
import uuid
from typing import List, Optional

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, Response
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from brands import get_brand, list_brands
from config import ALLOWED_ORIGINS, HOST, PORT, TECTONIC_BIN, VERSION
from models import MemoPayload
from reporting.assets import MemoUploads, UploadedAsset
from reporting.body import render_body_html
from reporting.errors import BodyRenderError, CoverTypesetError, DocumentRenderError
from reporting.pipeline import PipelineOptions, generate_memo_pdf, prepare

# Same logger as uvicorn so platform logs show every line
_LOG = logging.getLogger("uvicorn.error")

app = FastAPI(title="Finance Memo Generator", version="0.2.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class RequestLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())[:8]
        request.state.request_id = request_id
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        _LOG.info(
            "request_id=%s method=%s path=%s status=%s duration_ms=%.0f",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        response.headers["X-Request-Id"] = request_id
        return response


app.add_middleware(RequestLogMiddleware)


@app.on_event("startup")
def startup_log() -> None:
    _LOG.info(
        "Finance memo generator starting on http://%s:%s version=%s tectonic=%s",
        HOST, PORT, VERSION, shutil.which(TECTONIC_BIN) or "missing",
    )
    if shutil.which(TECTONIC_BIN) is None:
        _LOG.warning("%s not found on PATH. Cover typesetting will fail.", TECTONIC_BIN)


def get_pipeline_options() -> PipelineOptions:
    return PipelineOptions()


class PayloadError(ValueError):
    """The submitted payload could not be parsed or validated."""


def _rid(request: Request) -> str:
    return getattr(request.state, "request_id", None) or "no-rid"


def _error(status_code: int, message: str, rid: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "error": message, "rid": rid})


def _parse_payload(raw: Optional[str]) -> MemoPayload:
    if raw is None or not raw.strip():
        raise PayloadError("Missing payload")
    try:
        body = json.loads(raw)
    except json.JSONDecodeError as e:
        raise PayloadError(f"Payload is not valid JSON: {e.msg} (line {e.lineno}, column {e.colno})") from e
    except (RecursionError, ValueError) as e:
        raise PayloadError("Payload is not valid JSON: nesting too deep") from e
    if not isinstance(body, dict):
        raise PayloadError("Payload must be a JSON object")
    try:
        return MemoPayload.model_validate(body)
    except ValidationError as e:
        raise PayloadError(f"Payload failed validation: {str(e)[:400]}") from e


def _to_asset(upload: Optional[UploadFile]) -> Optional[UploadedAsset]:
    # Browsers post an empty part for an untouched file input
    if upload is None or not upload.filename:
        return None
    data = upload.file.read()
    if not data:
        return None
    return UploadedAsset(
        filename=upload.filename,
        content_type=upload.content_type or "",
        data=data,
    )


def _collect_uploads(
    cover_image: Optional[UploadFile],
    logo: Optional[UploadFile],
    footer_logo: Optional[UploadFile],
    property_images: Optional[List[UploadFile]],
) -> MemoUploads:
    images = [a for a in (_to_asset(u) for u in (property_images or [])) if a is not None]
    return MemoUploads(
        cover_image=_to_asset(cover_image),
        logo=_to_asset(logo),
        footer_logo=_to_asset(footer_logo),
        property_images=tuple(images),
    )


def _pdf_filename(payload: MemoPayload) -> str:
    ref = re.sub(r"[^A-Za-z0-9._-]+", "-", payload.meta.reference_number.strip()).strip("-.")
    return f"finance-memo-{ref}.pdf" if ref else "finance-memo.pdf"


@app.get("/health")
def health():
    return {"status": "ok", "version": VERSION}


@app.get("/health/pdf")
def health_pdf():
    """
    Runtime check for both renderers.
    Returns 200 only when Chromium can launch and the cover compiler is on PATH.
    """
    if shutil.which(TECTONIC_BIN) is None:
        return JSONResponse(status_code=503, content={"status": "unavailable", "detail": "Cover compiler is not installed."})
    try:
        from playwright.sync_api import sync_playwright
    except ImportError:
        return JSONResponse(status_code=503, content={"status": "unavailable", "detail": "Playwright is not installed."})

    try:
        with sync_playwright() as p:
            browser = p.chromium.launch(args=["--no-sandbox"])
            page = browser.new_page()
            page.set_content("<html><body>ok</body></html>")
            browser.close()
    except Exception as e:
        _LOG.warning("HEALTH_PDF_ERR err=%s", str(e)[:400])
        return JSONResponse(status_code=503, content={"status": "unavailable", "detail": "Browser runtime unavailable."})

    return {"status": "ok", "pdf_runtime": "ready"}


@app.get("/brands")
def brands():
    return [b.model_dump() for b in list_brands()]


@app.post("/api/generate")
def generate_pdf(
    request: Request,
    payload: Optional[str] = Form(None),
    brand_id: str = Form("default", alias="brandId"),
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    logo: Optional[UploadFile] = File(None),
    footer_logo: Optional[UploadFile] = File(None, alias="footerLogo"),
    property_images: Optional[List[UploadFile]] = File(None, alias="propertyImages"),
    options: PipelineOptions = Depends(get_pipeline_options),
):
    """
    Multipart form: `payload` (JSON string) plus optional coverImage, logo, footerLogo
    and up to six propertyImages. Returns the finished memo PDF (cover + body).
    """
    rid = _rid(request)
    try:
        memo = _parse_payload(payload)
    except PayloadError as e:
        _LOG.info("GENERATE_ERR rid=%s stage=payload err=%s", rid, e)
        return _error(400, str(e), rid)

    brand = get_brand(brand_id)
    if brand is None:
        return _error(400, f"Unknown brandId: {brand_id}", rid)

    uploads = _collect_uploads(cover_image, logo, footer_logo, property_images)
    _LOG.info(
        "GENERATE_START rid=%s ref=%s cover=%s logo=%s footer_logo=%s property_images=%d",
        rid,
        memo.meta.reference_number or "-",
        uploads.cover_image is not None,
        uploads.logo is not None,
        uploads.footer_logo is not None,
        len(uploads.property_images),
    )

    try:
        pdf_bytes = generate_memo_pdf(memo, uploads, brand, options, request_id=rid)
    except CoverTypesetError as e:
        _LOG.error("GENERATE_ERR rid=%s stage=cover %s", rid, e.diagnostics())
        return _error(500, e.client_message, rid)
    except BodyRenderError as e:
        _LOG.exception("GENERATE_ERR rid=%s stage=body err=%s", rid, e)
        return _error(503, e.client_message, rid)
    except DocumentRenderError as e:
        _LOG.exception("GENERATE_ERR rid=%s stage=merge err=%s", rid, e)
        return _error(500, e.client_message, rid)
    except Exception as e:
        _LOG.exception("GENERATE_ERR rid=%s stage=unexpected err=%s", rid, str(e)[:400])
        return _error(500, DocumentRenderError.client_message, rid)

    _LOG.info("GENERATE_DONE rid=%s bytes=%d", rid, len(pdf_bytes))
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{_pdf_filename(memo)}"'},
    )


@app.post("/api/preview", response_class=HTMLResponse)
def preview_body(
    request: Request,
    payload: Optional[str] = Form(None),
    brand_id: str = Form("default", alias="brandId"),
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    logo: Optional[UploadFile] = File(None),
    footer_logo: Optional[UploadFile] = File(None, alias="footerLogo"),
    property_images: Optional[List[UploadFile]] = File(None, alias="propertyImages"),
):
    """Return the body as HTML (no browser or cover compiler needed). Same form as /api/generate."""
    rid = _rid(request)
    try:
        memo = _parse_payload(payload)
    except PayloadError as e:
        return _error(400, str(e), rid)
    brand = get_brand(brand_id)
    if brand is None:
        return _error(400, f"Unknown brandId: {brand_id}", rid)

    uploads = _collect_uploads(cover_image, logo, footer_logo, property_images)
    view_model, _ = prepare(memo, uploads, brand)
    return HTMLResponse(render_body_html(view_model))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=HOST,
        port=PORT,
        reload=True,
    )
