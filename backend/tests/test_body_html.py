"""Tests for the body template: section elision, escaping, line breaks, images."""
import re
import socket
import time
from io import BytesIO

import pytest
from pypdf import PdfReader

from conftest import png_bytes
from models import MemoPayload
from reporting.assets import MemoUploads, UploadedAsset, encode_assets
from reporting.errors import BodyRenderError
from reporting.body import PlaywrightEngine, WaitConditions, nl2br, render_body_html, render_body_pdf
from reporting.view_model import build_view_model
from brands import get_brand
from config import STATIC_DIR


def _html(payload: dict, uploads: MemoUploads = MemoUploads()) -> str:
    p = MemoPayload.model_validate(payload)
    vm = build_view_model(p, encode_assets(uploads), get_brand("default"))
    return render_body_html(vm)


def _headings(html: str) -> list:
    return re.findall(r"<h2>(.*?)</h2>", html)


# --- nl2br ---
def test_nl2br_escapes_then_breaks():
    assert str(nl2br("a <b>\r\nc & d\ne")) == "a &lt;b&gt;<br/>c &amp; d<br/>e"


def test_nl2br_none():
    assert str(nl2br(None)) == ""


# --- Section elision ---
def test_blank_payload_renders_no_sections():
    html = _html({})
    assert _headings(html) == []
    assert "<section" not in html


def test_reference_and_guarantor_only(scenario_a_payload):
    html = _html(scenario_a_payload)
    assert _headings(html) == ["Guarantors"]
    assert "Jane Doe" in html
    assert "PRP.001" in html
    for absent in ("Loan Details", "The Property", "Lot Schedule", "Feasibility", "Presales"):
        assert absent not in html


def test_loan_rows_only_render_filled_fields():
    html = _html({"loan": {"loanAmount": "$3,000,000", "lvr": "65%"}})
    assert "Loan Details" in html
    assert "<th>Loan amount</th>" in html
    assert "<th>LVR</th>" in html
    assert "<th>Interest rate</th>" not in html
    assert "<th>Exit strategy</th>" not in html


def test_property_description_only_has_no_empty_table():
    html = _html({"property": {"description": "Corner site"}})
    section = html[html.index('class="property"'):]
    section = section[: section.index("</section>")]
    assert "<table" not in section
    assert "Corner site" in section


def test_feasibility_groups_in_first_seen_order():
    rows = [
        {"group": g, "label": f"item-{i}", "amount": str(i)}
        for i, g in enumerate(["Revenue", "Costs", "Revenue", "", "Costs"])
    ]
    html = _html({"feasibilityRows": rows})
    groups = re.findall(r'<div class="feasibility-group">\s*<h3>(.*?)</h3>', html)
    assert groups == ["Revenue", "Costs", "Lines"]
    assert html.index("item-0") < html.index("item-2") < html.index("item-1")


# --- Escaping ---
def test_user_text_cannot_inject_markup():
    html = _html(
        {
            "proposal": {"overview": '<script>alert("x")</script>\nsecond line'},
            "guarantors": [{"fullName": "<img src=x onerror=alert(1)>"}],
        }
    )
    assert "<script>alert" not in html
    assert "&lt;script&gt;" in html
    assert "<img src=x" not in html
    assert "&lt;/script&gt;<br/>second line" in html


# --- Images ---
def test_missing_images_leave_no_img_tags():
    html = _html({"meta": {"referenceNumber": "R1"}})
    assert "<img" not in html


def test_logo_and_property_images_embedded_as_data_urls():
    png = png_bytes(3, 2)
    uploads = MemoUploads(
        logo=UploadedAsset("logo.png", "image/png", png),
        property_images=(UploadedAsset("p1.png", "image/png", png), UploadedAsset("p2.png", "image/png", png)),
    )
    html = _html({}, uploads)
    assert html.count('src="data:image/png;base64,') == 3
    assert 'class="property-images"' in html


def test_footer_text_defaults_to_brand():
    html = _html({})
    assert "strictly private &amp; confidential" in html


# --- Determinism ---
def test_rendering_is_idempotent(scenario_a_payload):
    assert _html(scenario_a_payload) == _html(scenario_a_payload)


# --- Browser (skipped where Chromium is not installed) ---
@pytest.fixture
def chromium():
    pytest.importorskip("playwright.sync_api")
    engine = PlaywrightEngine()
    try:
        engine.render("<html><body>ok</body></html>", STATIC_DIR, WaitConditions(fonts=False, images=False))
    except BodyRenderError as e:
        pytest.skip(f"Browser runtime unavailable: {e}")
    return engine


def test_playwright_renders_a4_pdf(chromium, scenario_a_payload):
    p = MemoPayload.model_validate(scenario_a_payload)
    vm = build_view_model(p, encode_assets(MemoUploads()), get_brand("default"))
    pdf = chromium.render(render_body_html(vm), STATIC_DIR, WaitConditions())

    reader = PdfReader(BytesIO(pdf))
    assert len(reader.pages) >= 1
    box = reader.pages[0].mediabox
    # A4 in points, allowing for rounding
    assert abs(float(box.width) - 595.3) < 2
    assert abs(float(box.height) - 841.9) < 2
    assert "Jane Doe" in "".join(page.extract_text() for page in reader.pages)


def test_render_body_pdf_hands_html_and_waits_to_engine(scenario_a_payload):
    class RecordingEngine:
        def render(self, html, base_path, wait):
            self.args = (html, base_path, wait)
            return b"%PDF-1.7 body"

    engine = RecordingEngine()
    vm = build_view_model(MemoPayload.model_validate(scenario_a_payload), encode_assets(MemoUploads()))
    assert render_body_pdf(vm, engine, wait=WaitConditions(fonts=False)) == b"%PDF-1.7 body"

    html, base_path, wait = engine.args
    assert "Jane Doe" in html
    assert base_path == STATIC_DIR
    assert wait.fonts is False and wait.images is True


@pytest.fixture
def silent_server():
    """Accepts connections (via the listen backlog) and never answers them."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(16)
    try:
        yield "http://127.0.0.1:%d" % sock.getsockname()[1]
    finally:
        sock.close()


def test_stalled_image_does_not_block_render(chromium, silent_server):
    html = (
        "<html><body><p>Stalled image below</p>"
        f'<img src="{silent_server}/photo.png" alt="">'
        "</body></html>"
    )
    wait = WaitConditions(image_timeout_ms=1000, font_timeout_ms=1000)

    start = time.perf_counter()
    pdf = chromium.render(html, STATIC_DIR, wait)
    elapsed = time.perf_counter() - start

    assert pdf.startswith(b"%PDF")
    # Browser launch plus the one-second image wait, well under the navigation timeout
    assert elapsed < chromium.navigation_timeout_ms / 1000 / 2
