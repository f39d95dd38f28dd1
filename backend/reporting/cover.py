"""
Cover page: LaTeX template compiled by Tectonic in a throwaway directory.

The template in cover_template/ reads every variable part from a generated
cover-data.tex (one \\newcommand per field). User text is escaped before it is
written there, so it can never act as LaTeX markup.
"""
from __future__ import annotations

import logging
import shutil
import subprocess
import tempfile
import time
from dataclasses import dataclass, fields as dc_fields
from pathlib import Path, PurePath
from typing import Optional, Sequence

from config import COVER_COMPILE_TIMEOUT_S, COVER_TEMPLATE_DIR, TECTONIC_BIN
from models import MemoPayload
from models_branding import BrandConfig

from .assets import UploadedAsset
from .errors import CoverTypesetError

logger = logging.getLogger(__name__)

COVER_ENTRY = "cover.tex"
COVER_DATA = "cover-data.tex"
COVER_OUTPUT = "cover.pdf"
COVER_IMAGE_BASENAME = "cover-image"

_LATEX_ESCAPES = {
    "\\": r"\textbackslash{}",
    "{": r"\{",
    "}": r"\}",
    "%": r"\%",
    "$": r"\$",
    "&": r"\&",
    "#": r"\#",
    "_": r"\_",
    "^": r"\^{}",
    "~": r"\~{}",
}


def latex_escape(text: str) -> str:
    """Escape LaTeX specials in one pass; newlines become forced line breaks."""
    raw = str(text or "").replace("\r\n", "\n").replace("\r", "\n")
    escaped = "".join(_LATEX_ESCAPES.get(ch, ch) for ch in raw)
    return escaped.replace("\n", r"\newline{}")


@dataclass(frozen=True)
class CoverFields:
    main_title: str
    sub_one: str
    sub_two: str
    headline: str
    project_name: str
    amount: str
    reference: str
    date: str
    company_line: str
    company_website: str


# LaTeX macro name for each CoverFields attribute
_MACROS = {
    "main_title": "MainTitle",
    "sub_one": "SubOne",
    "sub_two": "SubTwo",
    "headline": "Headline",
    "project_name": "ProjectName",
    "amount": "LoanAmount",
    "reference": "RefNumber",
    "date": "DateLine",
    "company_line": "CompanyLine",
    "company_website": "CompanyWebsite",
}


def _first(*values: str) -> str:
    for v in values:
        if v and v.strip():
            return v.strip()
    return ""


def cover_fields_from_payload(payload: MemoPayload, brand: BrandConfig) -> CoverFields:
    c = payload.cover
    return CoverFields(
        main_title=_first(c.main_title, brand.main_title, brand.company_name),
        sub_one=_first(c.subheadline1, brand.sub_one),
        sub_two=_first(c.subheadline2, brand.sub_two),
        headline=_first(c.headline, brand.headline),
        project_name=_first(c.project_name, c.prepared_for, brand.project_name),
        amount=_first(c.finance_required, payload.loan.loan_amount, brand.finance_amount),
        reference=_first(payload.meta.reference_number, brand.reference_number),
        date=_first(payload.meta.date),
        company_line=_first(c.company_line, brand.company_line),
        company_website=_first(c.company_website, brand.company_website),
    )


def cover_image_filename(upload: UploadedAsset) -> str:
    ctype = (upload.content_type or "").lower()
    name = (upload.filename or "").lower()
    if "jpeg" in ctype:
        ext = ".jpg"
    elif "png" in ctype:
        ext = ".png"
    elif PurePath(name).suffix in (".jpg", ".jpeg"):
        ext = ".jpg"
    else:
        ext = ".png"
    return COVER_IMAGE_BASENAME + ext


def build_cover_data_tex(cover: CoverFields, image_name: str = "", fit: str = "contain") -> str:
    lines = ["% Auto-generated. Do not edit."]
    for f in dc_fields(cover):
        value = latex_escape(getattr(cover, f.name))
        lines.append(f"\\newcommand{{\\{_MACROS[f.name]}}}{{{value}}}")
    lines.append(f"\\newcommand{{\\CoverImagePath}}{{{latex_escape(image_name)}}}")
    lines.append(f"\\newcommand{{\\CoverFit}}{{{latex_escape(fit)}}}")
    lines.append("")
    return "\n".join(lines)


def default_compile_command() -> list[str]:
    return [TECTONIC_BIN, "-X", "compile", COVER_ENTRY, "--outdir", "."]


def render_cover_pdf(
    cover: CoverFields,
    cover_image: Optional[UploadedAsset] = None,
    *,
    fit: str = "contain",
    command: Optional[Sequence[str]] = None,
    template_dir: Path = COVER_TEMPLATE_DIR,
    workdir_root: Optional[Path] = None,
    timeout: float = COVER_COMPILE_TIMEOUT_S,
) -> bytes:
    """
    Compile the one-page cover and return its PDF bytes.

    Runs in a fresh temporary directory seeded with the template files, the
    parameter file and the cover photo. The directory is removed on every exit
    path. A failed compile raises CoverTypesetError with stdout/stderr attached.
    """
    cmd = list(command) if command else default_compile_command()
    start = time.perf_counter()
    with tempfile.TemporaryDirectory(prefix="fm-cover-", dir=workdir_root) as tmp:
        workdir = Path(tmp)
        shutil.copytree(template_dir, workdir, dirs_exist_ok=True)

        image_name = ""
        if cover_image is not None and cover_image.data:
            image_name = cover_image_filename(cover_image)
            (workdir / image_name).write_bytes(cover_image.data)

        (workdir / COVER_DATA).write_text(
            build_cover_data_tex(cover, image_name=image_name, fit=fit),
            encoding="utf-8",
        )

        try:
            result = subprocess.run(
                cmd,
                cwd=workdir,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise CoverTypesetError(f"Cover compiler not found: {cmd[0]}") from e
        except subprocess.TimeoutExpired as e:
            raise CoverTypesetError(
                f"Cover compiler timed out after {timeout:.0f}s",
                stdout=_text(e.stdout),
                stderr=_text(e.stderr),
            ) from e

        if result.returncode != 0:
            raise CoverTypesetError(
                f"Cover compiler failed (exit {result.returncode})",
                returncode=result.returncode,
                stdout=result.stdout or "",
                stderr=result.stderr or "",
            )

        out_path = workdir / COVER_OUTPUT
        if not out_path.is_file():
            raise CoverTypesetError(
                "Cover compiler reported success but produced no PDF",
                returncode=result.returncode,
                stdout=result.stdout or "",
                stderr=result.stderr or "",
            )
        pdf_bytes = out_path.read_bytes()

    logger.info("[cover] compile duration=%.2fs size=%d", time.perf_counter() - start, len(pdf_bytes))
    return pdf_bytes


def _text(stream: bytes | str | None) -> str:
    if stream is None:
        return ""
    if isinstance(stream, bytes):
        return stream.decode("utf-8", errors="replace")
    return stream
