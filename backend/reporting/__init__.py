"""Finance memo rendering: view-model, cover typesetting, body rendering, merge."""

from reporting.errors import BodyRenderError, CoverTypesetError, DocumentRenderError, MergeError
from reporting.pipeline import PipelineOptions, generate_memo_pdf

__all__ = [
    "BodyRenderError",
    "CoverTypesetError",
    "DocumentRenderError",
    "MergeError",
    "PipelineOptions",
    "generate_memo_pdf",
]
