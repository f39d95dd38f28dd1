"""Failures raised by the memo rendering pipeline."""
from __future__ import annotations


class DocumentRenderError(RuntimeError):
    """Base class: a stage of the pipeline could not produce its PDF."""

    client_message = "PDF generation failed."


class CoverTypesetError(DocumentRenderError):
    """Raised when the cover compiler fails; carries its captured output."""

    client_message = "Cover page typesetting failed."

    def __init__(self, message: str, *, returncode: int | None = None, stdout: str = "", stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

    def diagnostics(self) -> str:
        return f"{self}\nSTDOUT:\n{self.stdout}\nSTDERR:\n{self.stderr}"


class BodyRenderError(DocumentRenderError):
    """Raised when the browser engine cannot launch, load the page or print."""

    client_message = "Document body rendering failed."


class MergeError(DocumentRenderError):
    """Raised when a rendered artifact is not a readable PDF."""

    client_message = "Assembling the final document failed."
