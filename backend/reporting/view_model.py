"""
Payload -> render-ready view-model.

Pure data shaping: feasibility rows are grouped here (the template only loops) and
each optional section gets one visibility flag, computed once, so blank sections
are left out of the body entirely.
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel

from models import FeasibilityRow, MemoPayload
from models_branding import BrandConfig

from .assets import AssetBundle

DEFAULT_FEASIBILITY_GROUP = "Lines"
DEFAULT_MEMO_TITLE = "Finance Memorandum"


def has_any_value(value: Any) -> bool:
    """True if value, or any scalar nested anywhere inside it, is non-blank."""
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, (int, float)):
        return True
    if isinstance(value, BaseModel):
        return has_any_value(value.model_dump())
    if isinstance(value, Mapping):
        return any(has_any_value(v) for v in value.values())
    if isinstance(value, (list, tuple)):
        return any(has_any_value(v) for v in value)
    return False


@dataclass(frozen=True)
class FeasibilityGroup:
    name: str
    rows: Tuple[FeasibilityRow, ...]


def group_feasibility(rows: Iterable[FeasibilityRow]) -> List[FeasibilityGroup]:
    """Group rows by trimmed label in first-seen order; unlabelled rows share one group."""
    grouped: Dict[str, List[FeasibilityRow]] = {}
    for row in rows:
        name = (row.group or "").strip() or DEFAULT_FEASIBILITY_GROUP
        grouped.setdefault(name, []).append(row)
    return [FeasibilityGroup(name=name, rows=tuple(items)) for name, items in grouped.items()]


class Visibility(dict):
    """Section name -> bool. Sections never tracked read as visible."""

    def __missing__(self, key: str) -> bool:
        return True

    def __getattr__(self, key: str) -> bool:
        if key.startswith("__"):
            raise AttributeError(key)
        return self[key]


def compute_visibility(payload: MemoPayload) -> Visibility:
    p = payload
    sections: Dict[str, Any] = {
        "meta": p.meta,
        "exec_summary": p.exec_summary,
        "parties_to_loan": p.parties_to_loan,
        "loan": p.loan,
        "proposal": p.proposal,
        "property": p.property,
        "sales_marketing": p.sales_marketing,
        "presales": p.presales,
        "lots": p.lots,
        "feasibility": p.feasibility_rows,
        "funding": p.funding,
        "security": p.security,
        "borrowers": p.borrowers,
        "guarantors": p.guarantors,
        "financials": p.financials,
        "company_assets": p.financials.company_assets,
        "company_liabilities": p.financials.company_liabilities,
        "individuals": p.financials.individuals,
        "professional_contacts": p.professional_contacts,
        "legal": p.legal,
        "recommendation": p.recommendation,
    }
    return Visibility({name: has_any_value(value) for name, value in sections.items()})


@dataclass(frozen=True)
class ViewModel:
    payload: MemoPayload
    feasibility_groups: Tuple[FeasibilityGroup, ...]
    assets: AssetBundle
    show: Visibility
    memo_title: str = DEFAULT_MEMO_TITLE
    footer_text: str = ""


def build_view_model(
    payload: MemoPayload,
    assets: AssetBundle,
    brand: Optional[BrandConfig] = None,
) -> ViewModel:
    show = compute_visibility(payload)
    show["property_images"] = bool(assets.property_images)
    footer_text = payload.footers.confidentiality.strip()
    if not footer_text and brand is not None:
        footer_text = brand.footer_confidentiality
    return ViewModel(
        payload=payload,
        feasibility_groups=tuple(group_feasibility(payload.feasibility_rows)),
        assets=assets,
        show=show,
        memo_title=payload.meta.memo_title.strip() or DEFAULT_MEMO_TITLE,
        footer_text=footer_text,
    )
