"""In-repo brand registry for the memo cover and footer defaults."""
from __future__ import annotations

from models_branding import BrandConfig

BRANDS: dict[str, BrandConfig] = {
    "default": BrandConfig(
        brand_id="default",
        company_name="Global Capital Commercial",
        main_title="Global Capital Commercial",
        sub_one="Confidential",
        sub_two="Finance Memorandum",
        headline="Construction Finance",
        project_name="Warra Project Pty Ltd",
        finance_amount="$50,000,000",
        reference_number="PRP.17213",
        company_website="globalcapital.com.au",
        company_line=(
            "Global Capital Corporation Pty Ltd | ABN 14 097 482 114 | Telephone 612 9222 9100 | "
            "info@globalcapital.com.au\n"
            "Level 43 Governor Phillip Tower, 1 Farrer Place Sydney NSW Australia 2000 | "
            "PO Box R196 Royal Exchange NSW 1225"
        ),
        footer_confidentiality=(
            "This document is strictly private & confidential and the property of Global Capital Commercial"
        ),
    ),
    "sample": BrandConfig(
        brand_id="sample",
        company_name="Sample Lending Advisory",
        main_title="Sample Lending Advisory",
        headline="Development Finance",
        company_website="samplelending.example",
        company_line="Sample Lending Advisory Pty Ltd | 123 Market Street, Suite 100",
        footer_confidentiality="Private & confidential. Prepared by Sample Lending Advisory.",
    ),
}


def get_brand(brand_id: str) -> BrandConfig | None:
    return BRANDS.get(brand_id)


def list_brands() -> list[BrandConfig]:
    return list(BRANDS.values())
