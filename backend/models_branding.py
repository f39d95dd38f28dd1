"""Brand configuration: house defaults for the memo cover and footer."""
from __future__ import annotations

from pydantic import BaseModel


class BrandConfig(BaseModel):
    """Cover/footer wording used whenever the submission leaves a field blank."""
    brand_id: str
    company_name: str
    main_title: str = ""
    sub_one: str = "Confidential"
    sub_two: str = "Finance Memorandum"
    headline: str = "Construction Finance"
    project_name: str = ""
    finance_amount: str = ""
    reference_number: str = ""
    company_website: str = ""
    company_line: str = ""
    footer_confidentiality: str = ""
