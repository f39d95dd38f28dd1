"""
Finance memo submission schema.

Every scalar defaults to "" and every collection to [] (guarantors default to one
blank row). Wire keys are camelCase; snake_case is accepted too. Unknown keys are
kept as extras so newer form builds never get rejected.
"""
from __future__ import annotations

from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel


class MemoSection(BaseModel):
    """Base for every payload node: camelCase aliases, frozen, extras retained."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
        frozen=True,
    )

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_blank_and_numbers(cls, value: Any, info: ValidationInfo) -> Any:
        field = cls.model_fields.get(info.field_name or "")
        if field is None:
            return value
        if value is None:
            return field.get_default(call_default_factory=True)
        if field.annotation is str and isinstance(value, (int, float)) and not isinstance(value, bool):
            return f"{value}"
        return value


# --- Scalar sections ---

class Meta(MemoSection):
    reference_number: str = ""
    memo_title: str = ""
    prepared_for: str = ""
    prepared_by: str = ""
    date: str = ""


class Cover(MemoSection):
    main_title: str = ""
    subheadline1: str = ""
    subheadline2: str = ""
    headline: str = ""
    project_name: str = ""
    prepared_for: str = ""
    finance_required: str = ""
    company_website: str = ""
    company_line: str = ""


class Loan(MemoSection):
    loan_amount: str = ""
    purpose: str = ""
    loan_type: str = ""
    interest_rate: str = ""
    lvr: str = ""
    term: str = ""
    security_type: str = ""
    security_location: str = ""
    credit_reports: str = ""
    anticipated_settlement: str = ""
    exit_strategy: str = ""


class Proposal(MemoSection):
    overview: str = ""
    background: str = ""


class SalesMarketing(MemoSection):
    overview: str = ""
    agent: str = ""
    campaign: str = ""


class Property(MemoSection):
    address: str = ""
    title_details: str = ""
    zoning: str = ""
    site_area: str = ""
    valuation: str = ""
    valuer: str = ""
    description: str = ""


class ProfessionalContact(MemoSection):
    firm: str = ""
    contact_name: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""


class ProfessionalContacts(MemoSection):
    solicitor: ProfessionalContact = Field(default_factory=ProfessionalContact)
    accountant: ProfessionalContact = Field(default_factory=ProfessionalContact)


class Legal(MemoSection):
    confidentiality_heading: str = ""
    confidentiality_body: str = ""
    disclaimer_body: str = ""
    contact_name: str = ""
    contact_email: str = ""
    contact_phone: str = ""


class Recommendation(MemoSection):
    heading: str = ""
    body: str = ""
    annexures_heading: str = ""
    annexures_intro: str = ""
    annexures_list: str = ""


class Footers(MemoSection):
    confidentiality: str = ""


# --- Repeated rows ---

class PartyRow(MemoSection):
    name: str = ""
    role: str = ""
    entity_type: str = ""


class ExecSummaryRow(MemoSection):
    key: str = ""
    value: str = ""


class PresaleRow(MemoSection):
    buyer: str = ""
    lot: str = ""
    price: str = ""
    deposit: str = ""
    status: str = ""


class LotRow(MemoSection):
    stage: str = ""
    lot: str = ""
    size: str = ""
    price: str = ""
    status: str = ""


class FeasibilityRow(MemoSection):
    group: str = ""
    label: str = ""
    amount: str = ""
    notes: str = ""


class AmountRow(MemoSection):
    """Label/amount pair used by funding rows and company assets/liabilities."""
    label: str = ""
    amount: str = ""


class SecurityRow(MemoSection):
    name: str = ""
    details: str = ""


class BorrowerRow(MemoSection):
    name: str = ""
    entity_type: str = ""
    abn: str = ""
    role: str = ""
    address: str = ""
    notes: str = ""


class GuarantorRow(MemoSection):
    full_name: str = ""
    relationship: str = ""
    net_worth: str = ""
    bio: str = ""


class IndividualLine(MemoSection):
    label: str = ""
    amount: str = ""
    type: str = ""


class Individual(MemoSection):
    name: str = ""
    rows: List[IndividualLine] = Field(default_factory=list)
    notes: str = ""


class FundingSection(MemoSection):
    commentary: str = ""
    rows: List[AmountRow] = Field(default_factory=list)


class SecuritySection(MemoSection):
    commentary: str = ""
    rows: List[SecurityRow] = Field(default_factory=list)


class Financials(MemoSection):
    company_assets: List[AmountRow] = Field(default_factory=list)
    company_liabilities: List[AmountRow] = Field(default_factory=list)
    individuals: List[Individual] = Field(default_factory=list)


# --- Root ---

class MemoPayload(MemoSection):
    """The validated, fully defaulted submission driving one PDF."""

    meta: Meta = Field(default_factory=Meta)
    cover: Cover = Field(default_factory=Cover)
    loan: Loan = Field(default_factory=Loan)
    proposal: Proposal = Field(default_factory=Proposal)
    sales_marketing: SalesMarketing = Field(default_factory=SalesMarketing)
    property: Property = Field(default_factory=Property)
    funding: FundingSection = Field(default_factory=FundingSection)
    security: SecuritySection = Field(default_factory=SecuritySection)
    professional_contacts: ProfessionalContacts = Field(default_factory=ProfessionalContacts)
    legal: Legal = Field(default_factory=Legal)
    recommendation: Recommendation = Field(default_factory=Recommendation)
    footers: Footers = Field(default_factory=Footers)

    parties_to_loan: List[PartyRow] = Field(default_factory=list)
    exec_summary: List[ExecSummaryRow] = Field(default_factory=list)
    presales: List[PresaleRow] = Field(default_factory=list)
    lots: List[LotRow] = Field(default_factory=list)
    feasibility_rows: List[FeasibilityRow] = Field(default_factory=list)
    borrowers: List[BorrowerRow] = Field(default_factory=list)
    guarantors: List[GuarantorRow] = Field(default_factory=lambda: [GuarantorRow()])
    financials: Financials = Field(default_factory=Financials)
