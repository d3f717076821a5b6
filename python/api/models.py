"""
Pydantic request/response schemas for the Blacklist Registry API

Requests are validated here before they reach ReportingService; responses
mirror ReportingService and ScoreResult output.
"""

import re
from datetime import date
from decimal import Decimal
from typing import List, Optional, Dict, Any

from pydantic import BaseModel, EmailStr, Field, field_validator

from currency_utils import is_valid_currency


def _check_currency(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.upper()
    if not is_valid_currency(v):
        raise ValueError(f"Unsupported currency: {v}")
    return v


def _check_country(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    if not re.match(r'^[A-Za-z]{2}$', v):
        raise ValueError("Country code must be ISO 3166-1 alpha-2 (e.g. 'MX')")
    return v.upper()


class ReportSubmission(BaseModel):
    """Request schema for reporting a client.

    Derived fields (reports_count, trust_score, risk_level, ...) are not part
    of the schema and are dropped if sent.
    """
    category_id: int = Field(..., description="Business category of the client")
    name: str = Field(..., min_length=1, max_length=255, description="Client name")
    email: EmailStr = Field(..., description="Client email")
    phone: str = Field(..., min_length=1, max_length=50, description="Client phone number")
    ip_address: Optional[str] = Field(default=None, max_length=45)
    tax_id: Optional[str] = Field(default=None, max_length=50, description="RFC, NIF, CPF, ...")
    address: Optional[str] = Field(default=None)
    city: Optional[str] = Field(default=None, max_length=100)
    state: Optional[str] = Field(default=None, max_length=100)
    country_code: Optional[str] = Field(default=None, description="ISO 3166-1 alpha-2")
    postal_code: Optional[str] = Field(default=None, max_length=20)
    debt_amount: Optional[Decimal] = Field(
        default=None,
        ge=0,
        max_digits=10,
        decimal_places=2,
        description="Amount owed to the reporting company"
    )
    currency: Optional[str] = Field(default=None, description="ISO 4217 code of debt_amount")
    incident_date: Optional[date] = Field(default=None)
    fraud_type_id: Optional[int] = Field(default=None)
    additional_info: Optional[str] = Field(default=None)

    model_config = {"extra": "ignore"}

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v: Optional[str]) -> Optional[str]:
        return _check_currency(v)

    @field_validator('country_code')
    @classmethod
    def validate_country_code(cls, v: Optional[str]) -> Optional[str]:
        return _check_country(v)

    def to_submission(self) -> Dict[str, Any]:
        """Plain dict accepted by ReportingService.report_client."""
        return self.model_dump()


class BulkReportRequest(BaseModel):
    """Request schema for bulk reporting."""
    clients: List[ReportSubmission] = Field(..., min_length=1)


class ReportUpdate(BaseModel):
    """Request schema for editing a report. Only sent fields are changed."""
    debt_amount: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    currency: Optional[str] = None
    incident_date: Optional[date] = None
    fraud_type_id: Optional[int] = None
    additional_info: Optional[str] = None

    model_config = {"extra": "ignore"}

    @field_validator('currency')
    @classmethod
    def validate_currency(cls, v: Optional[str]) -> Optional[str]:
        return _check_currency(v)

    def to_changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class ClientUpdate(BaseModel):
    """Request schema for editing client identity fields."""
    category_id: Optional[int] = None
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, min_length=1, max_length=50)
    ip_address: Optional[str] = Field(default=None, max_length=45)
    tax_id: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = None
    city: Optional[str] = Field(default=None, max_length=100)
    state: Optional[str] = Field(default=None, max_length=100)
    country_code: Optional[str] = None
    postal_code: Optional[str] = Field(default=None, max_length=20)

    model_config = {"extra": "ignore"}

    @field_validator('country_code')
    @classmethod
    def validate_country_code(cls, v: Optional[str]) -> Optional[str]:
        return _check_country(v)

    def to_updates(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class ClientSummary(BaseModel):
    """Public view of a blacklisted client."""
    id: int
    category_id: Optional[int] = None
    name: str
    email: str
    phone: str
    tax_id: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country_code: Optional[str] = None
    currency: Optional[str] = None
    reports_count: int = Field(..., ge=0)
    trust_score: int = Field(..., ge=0, le=100)
    risk_level: str = Field(..., description="LOW, MEDIUM, HIGH or CRITICAL")
    risk_factors: List[str] = Field(default_factory=list)
    total_debt: float = Field(default=0.0, description="Total debt in USD")
    unique_companies: Optional[int] = Field(default=None, ge=0)


class BulkSuccessItem(BaseModel):
    id: int
    name: str
    email: str


class BulkError(BaseModel):
    email: str
    message: str


class BulkReportResponse(BaseModel):
    """Response schema for bulk reporting, items in input order."""
    success: List[BulkSuccessItem] = Field(default_factory=list)
    errors: List[BulkError] = Field(default_factory=list)


class ScoreAnalysisResponse(BaseModel):
    """Counts the trust score was derived from."""
    reports_count: int = Field(..., ge=0)
    fraud_types_count: int = Field(..., ge=0)
    phone_numbers_count: int = Field(..., ge=0)
    recent_reports: int = Field(..., ge=0)
    first_report: Optional[str] = Field(default=None, description="ISO 8601")
    last_report: Optional[str] = Field(default=None, description="ISO 8601")


class TrustScoreResponse(BaseModel):
    """Trust score engine output."""
    trust_score: int = Field(..., ge=0, le=100)
    risk_level: str
    risk_factors: List[str] = Field(default_factory=list)
    total_debt: float = Field(..., ge=0)
    total_debt_currency: str = Field(default="USD")
    recommendation: str
    analysis: ScoreAnalysisResponse


class TrustAnalysisResponse(BaseModel):
    """Response schema for the trust analysis of a client."""
    client: ClientSummary
    trust_analysis: TrustScoreResponse


class ErrorDetail(BaseModel):
    """Detailed error information."""
    code: str = Field(..., description="Error code for programmatic handling")
    message: str = Field(..., description="Human-readable error message")
    field: Optional[str] = Field(default=None, description="Field that caused error")
    timestamp: str = Field(..., description="Error timestamp (ISO 8601)")


class ErrorResponse(BaseModel):
    """Standardized error response format."""
    error: ErrorDetail
