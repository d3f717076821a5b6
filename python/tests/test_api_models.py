"""
Tests for the request/response schemas exchanged with the API layer.
"""

import pytest
from datetime import date
from decimal import Decimal

from pydantic import ValidationError

from api.models import (
    BulkReportRequest,
    BulkReportResponse,
    ClientUpdate,
    ReportSubmission,
    ReportUpdate,
    TrustAnalysisResponse,
)
from registry.reporting_service import ReportingService


def valid_payload(**overrides):
    payload = {
        "category_id": 1,
        "name": "Juan Perez",
        "email": "juan.perez@example.com",
        "phone": "3331234567",
    }
    payload.update(overrides)
    return payload


class TestReportSubmission:

    def test_minimal(self):
        submission = ReportSubmission(**valid_payload())
        assert submission.debt_amount is None
        assert submission.currency is None

    def test_normalizes_codes(self):
        submission = ReportSubmission(**valid_payload(currency="mxn", country_code="mx"))
        assert submission.currency == "MXN"
        assert submission.country_code == "MX"

    def test_derived_fields_are_dropped(self):
        submission = ReportSubmission(**valid_payload(trust_score=100, reports_count=0, risk_level="LOW"))
        data = submission.to_submission()
        assert "trust_score" not in data
        assert "reports_count" not in data
        assert "risk_level" not in data

    @pytest.mark.parametrize("overrides", [
        {"email": "not-an-email"},
        {"email": "a@b..com"},
        {"email": "juan perez@example.com"},
        {"phone": ""},
        {"debt_amount": "-1"},
        {"debt_amount": "1.234"},
        {"currency": "XYZ"},
        {"country_code": "MEX"},
        {"incident_date": "yesterday"},
    ])
    def test_rejects_invalid_input(self, overrides):
        with pytest.raises(ValidationError):
            ReportSubmission(**valid_payload(**overrides))

    def test_missing_required(self):
        payload = valid_payload()
        del payload["category_id"]
        with pytest.raises(ValidationError):
            ReportSubmission(**payload)

    def test_to_submission(self):
        submission = ReportSubmission(**valid_payload(
            debt_amount="1500.50", currency="USD", incident_date="2025-11-02"
        ))
        data = submission.to_submission()

        assert data["debt_amount"] == Decimal("1500.50")
        assert data["incident_date"] == date(2025, 11, 2)
        assert data["email"] == "juan.perez@example.com"

    def test_bulk_request_needs_items(self):
        with pytest.raises(ValidationError):
            BulkReportRequest(clients=[])
        assert len(BulkReportRequest(clients=[valid_payload()]).clients) == 1


class TestUpdates:

    def test_report_update_only_sent_fields(self):
        update = ReportUpdate(additional_info="Paid half")
        assert update.to_changes() == {"additional_info": "Paid half"}

    def test_client_update_only_sent_fields(self):
        update = ClientUpdate(city="Zapopan", trust_score=100)
        assert update.to_updates() == {"city": "Zapopan"}

    def test_client_update_validates_email(self):
        with pytest.raises(ValidationError):
            ClientUpdate(email="broken")
        with pytest.raises(ValidationError):
            ClientUpdate(email="a@b..com")
        assert ClientUpdate(email="ana@shop.example.com").to_updates() == {"email": "ana@shop.example.com"}


class TestResponses:

    def test_schemas_accept_service_output(self, provider, refs):
        service = ReportingService(provider)
        submission = ReportSubmission(**valid_payload(
            category_id=refs["category_id"], debt_amount="2000", currency="USD", country_code="MX"
        ))

        bulk = service.bulk_report(refs["company_id"], [submission.to_submission()])
        response = BulkReportResponse(**bulk.to_dict())
        assert response.success[0].email == "juan.perez@example.com"

        analysis = TrustAnalysisResponse(**service.trust_analysis(response.success[0].id))
        assert analysis.client.reports_count == 1
        assert analysis.trust_analysis.trust_score == 80
        assert analysis.trust_analysis.risk_factors == ["Debt amount: $2,000.00"]
        assert analysis.trust_analysis.analysis.first_report is not None
