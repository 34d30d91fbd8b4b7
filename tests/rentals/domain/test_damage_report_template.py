"""Tests for the damage report email template."""

from datetime import UTC, datetime

import pytest
from rentals.notification.damage_report import DamageReportTemplate, item_type


@pytest.mark.parametrize(
    "name, expected",
    [
        ("Sony PMW-200 Camera", "Camera"),
        ("Sachtler Tripod", "Tripod"),
        ("Saramonic Comset", "Audio Equipment"),
        ("Camera Dolly", "Camera"),
        ("Wheels Slider", "Rental Equipment"),
        (None, "Rental Equipment"),
    ],
)
def test_item_type_from_name(name, expected):
    assert item_type(name) == expected


class TestDamageReportTemplate:
    def _render(self, **overrides):
        context = {
            "customer_email": "ana@example.com",
            "customer_name": "Ana Reyes",
            "booking_id": "bk-001",
            "venue": "Rizal Park",
            "rental_date": "2026-03-10",
            "return_date": "2026-03-12",
            "item_name": "Sachtler Tripod",
            "severity": "high",
            "description": "Leg lock snapped",
            "estimated_repair_cost": 2500,
            "penalty_fee": 500,
            "reported_at": datetime(2026, 3, 13, 9, 0, tzinfo=UTC),
        }
        context.update(overrides)
        return DamageReportTemplate.render(context)

    def test_amounts_are_formatted_in_pesos(self):
        params = self._render()
        assert params["repair_cost"] == "₱2,500.00"
        assert params["penalty_fee"] == "₱500.00"
        assert params["total_amount"] == "₱3,000.00"

    def test_due_date_is_a_week_after_report(self):
        params = self._render()
        assert params["report_date"] == "2026-03-13"
        assert params["due_date"] == "2026-03-20"

    def test_recipient_and_booking_fields(self):
        params = self._render()
        assert params["to_email"] == "ana@example.com"
        assert params["rental_id"] == "bk-001"
        assert params["venue"] == "Rizal Park"
        assert params["item_type"] == "Tripod"
        assert params["damage_severity"] == "high"

    def test_missing_booking_context_uses_placeholders(self):
        params = self._render(booking_id=None, venue=None, rental_date=None, customer_name=None)
        assert params["rental_id"] == "N/A"
        assert params["venue"] == "Not specified"
        assert params["rental_date"] == "N/A"
        assert params["to_name"] == "Valued Customer"

    def test_company_details_come_from_environment(self, monkeypatch):
        monkeypatch.setenv("COMPANY_NAME", "Test Rentals")
        params = self._render()
        assert params["company_name"] == "Test Rentals"
        assert params["from_name"] == "Test Rentals"
