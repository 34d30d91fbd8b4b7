"""Damage report template — tells the customer what was damaged and what they owe."""

import os
from datetime import UTC, datetime, timedelta

PAYMENT_DUE_DAYS = 7

# Checked in order; first keyword found in the item name wins
_ITEM_TYPES = (
    (("camera",), "Camera"),
    (("tripod",), "Tripod"),
    (("lens",), "Lens"),
    (("microphone", "comset"), "Audio Equipment"),
    (("light",), "Lighting Equipment"),
    (("monitor",), "Monitor"),
    (("switcher",), "Video Switcher"),
    (("dolly",), "Camera Dolly"),
)


def item_type(item_name: str | None) -> str:
    if not item_name:
        return "Rental Equipment"
    lowered = item_name.lower()
    for keywords, label in _ITEM_TYPES:
        if any(keyword in lowered for keyword in keywords):
            return label
    return "Rental Equipment"


def _peso(amount) -> str:
    return f"₱{float(amount or 0):,.2f}"


class DamageReportTemplate:
    @staticmethod
    def render(context: dict) -> dict:
        """Build EmailJS template params from a damage report and its booking."""
        company = os.environ.get("COMPANY_NAME", "RP Media Services")
        contact_email = os.environ.get("COMPANY_CONTACT_EMAIL", "capstonemaking@gmail.com")
        contact_phone = os.environ.get("COMPANY_CONTACT_PHONE", "+63-912-345-6789")

        now = context.get("reported_at") or datetime.now(UTC)
        repair_cost = float(context.get("estimated_repair_cost") or 0)
        penalty_fee = float(context.get("penalty_fee") or 0)
        customer_name = context.get("customer_name") or "Valued Customer"
        item_name = context.get("item_name", "N/A")

        return {
            "to_email": context.get("customer_email"),
            "to_name": customer_name,
            "from_name": company,
            "reply_to": contact_email,
            "customer_name": customer_name,
            "customer_email": context.get("customer_email"),
            "rental_id": context.get("booking_id") or "N/A",
            "venue": context.get("venue") or "Not specified",
            "rental_date": context.get("rental_date") or "N/A",
            "return_date": context.get("return_date") or "N/A",
            "item_name": item_name,
            "item_type": item_type(item_name),
            "damage_severity": context.get("severity"),
            "damage_description": context.get("description") or "",
            "repair_cost": _peso(repair_cost),
            "penalty_fee": _peso(penalty_fee),
            "total_amount": _peso(repair_cost + penalty_fee),
            "due_date": (now + timedelta(days=PAYMENT_DUE_DAYS)).date().isoformat(),
            "payment_instructions": (
                f"Please settle the amount within {PAYMENT_DUE_DAYS} days via bank transfer or credit card."
            ),
            "company_name": company,
            "contact_email": contact_email,
            "contact_phone": contact_phone,
            "report_date": now.date().isoformat(),
            "subject": f"Rental Equipment Damage Report - {item_name}",
            "message": f"Damage report notification for {item_name}",
        }
