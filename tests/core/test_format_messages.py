"""Format Messages — tests for amount formatting and notification texts."""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from trustlend.core.format_messages import (
    format_amount,
    payment_recorded_message,
    reminder_email,
    reminder_scheduled_message,
    reminder_sent_message,
    reminder_snoozed_message,
    verification_email,
)


def test_inr_whole_amount_without_decimals():
    assert format_amount(Decimal("600.00")) == "₹600"


def test_inr_uses_indian_grouping():
    assert format_amount(Decimal("100000")) == "₹1,00,000"
    assert format_amount(Decimal("12345678")) == "₹1,23,45,678"


def test_inr_keeps_fraction():
    assert format_amount(Decimal("1234.5")) == "₹1,234.50"


def test_other_currency_uses_code_prefix():
    assert format_amount(Decimal("1000"), "USD") == "USD 1,000"


def test_payment_recorded_message_variants():
    assert "awaiting confirmation" in payment_recorded_message(Decimal("400"), "INR", False)
    assert "confirmed by the lender" in payment_recorded_message(Decimal("400"), "INR", True)


def test_reminder_email_mentions_remaining_and_date():
    arrangement = SimpleNamespace(
        title="Laptop", currency="INR", expected_by=date(2026, 6, 1),
    )
    subject, body = reminder_email(arrangement, Decimal("600"), tone="firm")
    assert "Laptop" in subject
    assert "₹600" in body
    assert "2026-06-01" in body
    assert body.startswith("Please give this your attention")


def test_reminder_email_custom_message_wins():
    arrangement = SimpleNamespace(title="Laptop", currency="INR", expected_by=None)
    _, body = reminder_email(arrangement, Decimal("600"), custom_message="Hey, gentle ping")
    assert body == "Hey, gentle ping"


def test_verification_email_states_ttl():
    _, body = verification_email("123456", "password_reset", 10)
    assert "123456" in body
    assert "password reset" in body
    assert "10 minutes" in body


def test_reminder_activity_messages():
    assert reminder_scheduled_message("weekly") == "Weekly reminders turned on"
    assert reminder_snoozed_message(date(2026, 3, 24)) == "Reminders snoozed until 2026-03-24"
    assert reminder_sent_message("monthly") == "Scheduled monthly reminder sent"
    assert reminder_sent_message() == "Sent a gentle reminder"
