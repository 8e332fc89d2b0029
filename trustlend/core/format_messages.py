"""Message Formatting — human-readable text for activities, notifications and errors.

Invariants:
    - Pure string building, no IO
    - INR amounts use the rupee sign and Indian digit grouping (1,00,000)
    - Other currencies are prefixed with their ISO code
    - Whole amounts drop the decimal part; fractional amounts keep two places
"""

from datetime import date
from decimal import Decimal

from trustlend.core.repository_protocols import ArrangementLike

AUTO_CLOSE_MESSAGE = "Fully settled — arrangement closed automatically."
MANUAL_CLOSE_MESSAGE = "Arrangement closed. All settled."
ACCEPTED_MESSAGE = "Joined the arrangement — both parties are now active"
DEFAULT_SNOOZE_NOTE = "Snoozed"

_TONE_OPENERS = {
    "gentle": "Just a friendly nudge",
    "neutral": "This is a reminder",
    "firm": "Please give this your attention",
}


def _group_indian(digits: str) -> str:
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    pairs = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ",".join(pairs) + "," + tail


def format_amount(amount: Decimal | int | float, currency: str = "INR") -> str:
    value = Decimal(str(amount))
    sign = "-" if value < 0 else ""
    value = abs(value)
    if value == value.to_integral_value():
        whole, frac = str(int(value)), ""
    else:
        whole, frac = f"{value:.2f}".split(".")
        frac = "." + frac
    if currency == "INR":
        return f"{sign}₹{_group_indian(whole)}{frac}"
    return f"{sign}{currency} {int(whole):,}{frac}"


# ─── Activity messages ───────────────────────────────────────────

def arrangement_created_message(title: str, borrower_email: str) -> str:
    return f'"{title}" created — invitation sent to {borrower_email}'


def payment_recorded_message(amount: Decimal, currency: str, auto_confirmed: bool) -> str:
    if auto_confirmed:
        return f"{format_amount(amount, currency)} received and confirmed by the lender"
    return f"{format_amount(amount, currency)} recorded — awaiting confirmation"


def payment_confirmed_message(amount: Decimal, currency: str) -> str:
    return f"{format_amount(amount, currency)} confirmed"


def payment_rejected_message(amount: Decimal, currency: str) -> str:
    return f"{format_amount(amount, currency)} was not confirmed by the lender"


def proposal_created_message(proposal_type: str, new_expected_by: date | None) -> str:
    if new_expected_by:
        return f"Proposed a new expected date: {new_expected_by.isoformat()}"
    return f"Proposal ({proposal_type}) sent for review"


def proposal_responded_message(proposal_type: str, status: str) -> str:
    return f"Proposal ({proposal_type}) {status}"


def reminder_scheduled_message(schedule: str) -> str:
    return f"{schedule.capitalize()} reminders turned on"


def reminder_snoozed_message(until: date) -> str:
    return f"Reminders snoozed until {until.isoformat()}"


def reminder_sent_message(schedule: str | None = None) -> str:
    """Manual sends pass no schedule."""
    if schedule:
        return f"Scheduled {schedule} reminder sent"
    return "Sent a gentle reminder"


# ─── Notification texts ──────────────────────────────────────────

def invitation_email(arrangement: ArrangementLike, lender_name: str) -> tuple[str, str]:
    subject = f"{lender_name} invited you to an arrangement"
    body = (
        f'{lender_name} set up "{arrangement.title}" for '
        f"{format_amount(arrangement.total_amount, arrangement.currency)}. "
        "Open the app to review and accept it."
    )
    return subject, body


def reminder_email(
    arrangement: ArrangementLike, remaining: Decimal, tone: str = "gentle",
    custom_message: str | None = None,
) -> tuple[str, str]:
    subject = f'Reminder: "{arrangement.title}"'
    if custom_message:
        return subject, custom_message
    opener = _TONE_OPENERS.get(tone, _TONE_OPENERS["gentle"])
    body = (
        f'{opener} about "{arrangement.title}". '
        f"{format_amount(remaining, arrangement.currency)} is still open"
    )
    if arrangement.expected_by:
        body += f", expected by {arrangement.expected_by.isoformat()}"
    return subject, body + "."


def payment_update_email(
    arrangement: ArrangementLike, amount: Decimal, outcome: str,
) -> tuple[str, str]:
    subject = f'Payment {outcome}: "{arrangement.title}"'
    body = (
        f"Your payment of {format_amount(amount, arrangement.currency)} "
        f'on "{arrangement.title}" was {outcome}.'
    )
    return subject, body


def payment_awaiting_email(arrangement: ArrangementLike, amount: Decimal) -> tuple[str, str]:
    subject = f'Payment to confirm: "{arrangement.title}"'
    body = (
        f"A payment of {format_amount(amount, arrangement.currency)} was recorded "
        f'on "{arrangement.title}". Please confirm it once you have received it.'
    )
    return subject, body


def verification_email(code: str, purpose: str, ttl_minutes: int) -> tuple[str, str]:
    subject = "Your verification code"
    body = (
        f"Your {purpose.replace('_', ' ')} code is {code}. "
        f"It expires in {ttl_minutes} minutes and can be used once."
    )
    return subject, body
