"""
Field-level validation for the registration form.

Errors are keyed by the form field name the landing page uses, so the page
can render each message under its input.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, Optional, Union

from config import WHY_MIN_LENGTH
from schemas import WEEKLY_AVAILABILITY, WORKING_HOURS, RegistrationRequest

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^[0-9]{10}$")
MIN_AGE = 14
MAX_AGE = 100


class RegistrationError(Exception):
    def __init__(self, errors: Dict[str, str]):
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))
        self.errors = errors


def digits_only(value: Optional[str]) -> str:
    return re.sub(r"\D", "", value or "")


def normalize_email(value: Optional[str]) -> str:
    return (value or "").strip().lower()


def parse_age(value: Union[int, str, None]) -> Optional[int]:
    """Blank means not given. Raises ValueError for anything but a whole number in range."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(value)
    text = str(value).strip()
    if not text:
        return None
    age = int(text)
    if not MIN_AGE <= age <= MAX_AGE:
        raise ValueError(age)
    return age


def validate_registration(
    req: RegistrationRequest,
    known_references: Optional[Iterable[str]] = None,
    min_why_length: int = WHY_MIN_LENGTH,
) -> Dict[str, str]:
    """Return {fieldName: message}; empty when the form may be submitted."""
    errors: Dict[str, str] = {}

    if not req.full_name.strip():
        errors["fullName"] = "Full name is required"

    if not req.email.strip():
        errors["email"] = "Email is required"
    elif not EMAIL_RE.match(req.email.strip()):
        errors["email"] = "Please enter a valid email address"

    if not req.phone.strip():
        errors["phone"] = "Phone number is required"
    elif not PHONE_RE.match(digits_only(req.phone)):
        errors["phone"] = "Please enter a valid 10-digit phone number"

    if not req.city.strip():
        errors["city"] = "City is required"

    if not req.working_hours:
        errors["workingHours"] = "Preferred working hours is required"
    elif req.working_hours not in WORKING_HOURS:
        errors["workingHours"] = "Please pick one of: " + ", ".join(WORKING_HOURS)

    if not req.weekly_availability:
        errors["weeklyAvailability"] = "Weekly availability is required"
    elif req.weekly_availability not in WEEKLY_AVAILABILITY:
        errors["weeklyAvailability"] = "Please pick one of: " + ", ".join(WEEKLY_AVAILABILITY)

    why = req.why_this_role.strip()
    if not why:
        errors["whyThisRole"] = "Please tell us why you want this role"
    elif len(why) < min_why_length:
        errors["whyThisRole"] = (
            f"Please provide at least {min_why_length} characters explaining why you want this role"
        )

    try:
        parse_age(req.age)
    except ValueError:
        errors["age"] = f"Please enter an age between {MIN_AGE} and {MAX_AGE}"

    if req.reference and known_references is not None and req.reference not in set(known_references):
        errors["reference"] = "Please select a valid reference"

    return errors
