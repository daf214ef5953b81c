"""Call / WhatsApp deep links shown next to each applicant row."""

from __future__ import annotations

from typing import Optional
from urllib.parse import quote

from config import COUNTRY_CODE, ORG_NAME
from validation import digits_only


def _national(phone: Optional[str], country_code: str = COUNTRY_CODE) -> str:
    digits = digits_only(phone)
    if len(digits) > 10 and digits.startswith(country_code):
        digits = digits[len(country_code):]
    return digits


def call_link(phone: Optional[str], country_code: str = COUNTRY_CODE) -> Optional[str]:
    digits = _national(phone, country_code)
    return f"tel:+{country_code}{digits}" if digits else None


def whatsapp_message(name: str, sender: Optional[str] = None) -> str:
    if sender:
        return (
            f"Hi {name}, this is {sender} from {ORG_NAME}. Thank you for your application. "
            "Let's proceed with the next steps. Please let me know when you're available for a quick discussion."
        )
    return f"Hi {name}, thank you for applying as SRM at {ORG_NAME}. Our team will be in touch shortly."


def whatsapp_link(
    phone: Optional[str],
    name: str,
    sender: Optional[str] = None,
    country_code: str = COUNTRY_CODE,
) -> Optional[str]:
    digits = _national(phone, country_code)
    if not digits:
        return None
    return f"https://wa.me/{country_code}{digits}?text={quote(whatsapp_message(name, sender), safe='')}"
