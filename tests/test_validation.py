import pytest

from links import call_link, whatsapp_link
from schemas import RegistrationRequest
from validation import parse_age, validate_registration

WHY = "I enjoy talking to students and helping them choose the right course for them."


def form(**overrides):
    data = {
        "fullName": "Kiran Reddy",
        "email": "kiran@example.com",
        "phone": "98765 43210",
        "city": "Warangal",
        "workingHours": "Evening",
        "weeklyAvailability": "20 hrs",
        "whyThisRole": WHY,
    }
    data.update(overrides)
    return RegistrationRequest(**data)


def test_valid_form_has_no_errors():
    assert validate_registration(form()) == {}


def test_empty_form_reports_every_required_field():
    errors = validate_registration(RegistrationRequest())
    assert set(errors) == {"fullName", "email", "phone", "city", "workingHours", "weeklyAvailability", "whyThisRole"}


@pytest.mark.parametrize("email", ["kiran", "kiran@example", "ki ran@example.com", "@example.com"])
def test_bad_email(email):
    assert validate_registration(form(email=email))["email"] == "Please enter a valid email address"


@pytest.mark.parametrize("phone", ["12345", "98765432101", "phone"])
def test_phone_needs_ten_digits(phone):
    assert "phone" in validate_registration(form(phone=phone))


def test_why_minimum_length():
    errors = validate_registration(form(whyThisRole="x" * 49))
    assert "at least 50 characters" in errors["whyThisRole"]
    assert validate_registration(form(whyThisRole="x" * 50)) == {}
    assert "whyThisRole" in validate_registration(form(whyThisRole=" " * 60))


def test_option_lists_are_enforced():
    errors = validate_registration(form(workingHours="Night", weeklyAvailability="5 hrs"))
    assert set(errors) == {"workingHours", "weeklyAvailability"}


def test_reference_must_exist_when_list_given():
    assert validate_registration(form(reference="Ravi"), known_references=["Ravi", "Meena"]) == {}
    assert "reference" in validate_registration(form(reference="Nobody"), known_references=["Ravi"])


@pytest.mark.parametrize("age", [None, "", "  ", 25, "25", " 40 "])
def test_age_is_optional(age):
    assert validate_registration(form(age=age)) == {}


@pytest.mark.parametrize("age", [10, 101, "abc", "25.5", "-3"])
def test_age_outside_range_or_not_a_number(age):
    assert validate_registration(form(age=age))["age"] == "Please enter an age between 14 and 100"


def test_parse_age():
    assert parse_age("") is None
    assert parse_age(" 30 ") == 30
    with pytest.raises(ValueError):
        parse_age(True)


def test_call_and_whatsapp_links():
    assert call_link("98765-43210") == "tel:+919876543210"
    assert call_link("+91 98765 43210") == "tel:+919876543210"
    assert call_link("") is None

    link = whatsapp_link("9876543210", "Kiran")
    assert link.startswith("https://wa.me/919876543210?text=Hi%20Kiran%2C%20thank%20you")
    assert "from%20" not in link
    assert "this%20is%20Meena" in whatsapp_link("9876543210", "Kiran", sender="Meena")
