from __future__ import annotations

import pytest

from accounts.domain.accounts import field_problems, normalize_email, password_problem


@pytest.mark.parametrize("password", ["Test123!@#", "aB3$aaaa"])
def test_strong_passwords_pass(password):
    assert password_problem(password) is None


@pytest.mark.parametrize("password", ["Sh0rt!", "alllowercase1!", "NoDigits!!", "NoSpecial123", "A1!a" * 40])
def test_weak_passwords_are_explained(password):
    assert password_problem(password)


def test_normalize_email_trims_and_lowercases():
    assert normalize_email("  Mixed.Case@Example.ORG ") == "mixed.case@example.org"
    assert normalize_email(None) == ""


def test_field_problems_on_create_requires_core_fields():
    fields = {problem["field"] for problem in field_problems({})}

    assert fields == {"email", "password", "first_name", "last_name"}


def test_field_problems_partial_only_checks_given_keys():
    assert field_problems({"first_name": "Grace"}, partial=True) == []
    assert field_problems({"phone": "12"}, partial=True) == [
        {"field": "phone", "message": "phone must be 10-15 digits"}
    ]
    assert field_problems({"role": "root"}, partial=True)[0]["field"] == "role"
