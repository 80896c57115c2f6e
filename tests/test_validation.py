"""Tests pour les validateurs de champs de formulaire."""

from __future__ import annotations

import math

import pytest

from workoutsync.domain.validation import (
    validate_activity_preferences,
    validate_coordinates,
    validate_email,
    validate_name,
    validate_pace_range,
    validate_password,
    validate_phone_number,
    validate_registration,
)


@pytest.mark.parametrize(
    "phone",
    ["+1234567890", "+19195551234", "+123456789012345", "  +4412345678901  "],
)
def test_canonical_phone_numbers_are_valid(phone):
    """Teste qu'un `+` suivi de 10 à 15 chiffres est accepté."""
    assert validate_phone_number(phone).valid is True


@pytest.mark.parametrize(
    ("phone", "message"),
    [
        ("", "Phone number is required"),
        (None, "Phone number is required"),
        ("19195551234", "Phone number must include country code (e.g., +1)"),
        ("+1 919 555 1234", "Phone number can only contain digits after the country code"),
        ("+1919555123a", "Phone number can only contain digits after the country code"),
        ("+123456789", "Phone number must be 10-15 digits long"),
        ("+1234567890123456", "Phone number must be 10-15 digits long"),
    ],
)
def test_invalid_phone_numbers_carry_a_message(phone, message):
    """Teste que chaque violation du format canonique renvoie son message."""
    result = validate_phone_number(phone)
    assert result.valid is False
    assert result.message == message


def test_phone_rejects_non_ascii_digits():
    """Teste que des chiffres Unicode non ASCII ne passent pas pour des chiffres."""
    assert validate_phone_number("+١٢٣٤٥٦٧٨٩٠").valid is False


def test_empty_email_has_no_opinion():
    """Teste qu'un email vide ou absent ne produit aucun avis."""
    assert validate_email("") is None
    assert validate_email(None) is None
    assert validate_email("   ") is None


def test_email_format_and_length():
    """Teste le format `local@domaine.tld` et la longueur maximale."""
    assert validate_email("jane@example.com").valid is True
    assert validate_email("jane@example").message == "Please enter a valid email address"
    too_long = "a" * 250 + "@example.com"
    assert validate_email(too_long).message == "Email address is too long"


def test_password_rules():
    """Teste les règles de mot de passe (longueur, lettre, chiffre)."""
    assert validate_password("abc").valid is False
    assert validate_password("abcd1234").valid is True
    assert validate_password("12345678").message == "Password must contain at least one letter"
    assert validate_password("abcdefgh").message == "Password must contain at least one number"
    assert validate_password("a1" * 65).message == "Password is too long"
    assert validate_password("").message == "Password is required"


def test_name_rules():
    """Teste les règles de nom affiché."""
    assert validate_name("Jane O'Neil-Smith").valid is True
    assert validate_name(" J ").message == "Name must be at least 2 characters long"
    assert validate_name("x" * 51).message == "Name must be less than 50 characters"
    assert validate_name("R2D2").message == (
        "Name can only contain letters, spaces, hyphens, and apostrophes"
    )


def test_pace_range():
    """Teste les bornes d'allure et l'ordre min < max."""
    assert validate_pace_range().valid is True
    assert validate_pace_range(7.5, 9).valid is True
    assert validate_pace_range(pace_max=12).valid is True
    assert validate_pace_range(9, 9).message == "Minimum pace must be less than maximum pace"
    assert validate_pace_range(3, 9).message == "Pace must be between 4 and 20 minutes per mile"
    assert validate_pace_range(-1, None).message == "Pace must be a positive number"
    assert validate_pace_range(math.nan, None).valid is False
    assert validate_pace_range(True, None).valid is False
    assert validate_pace_range("7", None).valid is False


def test_activity_preferences():
    """Teste l'ensemble fermé des activités et la liste vide."""
    assert validate_activity_preferences([]).valid is True
    assert validate_activity_preferences(["run", "bike"]).valid is True
    assert validate_activity_preferences("run").message == "Activity preferences must be an array"
    assert validate_activity_preferences(["swim"]).message == (
        "Activity preferences can only include: run, bike, walk"
    )


def test_coordinates():
    """Teste les bornes WGS84 et le rejet des valeurs non numériques."""
    assert validate_coordinates(40.0, -75.0).valid is True
    assert validate_coordinates(-90, 180).valid is True
    assert validate_coordinates(90.1, 0).message == "Latitude must be between -90 and 90"
    assert validate_coordinates(0, -180.5).message == "Longitude must be between -180 and 180"
    assert validate_coordinates("40", 0).valid is False
    assert validate_coordinates(math.inf, 0).valid is False


def test_registration_reports_only_invalid_fields():
    """Teste que la validation d'inscription ne liste que les champs en erreur."""
    assert validate_registration("+19195551234", "abcd1234", "Jane") == {}
    errors = validate_registration("919", "short", "Jane", email="nope")
    assert set(errors) == {"phone_number", "password", "email"}
