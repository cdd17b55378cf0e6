import pytest

from errors import FormValidationError
from forms import (
    ChangePasswordForm,
    LoginForm,
    ProductForm,
    RegisterForm,
    ResetPasswordForm,
    VerifyEmailForm,
    field_error,
    validate_form,
)


def errors_of(form, data):
    with pytest.raises(FormValidationError) as exc:
        validate_form(form, data)
    return exc.value.errors


def test_login_rejects_malformed_email():
    errors = errors_of(LoginForm, {"email": "not-an-email", "password": "secret1"})
    assert errors == {"email": "Invalid email format"}


def test_login_requires_both_fields():
    errors = errors_of(LoginForm, {})
    assert errors == {"email": "Email is required", "password": "Password is required"}


def test_login_accepts_valid_credentials():
    form = validate_form(LoginForm, {"email": "jane@example.com", "password": "secret"})
    assert form.payload() == {"email": "jane@example.com", "password": "secret"}


def test_register_rules_and_camel_case_keys():
    errors = errors_of(
        RegisterForm,
        {"firstName": "J4ne", "lastName": "D", "email": "jane@example.com", "password": "password1"},
    )
    assert errors == {
        "firstName": "First name can only contain letters",
        "lastName": "Last name must be at least 2 characters",
        "password": "Password must contain uppercase, lowercase and number",
    }


def test_register_payload_uses_camel_case():
    form = validate_form(
        RegisterForm,
        {"firstName": "Jane", "lastName": "Doe", "email": "jane@example.com", "password": "Passw0rd"},
    )
    assert form.payload()["firstName"] == "Jane"


def test_otp_must_be_six_digits():
    errors = errors_of(VerifyEmailForm, {"otp": "12345", "email": "jane@example.com"})
    assert errors == {"otp": "OTP must be 6 digits"}


def test_reset_password_confirmation_must_match():
    errors = errors_of(ResetPasswordForm, {"password": "Passw0rd", "confirmPassword": "Passw0rd!"})
    assert errors == {"confirmPassword": "Passwords must match"}


def test_new_password_must_differ_from_current():
    errors = errors_of(
        ChangePasswordForm,
        {"currentPassword": "Passw0rd", "newPassword": "Passw0rd", "confirmPassword": "Passw0rd"},
    )
    assert errors["newPassword"] == "New password must be different"


def test_product_form_checks_category_and_numbers():
    errors = errors_of(
        ProductForm,
        {"name": "Coat", "description": "Warm", "price": -1, "category": "HATS", "stock": -2, "imageUrl": "x"},
    )
    assert errors == {
        "price": "Price must be a positive number",
        "category": "Category must be one of MAN, WOMAN, KID",
        "stock": "Stock cannot be negative",
    }


def test_single_field_validation():
    assert field_error(LoginForm, "email", "nope") == "Invalid email format"
    assert field_error(LoginForm, "email", "jane@example.com") is None
