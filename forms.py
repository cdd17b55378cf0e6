"""
Client-side form schemas.

Every form is checked here before anything is sent to the backend. Errors
are reported one message per field, keyed by the camelCase field names the
forms use on the wire.
"""

import re
from typing import Any, Dict, Optional, Type, TypeVar

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, ValidationError, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from errors import FormValidationError

NAME_RE = re.compile(r"^[a-zA-Z\s]*$")
STRONG_PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")
OTP_RE = re.compile(r"^\d{6}$")
PRODUCT_CATEGORIES = ("MAN", "WOMAN", "KID")


def _required(value: Optional[str], message: str) -> str:
    if value is None or not value.strip():
        raise ValueError(message)
    return value


def _check_email(value: Optional[str]) -> str:
    value = _required(value, "Email is required").strip()
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise ValueError("Invalid email format")
    return value


def _check_name(value: Optional[str], label: str) -> str:
    value = _required(value, f"{label} is required")
    if not NAME_RE.match(value):
        raise ValueError(f"{label} can only contain letters")
    if len(value) < 2:
        raise ValueError(f"{label} must be at least 2 characters")
    return value


def _check_password(value: Optional[str], strong: bool = True, required: str = "Password is required") -> str:
    value = _required(value, required)
    if len(value) < 6:
        raise ValueError("Password must be at least 6 characters")
    if strong and not STRONG_PASSWORD_RE.match(value):
        raise ValueError("Password must contain uppercase, lowercase and number")
    return value


class Form(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, validate_default=True)

    def payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class LoginForm(Form):
    email: str = ""
    password: str = ""

    @field_validator("email")
    @classmethod
    def _email(cls, v):
        return _check_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v):
        return _check_password(v, strong=False)


class RegisterForm(Form):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    password: str = ""

    @field_validator("first_name")
    @classmethod
    def _first_name(cls, v):
        return _check_name(v, "First name")

    @field_validator("last_name")
    @classmethod
    def _last_name(cls, v):
        return _check_name(v, "Last name")

    @field_validator("email")
    @classmethod
    def _email(cls, v):
        return _check_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v):
        return _check_password(v)


class VerifyEmailForm(Form):
    otp: str = ""
    email: str = ""

    @field_validator("otp")
    @classmethod
    def _otp(cls, v):
        v = _required(v, "OTP is required")
        if not OTP_RE.match(v):
            raise ValueError("OTP must be 6 digits")
        return v

    @field_validator("email")
    @classmethod
    def _email(cls, v):
        return _check_email(v)


class ForgotPasswordForm(Form):
    email: str = ""

    @field_validator("email")
    @classmethod
    def _email(cls, v):
        return _check_email(v)


class ResetPasswordForm(Form):
    password: str = ""
    confirm_password: str = ""

    @field_validator("password")
    @classmethod
    def _password(cls, v):
        return _check_password(v)

    @field_validator("confirm_password")
    @classmethod
    def _confirm(cls, v, info: ValidationInfo):
        v = _required(v, "Please confirm your password")
        if v != info.data.get("password"):
            raise ValueError("Passwords must match")
        return v


class ProfileForm(Form):
    first_name: str = ""
    last_name: str = ""
    email: str = ""

    @field_validator("first_name")
    @classmethod
    def _first_name(cls, v):
        return _check_name(v, "First name")

    @field_validator("last_name")
    @classmethod
    def _last_name(cls, v):
        return _check_name(v, "Last name")

    @field_validator("email")
    @classmethod
    def _email(cls, v):
        return _check_email(v)


class ChangePasswordForm(Form):
    current_password: str = ""
    new_password: str = ""
    confirm_password: str = ""

    @field_validator("current_password")
    @classmethod
    def _current(cls, v):
        return _check_password(v, strong=False, required="Current password is required")

    @field_validator("new_password")
    @classmethod
    def _new(cls, v, info: ValidationInfo):
        v = _check_password(v, required="New password is required")
        if v == info.data.get("current_password"):
            raise ValueError("New password must be different")
        return v

    @field_validator("confirm_password")
    @classmethod
    def _confirm(cls, v, info: ValidationInfo):
        v = _required(v, "Please confirm your password")
        if v != info.data.get("new_password"):
            raise ValueError("Passwords must match")
        return v


class ProductForm(Form):
    name: str = ""
    description: str = ""
    price: float = 0
    category: str = ""
    stock: int = 0
    image_url: str = ""

    @field_validator("name")
    @classmethod
    def _name(cls, v):
        v = _required(v, "Product name is required")
        if len(v.strip()) < 2:
            raise ValueError("Product name must be at least 2 characters")
        return v

    @field_validator("description")
    @classmethod
    def _description(cls, v):
        return _required(v, "Description is required")

    @field_validator("price")
    @classmethod
    def _price(cls, v):
        if v < 0:
            raise ValueError("Price must be a positive number")
        return v

    @field_validator("category")
    @classmethod
    def _category(cls, v):
        v = _required(v, "Category is required")
        if v not in PRODUCT_CATEGORIES:
            raise ValueError(f"Category must be one of {', '.join(PRODUCT_CATEGORIES)}")
        return v

    @field_validator("stock")
    @classmethod
    def _stock(cls, v):
        if v < 0:
            raise ValueError("Stock cannot be negative")
        return v

    @field_validator("image_url")
    @classmethod
    def _image_url(cls, v):
        return _required(v, "Image URL is required")


F = TypeVar("F", bound=Form)


def _field_messages(exc: ValidationError) -> Dict[str, str]:
    errors: Dict[str, str] = {}
    for err in exc.errors():
        field = str(err["loc"][0]) if err["loc"] else "form"
        if err["type"] == "value_error":
            message = str(err["ctx"]["error"])
        else:
            message = err["msg"]
        errors.setdefault(field, message)
    return errors


def validate_form(form: Type[F], data: Dict[str, Any]) -> F:
    try:
        return form.model_validate(data)
    except ValidationError as e:
        raise FormValidationError(_field_messages(e)) from e


def field_error(form: Type[Form], field: str, value: Any) -> Optional[str]:
    """Message for a single field as the user types, None when it is valid."""
    try:
        form.model_validate({field: value})
    except ValidationError as e:
        return _field_messages(e).get(field)
    return None
