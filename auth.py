import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from pydantic import BaseModel, Field

from client import ApiClient
from errors import ApiError, FormValidationError
from forms import (
    ForgotPasswordForm,
    LoginForm,
    RegisterForm,
    ResetPasswordForm,
    VerifyEmailForm,
    validate_form,
)
from schemas import User
from session import SessionContext

logger = logging.getLogger(__name__)


class AuthState(BaseModel):
    is_loading: bool = False
    alert: Optional[str] = None
    alert_type: str = "error"
    field_errors: Dict[str, str] = Field(default_factory=dict)
    redirect: Optional[str] = None


class AuthService:
    """
    Register / login / verify / reset flows.

    Every call validates its form first, so an invalid form never reaches the
    network. Failures land in ``state`` and the call returns False.
    """

    def __init__(self, client: ApiClient, session: SessionContext):
        self.client = client
        self.session = session
        self.state = AuthState()

    async def _submit(self, form, data: Dict[str, Any], send: Callable[[Any], Awaitable[Optional[str]]]) -> bool:
        self.state = AuthState()
        try:
            validated = validate_form(form, data)
        except FormValidationError as e:
            self.state.field_errors = e.errors
            self.state.alert = e.first()
            return False
        self.state.is_loading = True
        try:
            self.state.redirect = await send(validated)
            return True
        except ApiError as e:
            logger.warning("%s rejected: %s", form.__name__, e.message)
            self.state.alert = e.message
            self.state.field_errors = e.field_errors
            return False
        finally:
            self.state.is_loading = False

    async def register(self, data: Dict[str, Any]) -> bool:
        async def send(form: RegisterForm) -> str:
            await self.client.post("/auth/register", json=form.payload(), fallback="Registration failed")
            self.session.verification_email = form.email
            return "/auth/verify-email"

        return await self._submit(RegisterForm, data, send)

    async def login(self, data: Dict[str, Any]) -> bool:
        async def send(form: LoginForm) -> str:
            body = await self.client.post("/auth/login", json=form.payload(), fallback="Login failed")
            doc = (body.get("data") or {}).get("user") if isinstance(body, dict) else None
            token = body.get("token") if isinstance(body, dict) else None
            if not doc or not token:
                raise ApiError(502, "Invalid response structure")
            user = User.model_validate(doc)
            self.session.set(token, user)
            if not user.is_email_verified:
                self.session.verification_email = form.email
            return "/"

        return await self._submit(LoginForm, data, send)

    async def verify_email(self, otp: str, email: Optional[str] = None) -> bool:
        async def send(form: VerifyEmailForm) -> str:
            await self.client.post("/auth/verify-email", json=form.payload(), fallback="Verification failed")
            self.session.verification_email = None
            return "/auth/login"

        email = email or self.session.verification_email or ""
        return await self._submit(VerifyEmailForm, {"otp": otp, "email": email}, send)

    async def resend_otp(self, email: Optional[str] = None) -> bool:
        async def send(form: ForgotPasswordForm) -> None:
            await self.client.post("/auth/resend-otp", json={"email": form.email}, fallback="Failed to resend OTP")

        email = email or self.session.verification_email or ""
        ok = await self._submit(ForgotPasswordForm, {"email": email}, send)
        if ok:
            self.state.alert = "OTP has been sent to your email"
            self.state.alert_type = "success"
        return ok

    async def forgot_password(self, data: Dict[str, Any]) -> bool:
        async def send(form: ForgotPasswordForm) -> None:
            await self.client.post("/auth/forgot-password", json=form.payload(), fallback="Request failed")

        return await self._submit(ForgotPasswordForm, data, send)

    async def reset_password(self, token: str, data: Dict[str, Any]) -> bool:
        async def send(form: ResetPasswordForm) -> str:
            await self.client.post(
                "/auth/reset-password",
                json={"token": token, "password": form.password},
                fallback="Password reset failed",
            )
            return "/auth/login"

        return await self._submit(ResetPasswordForm, data, send)

    def logout(self) -> None:
        self.session.clear()
        self.state = AuthState(redirect="/auth/login")
