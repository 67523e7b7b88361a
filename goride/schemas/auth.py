"""Authentication schemas."""

from pydantic import BaseModel, EmailStr, Field, model_validator


class LoginRequest(BaseModel):
    """Email/password sign-in request."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class SignUpRequest(BaseModel):
    """Account creation request."""

    email: EmailStr
    password: str = Field(..., min_length=1)
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self) -> "SignUpRequest":
        """Reject mismatched password confirmation."""
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match.")
        return self


class SessionResponse(BaseModel):
    """Signed-in session returned to the client."""

    uid: str
    email: str | None = None
    id_token: str | None = None
    token_type: str = "bearer"


class StartRouteResponse(BaseModel):
    """Where the client should land after the splash screen."""

    route: str
    session: SessionResponse | None = None
