from pydantic import BaseModel, ConfigDict, Field, model_validator

from kidpoints.types import Child, Role


class LoginRequest(BaseModel):
    model_config = ConfigDict(strict=True)

    username: str
    password: str


class CredentialRecord(BaseModel):
    """One entry of the credential blob."""

    model_config = ConfigDict(populate_by_name=True)

    username: str
    password: str
    role: Role
    child_view: Child | None = Field(default=None, alias="childView")

    @model_validator(mode="after")
    def _admin_sees_everything(self) -> "CredentialRecord":
        if self.role is Role.ADMIN:
            self.child_view = None
        return self


class Identity(BaseModel):
    """The authenticated caller, as held in a session record."""

    username: str
    role: Role
    child_view: Child | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


class SessionResponse(BaseModel):
    authenticated: bool
    username: str | None = None
    role: Role | None = None
    childView: Child | None = None

    @classmethod
    def for_identity(cls, identity: Identity | None) -> "SessionResponse":
        if identity is None:
            return cls(authenticated=False)
        return cls(
            authenticated=True,
            username=identity.username,
            role=identity.role,
            childView=identity.child_view,
        )


class MessageResponse(BaseModel):
    message: str
