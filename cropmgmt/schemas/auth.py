from typing import List, Optional
from pydantic import BaseModel
from cropmgmt.schemas.base import BaseSchema


class AuthenticationRequest(BaseSchema):
    # Older clients send the login identifier as "email"
    identifier: Optional[str] = None
    email: Optional[str] = None
    password: str
    remember_me: bool = False

    @property
    def effective_identifier(self) -> Optional[str]:
        if self.identifier and self.identifier.strip():
            return self.identifier.strip()
        if self.email and self.email.strip():
            return self.email.strip()
        return None


class TokenRequest(BaseSchema):
    token: str


class ProfileInfo(BaseSchema):
    id: int
    full_name: Optional[str] = None
    phone: Optional[str] = None
    province_id: Optional[int] = None
    ward_id: Optional[int] = None


class AuthenticationResponse(BaseSchema):
    token: Optional[str] = None
    token_type: Optional[str] = None
    expires_in: Optional[int] = None
    user_id: int
    email: str
    username: str
    roles: List[str]
    role: str
    profile: ProfileInfo
    redirect_to: str


class IntrospectResponse(BaseSchema):
    valid: bool


# OAuth2 password-flow response; OAuth2 clients expect snake_case keys
class Token(BaseModel):
    access_token: str
    token_type: str
