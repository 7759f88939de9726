from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from cropmgmt.auth.security import Identity
from cropmgmt.config import settings
from cropmgmt.db.session import get_db
from cropmgmt.exceptions import AppException, ErrorCode
from cropmgmt.models.enums import RoleCode
from cropmgmt.services.authentication import AuthenticationService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/token", auto_error=False)


def get_auth_service(db: Session = Depends(get_db)) -> AuthenticationService:
    return AuthenticationService(db)


def get_current_identity(
    token: Optional[str] = Depends(oauth2_scheme),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> Identity:
    """Verify the bearer token once per request and expose the caller."""
    if not token:
        raise AppException(ErrorCode.UNAUTHENTICATED)
    claims = auth_service.verify_token(token, is_refresh=False)
    return Identity.from_claims(claims)


def is_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    if not identity.has_role(RoleCode.ADMIN.value):
        raise AppException(ErrorCode.FORBIDDEN, "Admin access required")
    return identity


def is_farmer(identity: Identity = Depends(get_current_identity)) -> Identity:
    if not identity.has_role(RoleCode.FARMER.value):
        raise AppException(ErrorCode.FORBIDDEN, "Farmer access required")
    return identity
