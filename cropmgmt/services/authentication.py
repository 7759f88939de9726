"""
Login, token verification, logout and refresh.

Tokens are HS512-signed JWTs. Every token carries a ``jti``; logout and
refresh put that id on the denylist (``invalidated_tokens``), so a token is
usable until it expires or is denylisted, whichever comes first.

Two expiry windows exist. Normal verification honours the ``exp`` claim.
Refresh verification (used by ``logout`` and ``refresh_token``) accepts a
token until ``iat + JWT_REFRESHABLE_DURATION``, which lets a client trade in a
recently expired access token for a new one.
"""

import logging
import uuid
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from jose import JWTError
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cropmgmt.auth.security import (
    Identity,
    create_access_token,
    decode_token,
    from_timestamp,
    utc_now,
    verify_password,
)
from cropmgmt.config import Settings, settings
from cropmgmt.exceptions import AppException, ErrorCode
from cropmgmt.models.enums import RoleCode, UserStatus
from cropmgmt.models.user import InvalidatedToken, User
from cropmgmt.schemas.auth import AuthenticationResponse, IntrospectResponse, ProfileInfo

logger = logging.getLogger(__name__)

TOKEN_TYPE = "Bearer"


def ordered_role_codes(user: User) -> List[str]:
    """Role codes by precedence: ADMIN, FARMER, BUYER, then any other code alphabetically."""
    return sorted((role.code for role in user.roles), key=lambda code: (RoleCode.rank(code), code))


def determine_primary_role(user: User) -> Optional[str]:
    codes = ordered_role_codes(user)
    return codes[0] if codes else None


def determine_redirect_path(role: Optional[str]) -> str:
    if role and role.upper() == RoleCode.ADMIN.value:
        return "/admin"
    if role and role.upper() == RoleCode.FARMER.value:
        return "/farmer"
    return "/"


def build_scope(user: User) -> str:
    return " ".join(f"ROLE_{code}" for code in ordered_role_codes(user))


def _token_prefix(token: Optional[str]) -> str:
    return (token or "")[:20] + "..."


class AuthenticationService:
    def __init__(self, db: Session, config: Settings = settings):
        self.db = db
        self.config = config

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def find_user_by_identifier(self, identifier: str) -> Optional[User]:
        return (
            self.db.query(User)
            .filter(or_(User.username == identifier, func.lower(User.email) == identifier.lower()))
            .first()
        )

    def find_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(func.lower(User.email) == email.lower()).first()

    def authenticate(self, identifier: Optional[str], password: str) -> AuthenticationResponse:
        if identifier is None or not identifier.strip():
            logger.warning("Authentication failed - no identifier provided")
            raise AppException(ErrorCode.IDENTIFIER_REQUIRED)
        identifier = identifier.strip()

        logger.info("Authentication attempt for identifier: %s", identifier)

        user = self.find_user_by_identifier(identifier)
        if user is None:
            logger.warning("Authentication failed - identifier not found: %s", identifier)
            raise AppException(ErrorCode.INVALID_CREDENTIALS)

        if not verify_password(password, user.hashed_password):
            logger.warning("Authentication failed - invalid password for identifier: %s", identifier)
            raise AppException(ErrorCode.INVALID_CREDENTIALS)

        if user.status != UserStatus.ACTIVE:
            logger.warning("Authentication failed - user not active: %s (%s)", identifier, user.status)
            raise AppException(ErrorCode.USER_LOCKED)

        if not user.roles:
            logger.warning("Authentication failed - no roles assigned to user: %s", identifier)
            raise AppException(ErrorCode.ROLE_MISSING)

        primary_role = determine_primary_role(user)
        token = self._generate_token(user, primary_role)
        logger.info("Authentication successful for identifier: %s - role: %s", identifier, primary_role)

        return self._build_response(user, primary_role, token)

    # ------------------------------------------------------------------
    # Token lifecycle
    # ------------------------------------------------------------------

    def verify_token(self, token: str, is_refresh: bool = False) -> Dict[str, Any]:
        """Return the claims of a valid token or raise UNAUTHENTICATED."""
        try:
            claims = decode_token(token, self.config)
        except JWTError as exc:
            logger.warning("Token verification failed: %s", exc)
            raise AppException(ErrorCode.UNAUTHENTICATED)

        if claims.get("iss") != self.config.JWT_ISSUER or not claims.get("jti"):
            logger.warning("Token verification failed - unexpected issuer or missing jti")
            raise AppException(ErrorCode.UNAUTHENTICATED)

        expiry_time = self._effective_expiry(claims, is_refresh)
        if expiry_time is None or expiry_time <= utc_now():
            logger.warning("Token verification failed - expired (refresh=%s)", is_refresh)
            raise AppException(ErrorCode.UNAUTHENTICATED)

        if self.db.get(InvalidatedToken, claims["jti"]) is not None:
            logger.warning("Token is invalidated - jti: %s", claims["jti"])
            raise AppException(ErrorCode.UNAUTHENTICATED)

        return claims

    def introspect(self, token: str) -> IntrospectResponse:
        logger.debug("Introspecting token: %s", _token_prefix(token))
        try:
            self.verify_token(token, is_refresh=False)
        except AppException as exc:
            logger.info("Token introspection failed: %s", exc.detail)
            return IntrospectResponse(valid=False)
        return IntrospectResponse(valid=True)

    def logout(self, token: str) -> None:
        logger.info("Logout attempt for token: %s", _token_prefix(token))
        try:
            claims = self.verify_token(token, is_refresh=True)
            self._invalidate(claims)
        except AppException:
            logger.info("Logout - token already expired or invalid")
            return
        logger.info("Token invalidated - jti: %s", claims["jti"])

    def refresh_token(self, token: str) -> AuthenticationResponse:
        logger.info("Token refresh attempt")
        claims = self.verify_token(token, is_refresh=True)
        self._invalidate(claims)

        email = claims.get("email")
        if email:
            user = self.find_user_by_email(email)
        else:
            user = self.db.get(User, int(claims["sub"]))

        if user is None or user.status != UserStatus.ACTIVE or not user.roles:
            logger.warning("Token refresh rejected for subject: %s", claims.get("sub"))
            raise AppException(ErrorCode.UNAUTHENTICATED)

        primary_role = determine_primary_role(user)
        new_token = self._generate_token(user, primary_role)
        logger.info("Token refreshed for user id: %s", user.id)
        return self._build_response(user, primary_role, new_token)

    def purge_expired_tokens(self) -> int:
        removed = (
            self.db.query(InvalidatedToken)
            .filter(InvalidatedToken.expiry_time < utc_now())
            .delete(synchronize_session=False)
        )
        self.db.commit()
        if removed:
            logger.info("Purged %d expired denylist entries", removed)
        return removed

    # ------------------------------------------------------------------
    # Current caller
    # ------------------------------------------------------------------

    def get_current_user(self, identity: Optional[Identity]) -> AuthenticationResponse:
        user_id = self.get_current_user_id(identity)
        user = self.db.get(User, user_id)
        if user is None:
            raise AppException(ErrorCode.USER_NOT_FOUND)
        primary_role = determine_primary_role(user)
        return self._build_response(user, primary_role)

    def get_current_user_id(self, identity: Optional[Identity]) -> int:
        if identity is None:
            raise AppException(ErrorCode.UNAUTHENTICATED)
        return identity.user_id

    def get_current_role(self, identity: Optional[Identity]) -> Optional[str]:
        if identity is None:
            raise AppException(ErrorCode.UNAUTHENTICATED)
        return identity.role

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _effective_expiry(self, claims: Dict[str, Any], is_refresh: bool) -> Optional[datetime]:
        if is_refresh:
            issued_at = claims.get("iat")
            if issued_at is None:
                return None
            return from_timestamp(issued_at) + timedelta(seconds=self.config.JWT_REFRESHABLE_DURATION)
        expires_at = claims.get("exp")
        if expires_at is None:
            return None
        return from_timestamp(expires_at)

    def _invalidate(self, claims: Dict[str, Any]) -> None:
        # Keep the row until neither window can accept the token again
        expiry_time = max(
            filter(None, (self._effective_expiry(claims, False), self._effective_expiry(claims, True)))
        )
        self.db.add(InvalidatedToken(id=claims["jti"], expiry_time=expiry_time))
        try:
            self.db.commit()
        except IntegrityError:
            # Another request denylisted the same jti first
            self.db.rollback()
            raise AppException(ErrorCode.UNAUTHENTICATED)
        self.purge_expired_tokens()

    def _generate_token(self, user: User, primary_role: str) -> str:
        logger.debug("Generating token for user: %s", user.email)
        issued_at = utc_now()
        claims = {
            "sub": str(user.id),
            "jti": str(uuid.uuid4()),
            "user_id": user.id,
            "username": user.username,
            "email": user.email,
            "role": primary_role,
            "scope": build_scope(user),
        }
        return create_access_token(
            claims,
            issued_at=issued_at,
            expires_at=issued_at + timedelta(seconds=self.config.JWT_VALID_DURATION),
            config=self.config,
        )

    def _build_response(
        self, user: User, primary_role: str, token: Optional[str] = None
    ) -> AuthenticationResponse:
        profile = ProfileInfo(
            id=user.id,
            full_name=user.full_name,
            phone=user.phone,
            province_id=user.province_id,
            ward_id=user.ward_id,
        )
        return AuthenticationResponse(
            token=token,
            token_type=TOKEN_TYPE if token else None,
            expires_in=self.config.JWT_VALID_DURATION if token else None,
            user_id=user.id,
            email=user.email,
            username=user.username,
            roles=ordered_role_codes(user),
            role=primary_role,
            profile=profile,
            redirect_to=determine_redirect_path(primary_role),
        )
