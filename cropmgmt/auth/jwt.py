from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm

from cropmgmt.auth.dependencies import get_auth_service, get_current_identity, is_admin
from cropmgmt.auth.security import Identity
from cropmgmt.schemas.auth import (
    AuthenticationRequest,
    AuthenticationResponse,
    IntrospectResponse,
    Token,
    TokenRequest,
)
from cropmgmt.services.authentication import AuthenticationService

router = APIRouter(tags=["auth"])

# LOGIN: identifier (username or email) + password, returns token + session payload
@router.post("/login", response_model=AuthenticationResponse)
def login(
    request: AuthenticationRequest,
    auth_service: AuthenticationService = Depends(get_auth_service),
):
    return auth_service.authenticate(request.effective_identifier, request.password)

# TOKEN-ONLY: OAuth2 compatibility (for Swagger/OAuth2PasswordBearer)
@router.post("/token", response_model=Token)
def login_token_only(
    form_data: OAuth2PasswordRequestForm = Depends(),
    auth_service: AuthenticationService = Depends(get_auth_service),
):
    session = auth_service.authenticate(form_data.username, form_data.password)
    return {"access_token": session.token, "token_type": "bearer"}

@router.post("/introspect", response_model=IntrospectResponse)
def introspect(
    request: TokenRequest,
    auth_service: AuthenticationService = Depends(get_auth_service),
):
    return auth_service.introspect(request.token)

@router.post("/logout")
def logout(
    request: TokenRequest,
    auth_service: AuthenticationService = Depends(get_auth_service),
):
    auth_service.logout(request.token)
    return {"ok": True}

@router.post("/refresh", response_model=AuthenticationResponse)
def refresh(
    request: TokenRequest,
    auth_service: AuthenticationService = Depends(get_auth_service),
):
    return auth_service.refresh_token(request.token)

@router.get("/me", response_model=AuthenticationResponse)
def read_current_user(
    identity: Identity = Depends(get_current_identity),
    auth_service: AuthenticationService = Depends(get_auth_service),
):
    return auth_service.get_current_user(identity)

# Housekeeping: drop denylist rows that can no longer match a usable token
@router.delete("/invalidated-tokens")
def purge_invalidated_tokens(
    identity: Identity = Depends(is_admin),
    auth_service: AuthenticationService = Depends(get_auth_service),
):
    return {"removed": auth_service.purge_expired_tokens()}
