import uuid
import warnings
from datetime import timedelta

import pytest
from jose import jwt

from cropmgmt.auth.security import Identity, create_access_token, utc_now
from cropmgmt.config import settings
from cropmgmt.exceptions import AppException, ErrorCode
from cropmgmt.models.enums import UserStatus
from cropmgmt.models.user import InvalidatedToken
from cropmgmt.services.authentication import AuthenticationService

from conftest import DEFAULT_PASSWORD


@pytest.fixture
def auth(db):
    return AuthenticationService(db, settings)


def issue_token(user, issued_at, lifetime=timedelta(hours=1), secret=None, jti=None):
    config = settings.model_copy(update={"JWT_SECRET": secret}) if secret else settings
    claims = {
        "sub": str(user.id),
        "jti": jti or str(uuid.uuid4()),
        "user_id": user.id,
        "username": user.username,
        "email": user.email,
        "role": "FARMER",
        "scope": "ROLE_FARMER",
    }
    return create_access_token(claims, issued_at=issued_at, expires_at=issued_at + lifetime, config=config)


def assert_error(excinfo, code):
    assert excinfo.value.error_code is code


# ----------------------------------------------------------------------
# authenticate
# ----------------------------------------------------------------------

def test_authenticate_by_username_returns_session(auth, farmer):
    session = auth.authenticate("farmer", DEFAULT_PASSWORD)

    assert session.token
    assert session.token_type == "Bearer"
    assert session.expires_in == settings.JWT_VALID_DURATION
    assert session.user_id == farmer.id
    assert session.username == "farmer"
    assert session.email == "farmer@example.com"
    assert session.roles == ["FARMER"]
    assert session.role == "FARMER"
    assert session.redirect_to == "/farmer"
    assert session.profile.full_name == "Nguyen Van Farmer"
    assert session.profile.phone == "0901234567"
    assert session.profile.province_id == 1
    assert session.profile.ward_id == 10


def test_authenticate_by_email_ignores_case(auth, farmer):
    session = auth.authenticate("  FARMER@Example.com ", DEFAULT_PASSWORD)
    assert session.user_id == farmer.id


def test_token_claims_match_user(auth, farmer):
    session = auth.authenticate("farmer", DEFAULT_PASSWORD)
    claims = jwt.get_unverified_claims(session.token)
    header = jwt.get_unverified_header(session.token)

    assert header["alg"] == "HS512"
    assert claims["sub"] == str(farmer.id)
    assert claims["user_id"] == farmer.id
    assert claims["username"] == "farmer"
    assert claims["email"] == "farmer@example.com"
    assert claims["role"] == "FARMER"
    assert claims["scope"] == "ROLE_FARMER"
    assert claims["iss"] == settings.JWT_ISSUER
    assert claims["exp"] - claims["iat"] == settings.JWT_VALID_DURATION
    uuid.UUID(claims["jti"])


def test_admin_takes_precedence_over_farmer(auth, make_user):
    make_user("boss", roles=("FARMER", "ADMIN"))
    session = auth.authenticate("boss", DEFAULT_PASSWORD)

    assert session.role == "ADMIN"
    assert session.roles == ["ADMIN", "FARMER"]
    assert session.redirect_to == "/admin"
    assert jwt.get_unverified_claims(session.token)["scope"] == "ROLE_ADMIN ROLE_FARMER"


def test_farmer_takes_precedence_over_buyer(auth, make_user):
    make_user("mixed", roles=("BUYER", "FARMER"))
    assert auth.authenticate("mixed", DEFAULT_PASSWORD).role == "FARMER"


def test_buyer_redirects_to_root(auth, make_user):
    make_user("trader", roles=("BUYER",))
    session = auth.authenticate("trader", DEFAULT_PASSWORD)
    assert session.role == "BUYER"
    assert session.redirect_to == "/"


def test_unknown_role_codes_rank_after_predefined_ones(auth, make_user):
    make_user("agronomist", roles=("ZETA", "AGRONOMIST", "BUYER"))
    session = auth.authenticate("agronomist", DEFAULT_PASSWORD)
    assert session.role == "BUYER"
    assert session.roles == ["BUYER", "AGRONOMIST", "ZETA"]


@pytest.mark.parametrize("identifier", [None, "", "   "])
def test_blank_identifier_is_rejected(auth, identifier):
    with pytest.raises(AppException) as excinfo:
        auth.authenticate(identifier, DEFAULT_PASSWORD)
    assert_error(excinfo, ErrorCode.IDENTIFIER_REQUIRED)


def test_unknown_identifier_and_wrong_password_look_the_same(auth, farmer):
    with pytest.raises(AppException) as unknown:
        auth.authenticate("nobody", DEFAULT_PASSWORD)
    with pytest.raises(AppException) as wrong:
        auth.authenticate("farmer", "not-the-password")

    assert_error(unknown, ErrorCode.INVALID_CREDENTIALS)
    assert_error(wrong, ErrorCode.INVALID_CREDENTIALS)
    assert unknown.value.detail == wrong.value.detail


@pytest.mark.parametrize("status", [UserStatus.LOCKED, UserStatus.INACTIVE])
def test_inactive_user_is_locked_out(auth, make_user, status):
    make_user("sleepy", status=status)
    with pytest.raises(AppException) as excinfo:
        auth.authenticate("sleepy", DEFAULT_PASSWORD)
    assert_error(excinfo, ErrorCode.USER_LOCKED)


def test_user_without_roles_cannot_log_in(auth, make_user):
    make_user("roleless", roles=())
    with pytest.raises(AppException) as excinfo:
        auth.authenticate("roleless", DEFAULT_PASSWORD)
    assert_error(excinfo, ErrorCode.ROLE_MISSING)


# ----------------------------------------------------------------------
# verify / introspect
# ----------------------------------------------------------------------

def test_fresh_token_verifies_to_same_user_and_role(auth, farmer):
    session = auth.authenticate("farmer", DEFAULT_PASSWORD)
    claims = auth.verify_token(session.token, is_refresh=False)

    identity = Identity.from_claims(claims)
    assert identity.user_id == farmer.id
    assert identity.role == "FARMER"
    assert identity.has_role("FARMER")
    assert not identity.has_role("ADMIN")


def test_expired_token_fails_normal_check_but_passes_refresh_check(auth, farmer):
    token = issue_token(farmer, issued_at=utc_now() - timedelta(hours=2))

    with pytest.raises(AppException) as excinfo:
        auth.verify_token(token, is_refresh=False)
    assert_error(excinfo, ErrorCode.UNAUTHENTICATED)

    assert auth.verify_token(token, is_refresh=True)["user_id"] == farmer.id


def test_token_past_refresh_window_fails_both_checks(auth, farmer):
    issued_at = utc_now() - timedelta(seconds=settings.JWT_REFRESHABLE_DURATION + 60)
    token = issue_token(farmer, issued_at=issued_at)

    for is_refresh in (False, True):
        with pytest.raises(AppException):
            auth.verify_token(token, is_refresh=is_refresh)


def test_token_signed_with_another_key_is_rejected(auth, farmer):
    token = issue_token(farmer, issued_at=utc_now(), secret="some-other-secret")
    with pytest.raises(AppException) as excinfo:
        auth.verify_token(token)
    assert_error(excinfo, ErrorCode.UNAUTHENTICATED)


def test_introspect_never_raises(auth, farmer):
    session = auth.authenticate("farmer", DEFAULT_PASSWORD)

    assert auth.introspect(session.token).valid is True
    assert auth.introspect("not-a-token").valid is False
    assert auth.introspect(session.token[:-4] + "abcd").valid is False


# ----------------------------------------------------------------------
# logout / refresh
# ----------------------------------------------------------------------

def test_logout_invalidates_token_for_both_checks(auth, farmer):
    session = auth.authenticate("farmer", DEFAULT_PASSWORD)
    auth.logout(session.token)

    for is_refresh in (False, True):
        with pytest.raises(AppException) as excinfo:
            auth.verify_token(session.token, is_refresh=is_refresh)
        assert_error(excinfo, ErrorCode.UNAUTHENTICATED)
    assert auth.introspect(session.token).valid is False


def test_logout_is_idempotent(auth, db, farmer):
    session = auth.authenticate("farmer", DEFAULT_PASSWORD)

    auth.logout(session.token)
    auth.logout(session.token)
    auth.logout("garbage")

    assert db.query(InvalidatedToken).count() == 1


def test_denylist_entry_outlives_refresh_window(auth, db, farmer):
    issued_at = utc_now() - timedelta(hours=2)
    token = issue_token(farmer, issued_at=issued_at, jti="expired-but-refreshable")
    auth.logout(token)

    entry = db.get(InvalidatedToken, "expired-but-refreshable")
    assert entry is not None
    assert entry.expiry_time > utc_now()


def test_refresh_issues_new_token_and_burns_the_old_one(auth, farmer):
    first = auth.authenticate("farmer", DEFAULT_PASSWORD)
    refreshed = auth.refresh_token(first.token)

    assert refreshed.token != first.token
    assert refreshed.user_id == farmer.id
    assert refreshed.role == "FARMER"
    assert refreshed.redirect_to == "/farmer"
    assert auth.introspect(refreshed.token).valid is True
    assert auth.introspect(first.token).valid is False

    with pytest.raises(AppException) as excinfo:
        auth.refresh_token(first.token)
    assert_error(excinfo, ErrorCode.UNAUTHENTICATED)


def test_refresh_accepts_recently_expired_token(auth, farmer):
    token = issue_token(farmer, issued_at=utc_now() - timedelta(hours=2))
    refreshed = auth.refresh_token(token)
    assert auth.verify_token(refreshed.token)["user_id"] == farmer.id


def test_refresh_rejects_garbage(auth):
    with pytest.raises(AppException) as excinfo:
        auth.refresh_token("garbage")
    assert_error(excinfo, ErrorCode.UNAUTHENTICATED)


def test_refresh_rejects_user_locked_since_login(auth, db, farmer):
    session = auth.authenticate("farmer", DEFAULT_PASSWORD)
    farmer.status = UserStatus.LOCKED
    db.commit()

    with pytest.raises(AppException) as excinfo:
        auth.refresh_token(session.token)
    assert_error(excinfo, ErrorCode.UNAUTHENTICATED)


def test_purge_removes_only_expired_entries(auth, db):
    now = utc_now()
    db.add_all([
        InvalidatedToken(id="stale", expiry_time=now - timedelta(minutes=1)),
        InvalidatedToken(id="live", expiry_time=now + timedelta(hours=1)),
    ])
    db.commit()

    assert auth.purge_expired_tokens() == 1
    assert db.get(InvalidatedToken, "stale") is None
    assert db.get(InvalidatedToken, "live") is not None


# ----------------------------------------------------------------------
# current caller
# ----------------------------------------------------------------------

def test_current_user_accessors_require_identity(auth):
    for accessor in (auth.get_current_user, auth.get_current_user_id, auth.get_current_role):
        with pytest.raises(AppException) as excinfo:
            accessor(None)
        assert_error(excinfo, ErrorCode.UNAUTHENTICATED)


def test_current_user_reads_identity(auth, farmer):
    session = auth.authenticate("farmer", DEFAULT_PASSWORD)
    identity = Identity.from_claims(auth.verify_token(session.token))

    me = auth.get_current_user(identity)
    assert me.token is None
    assert me.user_id == farmer.id
    assert me.role == "FARMER"
    assert me.profile.full_name == "Nguyen Van Farmer"
    assert auth.get_current_user_id(identity) == farmer.id
    assert auth.get_current_role(identity) == "FARMER"


def test_refresh_resolves_user_by_email_only(auth, make_user):
    decoy = make_user("owner@example.com", email="decoy@example.com")
    owner = make_user("owner", email="owner@example.com")
    session = auth.authenticate("owner", DEFAULT_PASSWORD)

    refreshed = auth.refresh_token(session.token)

    assert refreshed.user_id == owner.id
    assert refreshed.user_id != decoy.id
    assert auth.find_user_by_email("OWNER@example.com").id == owner.id


def test_token_lifecycle_uses_timezone_aware_clock(auth, farmer):
    with warnings.catch_warnings():
        warnings.filterwarnings("error", category=DeprecationWarning, module=r"cropmgmt\.")
        session = auth.authenticate("farmer", DEFAULT_PASSWORD)
        auth.verify_token(session.token)
        auth.verify_token(session.token, is_refresh=True)
        auth.logout(session.token)


def test_expiry_windows_are_naive_utc(auth, farmer):
    issued_at = utc_now()
    claims = jwt.get_unverified_claims(issue_token(farmer, issued_at=issued_at))

    normal = auth._effective_expiry(claims, is_refresh=False)
    refresh = auth._effective_expiry(claims, is_refresh=True)

    assert normal.tzinfo is None
    assert abs((normal - (issued_at + timedelta(hours=1))).total_seconds()) < 1
    assert refresh - normal == timedelta(seconds=settings.JWT_REFRESHABLE_DURATION) - timedelta(hours=1)
