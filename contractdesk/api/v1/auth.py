"""Session login/logout/registration and auth dependencies (get_auth_context, guards)."""

import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from contractdesk.api.deps import (
    AppServices,
    enforce_login_limit,
    enforce_register_limit,
    get_services,
    json_body,
    json_body_openapi,
)
from contractdesk.core.config import Settings
from contractdesk.core.database import get_db
from contractdesk.core.security import (
    MalformedHashError,
    sign_session_id,
    unsign_session_id,
    verify_password,
)
from contractdesk.core.sessions import SessionState, new_session_id
from contractdesk.models.user import ROLE_ADMIN, ROLE_CLIENT, User
from contractdesk.schemas.auth import (
    AdminLoginResponse,
    LoginRequest,
    RegisterRequest,
    UserResponse,
)
from contractdesk.services.users import (
    create_user,
    get_user,
    get_user_by_email,
    get_user_by_username,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@dataclass(frozen=True)
class AuthContext:
    """What the session cookie resolved to for this request."""

    session_id: str | None = None
    state: SessionState | None = None
    user: User | None = None

    def is_authenticated(self) -> bool:
        return self.user is not None

    def current_user(self) -> User | None:
        return self.user

    def has_admin_access(self) -> bool:
        """Admin role AND a session opened through admin login; the role alone is not enough."""
        return (
            self.user is not None
            and self.user.role == ROLE_ADMIN
            and self.state is not None
            and self.state.is_admin_session
        )


def set_session_cookie(response: Response, session_id: str, settings: Settings) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=sign_session_id(session_id, settings.SESSION_SECRET.get_secret_value()),
        max_age=settings.SESSION_MAX_AGE_SECONDS,
        path="/",
        secure=settings.SESSION_COOKIE_SECURE,
        httponly=True,
        samesite="strict",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        secure=settings.SESSION_COOKIE_SECURE,
        httponly=True,
        samesite="strict",
    )


def _cleared_cookie_headers(settings: Settings) -> dict[str, str]:
    """Set-Cookie header that expires the session cookie, for responses raised as HTTPException."""
    response = Response()
    clear_session_cookie(response, settings)
    return {"set-cookie": response.headers["set-cookie"]}


def get_auth_context(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
    services: Annotated[AppServices, Depends(get_services)],
) -> AuthContext:
    """
    Dependency: resolve the session cookie to a user. Never raises for missing or
    stale sessions; the guards decide what is required.
    """
    settings = services.settings
    session_id = unsign_session_id(
        request.cookies.get(settings.SESSION_COOKIE_NAME),
        settings.SESSION_SECRET.get_secret_value(),
    )
    if session_id is None:
        return AuthContext()
    state = services.session_store.read(session_id)
    if state is None:
        return AuthContext(session_id=session_id)
    user = get_user(db, state.user_id)
    if user is None:
        return AuthContext(session_id=session_id)
    services.session_store.touch(session_id, settings.SESSION_MAX_AGE_SECONDS)
    return AuthContext(session_id=session_id, state=state, user=user)


def require_authenticated(
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> User:
    """Dependency: any signed-in user. Raises 401 otherwise."""
    user = auth.current_user()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user


def require_admin(
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> User:
    """Dependency: admin role on a session opened via admin login. 401 if anonymous, 403 otherwise."""
    user = auth.current_user()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    if not auth.has_admin_access():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied",
        )
    return user


def require_client(
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> User:
    """Dependency: client dashboard access. Any authenticated user; no role filter."""
    return require_authenticated(auth)


def _authenticate(db: Session, username: str, password: str) -> User | None:
    user = get_user_by_username(db, username)
    if user is None:
        return None
    try:
        if not verify_password(password, user.password):
            return None
    except MalformedHashError:
        logger.warning("Stored password hash is malformed", extra={"user_id": user.id})
        return None
    return user


def _start_session(
    response: Response,
    services: AppServices,
    user: User,
    previous_session_id: str | None,
    is_admin_session: bool = False,
) -> None:
    """Issue a brand new session id for user; a pre-login id is never reused."""
    store = services.session_store
    if previous_session_id is not None:
        store.destroy(previous_session_id)
    session_id = new_session_id()
    store.create(
        session_id,
        SessionState(user_id=user.id, is_admin_session=is_admin_session),
        services.settings.SESSION_MAX_AGE_SECONDS,
    )
    set_session_cookie(response, session_id, services.settings)


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_register_limit)],
    openapi_extra=json_body_openapi(RegisterRequest),
)
def register(
    response: Response,
    body: Annotated[RegisterRequest, Depends(json_body(RegisterRequest))],
    db: Annotated[Session, Depends(get_db)],
    services: Annotated[AppServices, Depends(get_services)],
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> UserResponse:
    """Create a client account and sign it in. The role is always 'client'."""
    if get_user_by_username(db, body.username) is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username already taken",
        )
    if get_user_by_email(db, body.email) is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email already registered",
        )
    try:
        user = create_user(db, body.username, body.email, body.password, role=ROLE_CLIENT)
    except IntegrityError as e:
        db.rollback()
        logger.info("Registration lost a uniqueness race", extra={"username": body.username})
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username or email already taken",
        ) from e
    _start_session(response, services, user, previous_session_id=auth.session_id)
    logger.info("Client registered", extra={"user_id": user.id})
    return UserResponse.model_validate(user)


@router.post(
    "/client-login",
    response_model=UserResponse,
    openapi_extra=json_body_openapi(LoginRequest),
)
def client_login(
    response: Response,
    limiter_key: Annotated[str, Depends(enforce_login_limit)],
    body: Annotated[LoginRequest, Depends(json_body(LoginRequest))],
    db: Annotated[Session, Depends(get_db)],
    services: Annotated[AppServices, Depends(get_services)],
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> UserResponse:
    """Sign in with username and password. Only failed attempts count toward the rate limit."""
    user = _authenticate(db, body.username, body.password)
    if user is None:
        limit_status = services.login_limiter.hit(limiter_key)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers=limit_status.headers(),
        )
    _start_session(response, services, user, previous_session_id=auth.session_id)
    return UserResponse.model_validate(user)


@router.post(
    "/admin-login",
    response_model=AdminLoginResponse,
    openapi_extra=json_body_openapi(LoginRequest),
)
def admin_login(
    response: Response,
    limiter_key: Annotated[str, Depends(enforce_login_limit)],
    body: Annotated[LoginRequest, Depends(json_body(LoginRequest))],
    db: Annotated[Session, Depends(get_db)],
    services: Annotated[AppServices, Depends(get_services)],
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> AdminLoginResponse:
    """
    Sign in to the admin console. Any existing session is destroyed first, the
    user must have the admin role, and the new session carries is_admin_session.
    """
    failure_headers: dict[str, str] = {}
    if auth.session_id is not None:
        services.session_store.destroy(auth.session_id)
        failure_headers = _cleared_cookie_headers(services.settings)
    user = _authenticate(db, body.username, body.password)
    if user is None:
        limit_status = services.login_limiter.hit(limiter_key)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={**limit_status.headers(), **failure_headers},
        )
    if user.role != ROLE_ADMIN:
        limit_status = services.login_limiter.hit(limiter_key)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admin only.",
            headers={**limit_status.headers(), **failure_headers},
        )
    _start_session(response, services, user, previous_session_id=None, is_admin_session=True)
    logger.info("Admin session started", extra={"user_id": user.id})
    return AdminLoginResponse.model_validate(user)


@router.post("/logout")
def logout(
    services: Annotated[AppServices, Depends(get_services)],
    auth: Annotated[AuthContext, Depends(get_auth_context)],
) -> Response:
    """Destroy the session and clear the cookie. Safe to call when already signed out."""
    if auth.session_id is not None:
        services.session_store.destroy(auth.session_id)
    response = Response(status_code=status.HTTP_200_OK)
    clear_session_cookie(response, services.settings)
    return response


@router.get("/current-user", response_model=UserResponse)
def current_user(
    user: Annotated[User, Depends(require_authenticated)],
) -> UserResponse:
    """Return the signed-in user."""
    return UserResponse.model_validate(user)
