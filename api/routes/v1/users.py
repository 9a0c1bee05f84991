"""
api/routes/v1/users.py -- Session and user management REST endpoints.

Routes (session routes registered before /users/{user_id} so "me", "login"
and "logout" are never captured as an id):
  POST   /users/login            -- username-or-email login; sets JWT cookie
  GET    /users/me               -- identity attached by the gate
  POST   /users/logout           -- clears the cookie; 204
  POST   /users                  -- create user (password hashed)   201 | 409 | 422
  GET    /users                  -- list users by fullname          200
  GET    /users/{user_id}        -- user detail                     200 | 404
  PUT    /users/{user_id}        -- full update                     204 | 404 | 409 | 422
  PATCH  /users/{user_id}        -- partial update                  204 | 404 | 409 | 422
  DELETE /users/{user_id}        -- delete                          204 | 404

Auth policy:
  POST /users/login is the only route here in the gate's bypass set. Every
  other route runs behind the gate and also declares Depends(get_auth_user).

Security:
  POST /users/login is rate-limited (LOGIN_RATE_LIMIT, default 10/minute per IP).
  authenticate_user() provides timing equalization -- use it, never inline.
  Cache-Control: no-store on login responses.
  No response model here has a password field.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Request, Response
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import LoginRequest, LoginResponse, MeResponse, UserResponse
from auth.dependencies import get_auth_user
from auth.models import User
from auth.store import UserStore
from auth.tokens import authenticate_user, clear_auth_cookie, create_access_token, set_auth_cookie, token_lifetime
from core.config import get_settings
from core.mutation import MutationFlow

router = APIRouter()

_settings = get_settings()


def _flow(request: Request) -> MutationFlow[User]:
    return request.app.state.user_flow


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


@limiter.limit(_settings.login_rate_limit)  # stays above @router
@router.post("/users/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username or e-mail plus password; set the session cookie.

    Wrong password and unknown user raise the same AuthenticationError (401),
    so the response does not reveal which accounts exist.
    """
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.password, username=body.username, email=body.email)

    token = create_access_token(user)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            user=UserResponse.from_user(user),
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=token_lifetime(),
        ).model_dump(),
    )
    set_auth_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/users/me", response_model=MeResponse)
def me(auth_user: dict = Depends(get_auth_user)) -> MeResponse:
    """Return the identity decoded from the caller's session token."""
    return MeResponse.from_claims(auth_user)


@router.post("/users/logout", status_code=204, dependencies=[Depends(get_auth_user)])
def logout() -> Response:
    """Clear the session cookie. The token itself stays valid until it expires."""
    resp = Response(status_code=204)
    clear_auth_cookie(resp)
    return resp


# ---------------------------------------------------------------------------
# User management
# ---------------------------------------------------------------------------


@router.post("/users", status_code=201, dependencies=[Depends(get_auth_user)])
def create_user(request: Request, payload: Any = Body(...)) -> Response:
    user_id = _flow(request).create(payload)
    return Response(status_code=201, headers={"Location": f"/api/v1/users/{user_id}"})


@router.get("/users", response_model=list[UserResponse], dependencies=[Depends(get_auth_user)])
def list_users(request: Request) -> list[UserResponse]:
    return [UserResponse.from_user(u) for u in _flow(request).list()]


@router.get("/users/{user_id}", response_model=UserResponse, dependencies=[Depends(get_auth_user)])
def get_user(request: Request, user_id: int) -> UserResponse:
    return UserResponse.from_user(_flow(request).get(user_id))


@router.put("/users/{user_id}", status_code=204, dependencies=[Depends(get_auth_user)])
def replace_user(request: Request, user_id: int, payload: Any = Body(...)) -> Response:
    _flow(request).replace(user_id, payload)
    return Response(status_code=204)


@router.patch("/users/{user_id}", status_code=204, dependencies=[Depends(get_auth_user)])
def patch_user(request: Request, user_id: int, payload: Any = Body(...)) -> Response:
    """Partial update. A "password" in the payload is hashed before validation."""
    _flow(request).patch(user_id, payload)
    return Response(status_code=204)


@router.delete("/users/{user_id}", status_code=204, dependencies=[Depends(get_auth_user)])
def delete_user(request: Request, user_id: int) -> Response:
    _flow(request).delete(user_id)
    return Response(status_code=204)
