"""
api/routes/v1/auth.py -- Token issuance.

Routes:
  POST /api/v1/auth/login -- user_name/password login; returns a JWT

Security:
  Login is rate-limited per IP (Settings.login_rate_limit).
  authenticate_user() runs bcrypt even for unknown user names -- use it,
  never inline get_by_user_name() + verify_password().
  Wrong user name and wrong password return the same error.
  Cache-Control: no-store on every login response.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import LoginRequest, LoginResponse, UserOut
from auth.store import UserStore
from auth.tokens import authenticate_user, create_access_token
from core.config import get_settings
from core.redaction import redact

router = APIRouter()


@limiter.limit(lambda: get_settings().login_rate_limit)
@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.user_name, body.password, request.app.state.hashing)
    if user is None:
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "bad_credentials", "message": "Invalid user name or password."}},
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    token = create_access_token(user.id, user.user_name, user.role)
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=get_settings().token_expire_seconds,
            user=UserOut(**redact(user)),
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp
