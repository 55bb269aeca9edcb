"""
api/routes/v1/auth.py -- Registration, login, and user listing endpoints.

Routes:
  POST /api/v1/register  -- create an account; 201
  POST /api/v1/login     -- password login; 200 with a session token
  GET  /api/v1/users     -- list registered users (sanitized)

Handlers are plain `def`, not `async def`: FastAPI runs them in its worker
threadpool, so bcrypt hashing never blocks the event loop.

Errors: AuthService raises AuthError subclasses; the handler registered in
api/main.py renders them. Handlers here contain no error mapping of their own.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.models import LoginRequest, LoginResponse, RegisterRequest, RegisterResponse, UserResponse
from auth.service import AuthService

router = APIRouter()


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


@router.post("/register", response_model=RegisterResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> RegisterResponse:
    """Register a new user. The password is bcrypt-hashed before storage."""
    profile = _service(request).register(body.username, body.email, body.password)
    return RegisterResponse(message="User registered successfully.", username=profile.username)


@router.post("/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password; return a signed session token.

    Wrong username and wrong password produce the same 401 body.
    """
    result = _service(request).login(body.username, body.password)
    resp = JSONResponse(status_code=200, content=LoginResponse.from_result(result).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/users", response_model=list[UserResponse])
def list_users(request: Request) -> list[UserResponse]:
    """List every registered user. Credentials are never included."""
    return [UserResponse.from_profile(p) for p in _service(request).list_users()]
