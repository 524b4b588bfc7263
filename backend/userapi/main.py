"""FastAPI application entrypoint and HTTP controllers.

Controllers are intentionally thin: they accept requests, delegate to
`UserService`, and return JSON responses. Every `/users` route sits
behind the bearer-token gate in `auth`; read routes need the
`users:read` scope and write routes `users:write`.

Endpoints implemented:
- GET /health
- GET /users
- GET /users/by-email
- GET /users/by-name
- GET /users/{user_id}
- POST /users
- PUT /users/{user_id}
- POST /users/rename
- DELETE /users/{user_id}
"""

import json
import logging
import time
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Path, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import EmailStr
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from . import services
from .auth import SCOPE_READ, SCOPE_WRITE, Principal, authenticate, check_request, require_scope
from .config import settings
from .database import create_db_and_tables, get_session
from .errors import AmbiguousLookupError, UserNotFoundError
from .schemas import RenameIn, UserCreateIn, UserOut, UserPage, UserReplaceIn

app = FastAPI(title="User Directory API")
logger = logging.getLogger("userapi.api")
if not logger.handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()


def _log_request(event: str, request: Request, **fields) -> None:
    payload = {
        "request_id": getattr(request.state, "request_id", ""),
        "path": request.url.path,
        "method": request.method,
        "client": request.client.host if request.client else "unknown",
        **fields,
    }
    message = "%s %s"
    if event == "request_failed":
        logger.exception(message, event, json.dumps(payload, ensure_ascii=True))
    else:
        logger.info(message, event, json.dumps(payload, ensure_ascii=True))


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        if request.url.path.startswith("/users"):
            _log_request("request_failed", request, duration_ms=elapsed_ms)
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    if request.url.path.startswith("/users"):
        _log_request("request_done", request, status_code=response.status_code, duration_ms=elapsed_ms)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Answer malformed input with 400 and a list of per-field errors.

    An undecodable body fails before the route dependencies run, so on
    `/users` routes the bearer gate is applied here first.
    """
    if request.url.path.startswith("/users"):
        scope = SCOPE_READ if request.method in ("GET", "HEAD") else SCOPE_WRITE
        try:
            check_request(request.headers.get("Authorization"), scope)
        except HTTPException as denied:
            return JSONResponse(
                status_code=denied.status_code, content={"detail": denied.detail}, headers=denied.headers
            )
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"detail": "validation failed", "errors": errors})


@app.exception_handler(UserNotFoundError)
async def not_found_handler(request: Request, exc: UserNotFoundError):
    return JSONResponse(status_code=404, content={"detail": "user not found"})


@app.exception_handler(AmbiguousLookupError)
async def ambiguous_lookup_handler(request: Request, exc: AmbiguousLookupError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(SQLAlchemyError)
async def persistence_error_handler(request: Request, exc: SQLAlchemyError):
    """Report database faults as 500; they are not retried."""
    logger.error(
        "persistence_failure %s",
        json.dumps({"request_id": getattr(request.state, "request_id", ""), "path": request.url.path}),
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"detail": "persistence failure"})


users = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(authenticate)])


@users.get("", response_model=UserPage)
def list_users(
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
    db: Session = Depends(get_session),
    principal: Principal = Depends(require_scope(SCOPE_READ)),
):
    """Return users ordered by id, `limit` at a time."""
    items, total = services.UserService(db).list(offset=offset, limit=limit)
    return UserPage(items=[UserOut.from_record(u) for u in items], total=total, offset=offset, limit=limit)


@users.get("/by-email", response_model=UserOut)
def get_user_by_email(
    email: EmailStr = Query(...),
    db: Session = Depends(get_session),
    principal: Principal = Depends(require_scope(SCOPE_READ)),
):
    """Look a user up by email.

    Returns 404 when nobody has the address and 409 when several users do.
    """
    return UserOut.from_record(services.UserService(db).find_by_email(email))


@users.get("/by-name", response_model=UserOut)
def get_user_by_name(
    name: str = Query(..., min_length=1, max_length=100),
    db: Session = Depends(get_session),
    principal: Principal = Depends(require_scope(SCOPE_READ)),
):
    """Look a user up by first name (404 if absent, 409 if shared)."""
    return UserOut.from_record(services.UserService(db).find_by_first_name(name))


@users.get("/{user_id}", response_model=UserOut)
def get_user(
    user_id: int = Path(),
    platform: Optional[str] = Query(default=None, max_length=50),
    db: Session = Depends(get_session),
    principal: Principal = Depends(require_scope(SCOPE_READ)),
):
    """Fetch a single user by id.

    `platform` is an optional client label recorded in the log.
    """
    logger.debug("lookup user id=%s platform=%s subject=%s", user_id, platform, principal.subject)
    return UserOut.from_record(services.UserService(db).get(user_id))


@users.post("", response_model=UserOut, status_code=201)
def create_user(
    payload: UserCreateIn,
    db: Session = Depends(get_session),
    principal: Principal = Depends(require_scope(SCOPE_WRITE)),
):
    """Create a user and return it with its assigned id."""
    user = services.UserService(db).create(payload.name, payload.email, payload.age)
    return UserOut.from_record(user)


@users.put("/{user_id}", response_model=UserOut)
def replace_user(
    payload: UserReplaceIn,
    user_id: int = Path(),
    db: Session = Depends(get_session),
    principal: Principal = Depends(require_scope(SCOPE_WRITE)),
):
    """Replace name, email and age of an existing user; the id is kept."""
    user = services.UserService(db).replace(user_id, payload.name, payload.email, payload.age)
    return UserOut.from_record(user)


@users.post("/rename", response_model=UserOut)
def rename_user(
    payload: RenameIn,
    db: Session = Depends(get_session),
    principal: Principal = Depends(require_scope(SCOPE_WRITE)),
):
    """Rename the user identified by email."""
    user = services.UserService(db).rename_by_email(payload.email, payload.name)
    return UserOut.from_record(user)


@users.delete("/{user_id}", status_code=204)
def delete_user(
    user_id: int = Path(),
    db: Session = Depends(get_session),
    principal: Principal = Depends(require_scope(SCOPE_WRITE)),
):
    """Delete a user. Deleting an id that is already gone answers 404."""
    services.UserService(db).delete(user_id)
    return Response(status_code=204)


app.include_router(users)


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
