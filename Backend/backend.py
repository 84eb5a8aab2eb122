# Habit Tracker Backend (FastAPI + SQLModel)

"""
Project layout:

habit-tracker-backend/
├─ pyproject.toml
└─ Backend/
   ├─ backend.py      # app, middleware, error mapping, routes
   ├─ settings.py     # environment configuration
   ├─ logger.py       # logging setup
   ├─ errors.py       # error taxonomy
   ├─ models.py       # tables + request/response schemas
   ├─ database.py     # engine, sessions, `habit-tracker-db` CLI
   ├─ security.py     # password hashing (passlib) and JWTs (python-jose)
   ├─ credentials.py  # register / verify users
   ├─ habits.py       # habits and their daily logs
   └─ stats.py        # monthly statistics over the GET /habits payload

Run:
1. pip install -e .
2. habit-tracker-db init
3. habit-tracker            # or: uvicorn backend:app --reload --app-dir Backend

Endpoints:
- POST /auth/register -> create user
- POST /auth/login -> verify credentials, returns the user and a bearer token
- GET /habits?userId= -> habits of a user with their completed dates
- POST /habits -> create habit
- PUT /habits/{id} -> rename habit
- DELETE /habits/{id} -> delete habit and its logs
- POST /habits/{id}/log -> toggle completion for a date
- GET /health -> liveness and uptime

A bearer token is optional. When one is sent, requests may only read and
change the habits of the user it was issued to.
"""

import logging
import time
from datetime import date, timedelta
from typing import List, Optional

from fastapi import Depends, FastAPI, Path, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlmodel import Session

import credentials
import habits
import settings
from database import create_db_and_tables, get_session
from errors import HabitTrackerError, Unauthorized
from logger import setup_logger
from models import MAX_ID, Credentials, HabitCreate, HabitOut, HabitRead, HabitRename, LoginRead, LogRead, LogToggle, UserRead
from security import create_access_token, decode_access_token

setup_logger()
logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

# ----- App -----
app = FastAPI(title="Habit Tracker API")
STARTED_AT = time.monotonic()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup():
    create_db_and_tables()


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info("%s %s", request.method, request.url.path)
    return await call_next(request)


# ----- Error mapping -----
@app.exception_handler(HabitTrackerError)
async def habit_tracker_error_handler(request: Request, exc: HabitTrackerError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if not errors:
        return JSONResponse(status_code=400, content={"error": "Invalid request"})
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    message = f"{field}: {first['msg']}" if field else first["msg"]
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(Exception)
async def server_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Server error"})


# ----- Auth helpers -----
def get_token_user_id(bearer: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> Optional[int]:
    if bearer is None:
        return None
    return decode_access_token(bearer.credentials)


def check_acting_user(user_id: int, token_user_id: Optional[int]):
    if token_user_id is not None and token_user_id != user_id:
        raise Unauthorized("Token does not belong to this user")


# ----- Auth endpoints -----
@app.post("/auth/register", status_code=201, response_model=UserRead)
def register(payload: Credentials, session: Session = Depends(get_session)):
    user = credentials.register(session, payload.name, payload.password)
    return UserRead(id=user.id, name=user.name)


@app.post("/auth/login", response_model=LoginRead)
def login(payload: Credentials, session: Session = Depends(get_session)):
    user = credentials.verify(session, payload.name, payload.password)
    access_token = create_access_token(
        data={"sub": str(user.id)}, expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    return LoginRead(id=user.id, name=user.name, access_token=access_token, token_type="bearer")


# ----- Habit endpoints -----
@app.get("/habits", response_model=List[HabitRead])
def list_habits(
    userId: int = Query(..., ge=1, le=MAX_ID),
    session: Session = Depends(get_session),
    token_user_id: Optional[int] = Depends(get_token_user_id),
):
    check_acting_user(userId, token_user_id)
    return habits.list_habits(session, userId)


@app.post("/habits", status_code=201, response_model=HabitOut)
def create_habit(
    payload: HabitCreate,
    session: Session = Depends(get_session),
    token_user_id: Optional[int] = Depends(get_token_user_id),
):
    check_acting_user(payload.userId, token_user_id)
    habit = habits.create_habit(session, payload.userId, payload.title)
    return HabitOut(id=habit.id, user_id=habit.user_id, title=habit.title)


@app.put("/habits/{habit_id}", response_model=HabitOut)
def rename_habit(
    payload: HabitRename,
    habit_id: int = Path(ge=1, le=MAX_ID),
    session: Session = Depends(get_session),
    token_user_id: Optional[int] = Depends(get_token_user_id),
):
    habit = habits.rename_habit(session, habit_id, payload.title, owner_id=token_user_id)
    return HabitOut(id=habit.id, user_id=habit.user_id, title=habit.title)


@app.delete("/habits/{habit_id}")
def delete_habit(
    habit_id: int = Path(ge=1, le=MAX_ID),
    session: Session = Depends(get_session),
    token_user_id: Optional[int] = Depends(get_token_user_id),
):
    habits.delete_habit(session, habit_id, owner_id=token_user_id)
    return {"message": "Habit deleted"}


# ----- Habit completion endpoints -----
@app.post("/habits/{habit_id}/log", response_model=LogRead)
def toggle_log(
    payload: LogToggle,
    habit_id: int = Path(ge=1, le=MAX_ID),
    session: Session = Depends(get_session),
    token_user_id: Optional[int] = Depends(get_token_user_id),
):
    log_date = date.fromisoformat(payload.date)
    completed = habits.toggle_log(session, habit_id, log_date, owner_id=token_user_id)
    return LogRead(date=payload.date, completed=completed)


@app.get("/health")
def health():
    return {"status": "ok", "uptime": time.monotonic() - STARTED_AT}


def main():
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    main()
