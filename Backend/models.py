import re
from datetime import date, datetime, timezone
from typing import Annotated, List, Optional

from pydantic import BaseModel, field_validator
from pydantic import Field as SchemaField
from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

NAME_MAX_LENGTH = 50
TITLE_MAX_LENGTH = 100
ISO_DATE = re.compile(r"\d{4}-\d{2}-\d{2}")
# largest value a 64-bit INTEGER primary key can hold
MAX_ID = 2**63 - 1

RowId = Annotated[int, SchemaField(ge=1, le=MAX_ID)]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ----- Tables -----
class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(max_length=NAME_MAX_LENGTH, index=True, unique=True)
    hashed_password: str
    created_at: datetime = Field(default_factory=_utcnow)


class Habit(SQLModel, table=True):
    __tablename__ = "habits"
    __table_args__ = (UniqueConstraint("user_id", "title", name="unique_user_habit"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", ondelete="CASCADE", index=True)
    title: str = Field(max_length=TITLE_MAX_LENGTH)
    created_at: datetime = Field(default_factory=_utcnow)


class HabitLog(SQLModel, table=True):
    __tablename__ = "habit_logs"
    __table_args__ = (UniqueConstraint("habit_id", "log_date", name="unique_habit_day"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    habit_id: int = Field(foreign_key="habits.id", ondelete="CASCADE", index=True)
    log_date: date = Field(index=True)
    completed: bool = Field(default=False)


# ----- Pydantic schemas -----
class Credentials(BaseModel):
    name: str
    password: str


class UserRead(BaseModel):
    id: int
    name: str


class LoginRead(UserRead):
    access_token: str
    token_type: str = "bearer"


class HabitCreate(BaseModel):
    userId: RowId
    title: str


class HabitRename(BaseModel):
    title: str


class HabitOut(BaseModel):
    id: int
    user_id: int
    title: str


class HabitRead(BaseModel):
    """A habit as the client sees it: the dates it was completed on, ascending."""

    id: int
    title: str
    completed_dates: List[str] = []


class LogToggle(BaseModel):
    date: str

    @field_validator("date")
    @classmethod
    def check_iso_date(cls, value: str) -> str:
        if not ISO_DATE.fullmatch(value):
            raise ValueError("date must be formatted YYYY-MM-DD")
        # rejects impossible days such as 2025-02-30
        datetime.strptime(value, "%Y-%m-%d")
        return value


class LogRead(BaseModel):
    date: str
    completed: bool
