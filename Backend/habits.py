import logging
import threading
from collections import defaultdict
from contextlib import contextmanager
from datetime import date
from typing import Dict, List, Optional, Tuple

from sqlalchemy import not_
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from errors import Conflict, NotFound, ValidationError
from models import TITLE_MAX_LENGTH, Habit, HabitLog, HabitRead, User

logger = logging.getLogger(__name__)

# dialects with INSERT ... ON CONFLICT DO UPDATE ... RETURNING
_UPSERT_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}

# (habit_id, log_date) -> [lock, number of callers holding or waiting on it]
_toggle_locks: Dict[Tuple[int, date], List] = {}
_toggle_locks_guard = threading.Lock()


def _clean_title(title: str) -> str:
    title = (title or "").strip()
    if not title:
        raise ValidationError("Title required")
    if len(title) > TITLE_MAX_LENGTH:
        raise ValidationError(f"Title must be at most {TITLE_MAX_LENGTH} characters")
    return title


def _commit_unique(session: Session, message: str):
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise Conflict(message)


def get_habit(session: Session, habit_id: int, owner_id: Optional[int] = None) -> Habit:
    """Load a habit; with ``owner_id`` other users' habits are reported missing."""
    habit = session.get(Habit, habit_id)
    if not habit or (owner_id is not None and habit.user_id != owner_id):
        raise NotFound("Habit not found")
    return habit


def create_habit(session: Session, user_id: int, title: str) -> Habit:
    title = _clean_title(title)
    if session.get(User, user_id) is None:
        raise NotFound("User not found")
    habit = Habit(user_id=user_id, title=title)
    session.add(habit)
    _commit_unique(session, "Habit already exists")
    session.refresh(habit)
    logger.info("Created habit %s for user %s", habit.id, user_id)
    return habit


def rename_habit(session: Session, habit_id: int, title: str, owner_id: Optional[int] = None) -> Habit:
    title = _clean_title(title)
    habit = get_habit(session, habit_id, owner_id)
    habit.title = title
    session.add(habit)
    _commit_unique(session, "Habit already exists")
    session.refresh(habit)
    return habit


def delete_habit(session: Session, habit_id: int, owner_id: Optional[int] = None):
    habit = get_habit(session, habit_id, owner_id)
    # habit_logs rows go with it through ON DELETE CASCADE
    session.delete(habit)
    session.commit()
    logger.info("Deleted habit %s", habit_id)


def list_habits(session: Session, user_id: int) -> List[HabitRead]:
    habits = session.exec(select(Habit).where(Habit.user_id == user_id).order_by(Habit.id)).all()
    if not habits:
        return []

    rows = session.exec(
        select(HabitLog.habit_id, HabitLog.log_date)
        .where(col(HabitLog.habit_id).in_([h.id for h in habits]), HabitLog.completed == True)  # noqa: E712
        .order_by(HabitLog.log_date)
    ).all()
    completed_dates = defaultdict(list)
    for habit_id, log_date in rows:
        completed_dates[habit_id].append(log_date.isoformat())

    return [HabitRead(id=h.id, title=h.title, completed_dates=completed_dates[h.id]) for h in habits]


def toggle_log(session: Session, habit_id: int, log_date: date, owner_id: Optional[int] = None) -> bool:
    """Flip completion of a habit on a day; the first toggle marks it completed."""
    get_habit(session, habit_id, owner_id)

    insert = _UPSERT_INSERTS.get(session.get_bind().dialect.name)
    if insert is None:
        completed = _toggle_with_lock(session, habit_id, log_date)
    else:
        logs = HabitLog.__table__
        stmt = (
            insert(logs)
            .values(habit_id=habit_id, log_date=log_date, completed=True)
            .on_conflict_do_update(
                index_elements=[logs.c.habit_id, logs.c.log_date],
                set_={"completed": not_(logs.c.completed)},
            )
            .returning(logs.c.completed)
        )
        completed = bool(session.connection().execute(stmt).scalar_one())
        session.commit()

    logger.info("Habit %s on %s -> completed=%s", habit_id, log_date, completed)
    return completed


@contextmanager
def _toggle_lock(key: Tuple[int, date]):
    with _toggle_locks_guard:
        entry = _toggle_locks.setdefault(key, [threading.Lock(), 0])
        entry[1] += 1
    try:
        with entry[0]:
            yield
    finally:
        with _toggle_locks_guard:
            entry[1] -= 1
            if entry[1] == 0:
                del _toggle_locks[key]


def _toggle_with_lock(session: Session, habit_id: int, log_date: date) -> bool:
    with _toggle_lock((habit_id, log_date)):
        log = session.exec(
            select(HabitLog).where(HabitLog.habit_id == habit_id, HabitLog.log_date == log_date)
        ).first()
        if log is None:
            log = HabitLog(habit_id=habit_id, log_date=log_date, completed=True)
        else:
            log.completed = not log.completed
        completed = log.completed
        session.add(log)
        session.commit()
    return completed
