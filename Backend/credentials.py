import logging

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from errors import Conflict, Unauthorized, ValidationError
from models import NAME_MAX_LENGTH, User
from security import dummy_verify, get_password_hash, verify_password

logger = logging.getLogger(__name__)


def register(session: Session, name: str, password: str) -> User:
    name = (name or "").strip()
    if not name or not (password or "").strip():
        raise ValidationError("Name and password required")
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(f"Name must be at most {NAME_MAX_LENGTH} characters")

    existing = session.exec(select(User).where(User.name == name)).first()
    if existing:
        raise Conflict("Username already exists")

    user = User(name=name, hashed_password=get_password_hash(password))
    session.add(user)
    try:
        session.commit()
    except IntegrityError:
        # lost a race with a concurrent registration of the same name
        session.rollback()
        raise Conflict("Username already exists")
    session.refresh(user)
    logger.info("Registered user %s (id=%s)", user.name, user.id)
    return user


def verify(session: Session, name: str, password: str) -> User:
    name = (name or "").strip()
    if not name or not (password or "").strip():
        raise ValidationError("Name and password required")

    user = session.exec(select(User).where(User.name == name)).first()
    if user is None:
        dummy_verify()
        raise Unauthorized("Invalid credentials")
    if not verify_password(password, user.hashed_password):
        raise Unauthorized("Invalid credentials")
    return user
