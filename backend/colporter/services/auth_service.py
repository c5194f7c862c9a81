# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication service.

Passwords are hashed with bcrypt (cost factor 12) and must pass a strength
check. Users belong to exactly one program; username and email uniqueness is
program-scoped.
"""

import bcrypt
import re
from ..extensions import db
from ..models import User, Program
from ..permissions import ROLE_VIEWER, validate_role
from colporter.time_utils import utcnow


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character (!@#$%^&*(),.'":{}|<>)

    Raises PasswordValidationError if requirements not met.
    """
    if len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str, *, rounds: int = 12) -> str:
    """Validate strength, then hash with bcrypt."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Malformed hashes verify as False rather than raising.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def create_user(
    username: str,
    email: str,
    password: str,
    program_id: int,
    role: str = ROLE_VIEWER,
    full_name: str | None = None,
    *,
    rounds: int = 12,
) -> User:
    """
    Create a user in a program.

    Raises:
        ValueError: unknown program/role, or username/email already taken
        PasswordValidationError: weak password
    """
    program = db.session.get(Program, program_id)
    if not program:
        raise ValueError("Program not found")

    if not validate_role(role):
        raise ValueError(f"Unknown role: {role}")

    existing = db.session.query(User).filter(
        User.program_id == program_id,
        db.or_(User.username == username, User.email == email),
    ).first()
    if existing:
        raise ValueError("Username or email already exists in this program")

    user = User(
        program_id=program_id,
        username=username,
        email=email,
        full_name=full_name,
        password_hash=hash_password(password, rounds=rounds),
        role=role,
        is_active=True,
    )
    db.session.add(user)
    db.session.commit()
    return user


def authenticate(identifier: str, password: str) -> User | None:
    """
    Look up an active user by username or email and check the password.

    Returns None on any failure so callers cannot tell which part was wrong.
    """
    candidates = db.session.query(User).filter(
        db.or_(User.username == identifier, User.email == identifier),
        User.is_active == True,  # noqa: E712
    ).all()

    for user in candidates:
        if verify_password(password, user.password_hash):
            program = db.session.get(Program, user.program_id)
            if not program or not program.is_active:
                return None
            user.last_login_at = utcnow()
            db.session.commit()
            return user

    return None
