# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

WHY: Every action must be attributable. Uses bcrypt for secure password
hashing and validates password strength.

ACCOUNTS:
- Admins sign up themselves, own a shop and start on a trial subscription
- Workers are created by their admin (see worker_service)

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters required
- Must contain uppercase, lowercase, digit, and special char
- Session tokens managed separately (see session_service.py)
"""

import bcrypt
import re
from ..extensions import db
from ..models import User, AppSettings, ROLE_ADMIN
from . import subscription_service
from shopdesk.time_utils import utcnow


EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class PasswordValidationError(Exception):
    """Raised when password doesn't meet strength requirements."""
    pass


class AuthError(Exception):
    """Raised when credentials are rejected."""
    pass


class AccountError(Exception):
    """Raised when an account cannot be created."""
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
    if not password or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """
    Hash password using bcrypt with cost factor 12.

    Password is validated for strength before hashing.
    """
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=12)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    Returns True if password matches hash, False otherwise.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


def normalize_email(email: str | None) -> str:
    value = (email or "").strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise AccountError("A valid email address is required")
    return value


def ensure_email_available(email: str) -> None:
    if db.session.query(User).filter_by(email=email).first():
        raise AccountError("Email already registered")


def authenticate(email: str, password: str) -> User | None:
    """
    Authenticate by email and password.

    Returns the User on success, None for unknown, inactive or wrong password.
    """
    user = db.session.query(User).filter_by(email=(email or "").strip().lower()).first()
    if not user or not user.is_active:
        return None
    if not verify_password(password or "", user.password_hash):
        return None

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def create_admin(
    email: str,
    password: str,
    full_name: str | None = None,
    *,
    trial_days: int = 7,
    timezone: str | None = None,
) -> User:
    """
    Create a shop admin with its settings row and a trial subscription.
    """
    email = normalize_email(email)
    ensure_email_available(email)

    admin = User(
        email=email,
        full_name=full_name,
        password_hash=hash_password(password),
        role=ROLE_ADMIN,
        is_active=True,
    )
    db.session.add(admin)
    db.session.flush()

    db.session.add(AppSettings(owner_id=admin.id, timezone=timezone))
    db.session.commit()

    if trial_days > 0:
        subscription_service.start_trial(admin.id, days=trial_days)
    return admin


def login(email: str, password: str) -> User:
    """authenticate() for callers that want an exception on failure."""
    user = authenticate(email, password)
    if user is None:
        raise AuthError("Invalid credentials")
    return user
