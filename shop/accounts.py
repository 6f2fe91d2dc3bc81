# shop/accounts.py - registration and login
import logging

from django.contrib.auth.hashers import check_password, make_password
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction

from .audit import AuditSink
from .authentication import issue_token
from .errors import BadRequest
from .models import User

logger = logging.getLogger(__name__)


def register_user(email: str, password: str, audit: AuditSink) -> User:
    email = (email or "").strip().lower()
    if User.objects.filter(email=email).exists():
        raise BadRequest("Email is already taken")

    try:
        validate_password(password, user=User(email=email))
    except ValidationError as e:
        raise BadRequest(" ".join(e.messages))

    try:
        with transaction.atomic():
            user = User.objects.create(email=email, password_hash=make_password(password), role="user")
    except IntegrityError:
        # lost a race against a concurrent registration
        raise BadRequest("Email is already taken")

    audit.record(user.id, "user_register", "users", {"user_id": str(user.id)})
    logger.info(f"user registered: {user.id}")
    return user


def login_user(email: str, password: str, audit: AuditSink) -> str:
    """Returns "Bearer <jwt>"."""
    email = (email or "").strip().lower()
    user = User.objects.filter(email=email).first()
    if user is None or not check_password(password, user.password_hash):
        raise BadRequest("Invalid email or password")

    token = issue_token(user.id, user.role)
    audit.record(user.id, "user_login", "users", {"user_id": str(user.id)})
    return f"Bearer {token}"
