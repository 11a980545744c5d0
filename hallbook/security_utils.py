"""
Edit-secret hashing
Bookings may carry a one-way hash of a secret that gates their deletion
"""

import logging

from passlib.context import CryptContext

from .config import SECRET_HASH_ROUNDS

logger = logging.getLogger(__name__)

# Password hashing context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=SECRET_HASH_ROUNDS)


def hash_secret(secret: str) -> str:
    """Hash an edit secret using bcrypt"""
    return pwd_context.hash(secret)


def verify_secret(plain_secret: str, hashed_secret: str) -> bool:
    """Verify an edit secret against its bcrypt hash"""
    try:
        return pwd_context.verify(plain_secret, hashed_secret)
    except (ValueError, TypeError) as e:
        logger.error(f"Secret verification error: {e}")
        return False
