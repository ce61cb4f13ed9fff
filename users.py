"""
Users and the mock phone identity provider.

No password is stored. A caller is identified by phone or email; the first
verified sign-in creates the user record.
"""

import logging
import random
import threading
from typing import Dict, Optional

from database import RecordStore
from errors import UserNotFound, ValidationError
from schemas import User, UserCreate

logger = logging.getLogger(__name__)

USER = "user"


class UserDirectory:
    def __init__(self, store: RecordStore):
        self.store = store

    def get_user(self, user_id: str) -> User:
        doc = self.store.get_document_by_id(USER, user_id)
        if not doc:
            raise UserNotFound(user_id)
        return User(**doc)

    def create_user(self, payload: UserCreate) -> User:
        data = payload.model_dump(mode="json")
        data["is_admin"] = False
        return User(**self.store.create_document(USER, data))

    def resolve_identity(
        self,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        name: Optional[str] = None,
    ) -> User:
        """Match an existing user by phone, then email, or create one."""
        phone = (phone or "").strip() or None
        email = (email or "").strip().lower() or None
        if not phone and not email:
            raise ValidationError.for_field("phone", "A phone number or email is required")

        for field, value in (("phone", phone), ("email", email)):
            if value:
                doc = self.store.find_document(USER, {field: value})
                if doc:
                    return User(**doc)

        user = self.create_user(UserCreate(name=name or f"User {phone or email}", phone=phone, email=email))
        logger.info("Created user %s on first sign-in", user.id)
        return user


class MockIdentityProvider:
    """Stand-in for an SMS OTP service. Codes are returned, never sent."""

    def __init__(self, users: UserDirectory, rng: Optional[random.Random] = None):
        self.users = users
        self._rng = rng or random.Random()
        self._codes: Dict[str, str] = {}
        self._lock = threading.Lock()

    def send_code(self, phone: str) -> str:
        phone = (phone or "").strip()
        if not phone:
            raise ValidationError.for_field("phone", "Phone number is required")
        code = str(self._rng.randint(100000, 999999))
        with self._lock:
            self._codes[phone] = code
        logger.info("Issued verification code for %s", phone)
        return code

    def verify_code(self, phone: str, code: str) -> User:
        phone = (phone or "").strip()
        with self._lock:
            expected = self._codes.get(phone)
            if expected is None or expected != (code or "").strip():
                raise ValidationError.for_field("otp", "Invalid OTP")
            del self._codes[phone]
        return self.users.resolve_identity(phone=phone)
