"""
Session/identity service: signup, login, token verification and profile updates.

Users are returned sanitized, i.e. as dicts with `id` and without the password hash.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo.errors import DuplicateKeyError

import config
import media
from database import collection, create_document
from errors import AuthFailure, ConflictError, NotFoundError, ValidationError
from schemas import User as UserSchema
from security import decode_access_token, get_password_hash, verify_password

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


def sanitize_user(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(doc["_id"]),
        "fullName": doc.get("fullName", ""),
        "email": doc.get("email", ""),
        "profilePic": doc.get("profilePic", ""),
        "createdAt": doc.get("createdAt"),
        "updatedAt": doc.get("updatedAt"),
    }


def normalize_email(email: Optional[str]) -> Optional[str]:
    """Emails are stored and looked up lowercased."""
    if email is None:
        return None
    return email.strip().lower()


def to_object_id(value: str) -> Optional[ObjectId]:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def register(full_name: Optional[str], email: Optional[str], password: Optional[str]) -> Dict[str, Any]:
    email = normalize_email(email)
    if not full_name or not email or not password:
        raise ValidationError("All fields are required")
    if len(password) < config.MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {config.MIN_PASSWORD_LENGTH} characters")

    users = collection("user")
    if users.find_one({"email": email}):
        raise ConflictError("Email already exists")

    user = UserSchema(fullName=full_name, email=email, password=get_password_hash(password))
    try:
        doc = create_document("user", user)
    except DuplicateKeyError:
        raise ConflictError("Email already exists")
    logger.info("Registered user %s", doc["_id"])
    return sanitize_user(doc)


def authenticate(email: Optional[str], password: Optional[str]) -> Dict[str, Any]:
    email = normalize_email(email)
    if not email or not password:
        raise AuthFailure(INVALID_CREDENTIALS)
    user = collection("user").find_one({"email": email})
    # Same message for unknown email and wrong password.
    if not user or not verify_password(password, user.get("password", "")):
        raise AuthFailure(INVALID_CREDENTIALS)
    logger.info("User %s logged in", user["_id"])
    return sanitize_user(user)


def get_user(user_id: str) -> Dict[str, Any]:
    oid = to_object_id(user_id)
    user = collection("user").find_one({"_id": oid}, {"password": 0}) if oid else None
    if not user:
        raise NotFoundError("User not found")
    return sanitize_user(user)


def verify(token: Optional[str]) -> Dict[str, Any]:
    """Resolve a session token to the sanitized user it was issued for."""
    user_id = decode_access_token(token)
    return get_user(user_id)


def update_profile(user_id: str, profile_pic: Optional[str]) -> Dict[str, Any]:
    if not profile_pic:
        raise ValidationError("Profile pic is required")
    get_user(user_id)
    url = media.upload_image(profile_pic)
    collection("user").update_one(
        {"_id": ObjectId(user_id)},
        {"$set": {"profilePic": url, "updatedAt": datetime.now(timezone.utc)}},
    )
    return get_user(user_id)
