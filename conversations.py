"""
Conversation service.

There is no stored conversation entity: a conversation is the unordered pair
{sender, receiver} and its messages are selected per query.
"""

import logging
from typing import Any, Dict, List, Optional

import media
from auth import sanitize_user, to_object_id
from database import collection, create_document, get_documents
from errors import NotFoundError, ValidationError
from schemas import Message as MessageSchema

logger = logging.getLogger(__name__)


def serialize_message(doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": str(doc["_id"]),
        "senderId": doc["senderId"],
        "receiverId": doc["receiverId"],
        "text": doc.get("text"),
        "image": doc.get("image"),
        "createdAt": doc.get("createdAt"),
        "updatedAt": doc.get("updatedAt"),
    }


def list_users_excluding(self_id: str) -> List[Dict[str, Any]]:
    oid = to_object_id(self_id)
    filter_dict = {"_id": {"$ne": oid}} if oid else {}
    users = get_documents("user", filter_dict, {"password": 0}, sort=[("createdAt", 1), ("_id", 1)])
    return [sanitize_user(u) for u in users]


def list_messages(user_a: str, user_b: str) -> List[Dict[str, Any]]:
    # find messages where (sender=a and receiver=b) or (sender=b and receiver=a)
    msgs = get_documents(
        "message",
        {
            "$or": [
                {"senderId": user_a, "receiverId": user_b},
                {"senderId": user_b, "receiverId": user_a},
            ]
        },
        sort=[("createdAt", 1), ("_id", 1)],
    )
    return [serialize_message(m) for m in msgs]


def send_message(
    sender_id: str,
    receiver_id: str,
    text: Optional[str] = None,
    image: Optional[str] = None,
) -> Dict[str, Any]:
    receiver_oid = to_object_id(receiver_id)
    if receiver_oid is None or not collection("user").find_one({"_id": receiver_oid}, {"_id": 1}):
        raise NotFoundError("User not found")

    message = MessageSchema(senderId=sender_id, receiverId=receiver_id, text=text)
    if message.text is None and not image:
        raise ValidationError("Message must contain text or an image")

    # Upload first; the record only ever holds the resulting URL.
    if image:
        message.image = media.upload_image(image)

    doc = create_document("message", message)
    logger.info("Message %s from %s to %s", doc["_id"], sender_id, receiver_id)
    return serialize_message(doc)
