"""
Database Schemas for Chat App

Each Pydantic model represents a MongoDB collection. The collection name is the lowercase of the class name.
- User -> "user"
- Message -> "message"
"""

from pydantic import BaseModel, Field, EmailStr, field_validator
from typing import Optional
from datetime import datetime

class User(BaseModel):
    fullName: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., description="Hashed password")
    profilePic: str = Field("", description="Avatar URL, empty when unset")
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

class Message(BaseModel):
    senderId: str = Field(..., description="sender user's id as string")
    receiverId: str = Field(..., description="receiver user's id as string")
    text: Optional[str] = None
    image: Optional[str] = Field(None, description="URL returned by the media host")
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @field_validator("text")
    @classmethod
    def strip_text(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None
