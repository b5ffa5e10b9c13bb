from pydantic import BaseModel, AnyHttpUrl, Field
from typing import Optional
from datetime import datetime
from uuid import UUID


class User(BaseModel):
    id: UUID
    email: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserUpdate(BaseModel):
    """Profile fields a user may change on their own record"""
    full_name: Optional[str] = Field(default=None, min_length=2)
    avatar_url: Optional[AnyHttpUrl] = None
