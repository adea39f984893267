"""
Database Schemas for LifeTrack

Each Pydantic model describes one MongoDB collection:
- User -> "users"
- Task -> "tasks"
Field names match the stored documents and the JSON wire format.
"""
from datetime import datetime
from typing import Any, Literal, Optional, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator

from validation import is_valid_email

# Tasks are partitioned among tracker views by category
Category = Literal["medicine", "meal", "hydration", "appointment", "safety"]
CATEGORIES = get_args(Category)
DEFAULT_CATEGORY: Category = "medicine"


def coerce_category(value: Any) -> str:
    """Unknown or missing categories fall back to medicine."""
    return value if value in CATEGORIES else DEFAULT_CATEGORY


# Users
class User(BaseModel):
    name: str = Field(..., min_length=1, description="Display name")
    email: str = Field(..., description="Unique email, checked before insert")
    password: str = Field(..., description="Salted hash; never returned by the API")
    emergencyContact: str = Field(..., description="Notified when a task is completed")

    @field_validator("email", "emergencyContact")
    @classmethod
    def _email_shape(cls, v: str) -> str:
        # Same predicate the API client applies before submitting
        if not is_valid_email(v):
            raise ValueError("Invalid email format")
        return v


# Tasks
class Task(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, alias="_id")
    userId: str = Field(..., description="Owning user id; not checked against users")
    title: str = Field(..., min_length=1)
    category: Category = DEFAULT_CATEGORY
    time: Optional[str] = Field(None, description="Clock time or ISO timestamp, depending on category")
    notes: Optional[str] = Field(None, description="Dosage or appointment details")
    isCompleted: bool = False
    createdAt: Optional[datetime] = None

    @field_validator("category", mode="before")
    @classmethod
    def _default_category(cls, v: Any) -> str:
        return coerce_category(v)
