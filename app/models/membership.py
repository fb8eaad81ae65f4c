"""Dinner group membership models."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class DinnerGroup(BaseModel):
    """Users dining together at one restaurant. At most one group per restaurant."""

    id: str
    restaurant_id: str
    created_at: Optional[datetime] = None


class Attendee(BaseModel):
    """Links one user to one dinner group. At most one attendee record per user."""

    id: str
    user_id: str
    dinner_group_id: str
    created_at: Optional[datetime] = None


class GroupAttendance(BaseModel):
    """Dinner group with its live attendee count."""

    group_id: str
    restaurant_id: str
    attendee_count: int
