"""
Pydantic schemas for join/leave requests.
"""

from typing import Optional
from pydantic import Field

from volunteer_api.schemas.user import CamelModel


class JoinRequest(CamelModel):
    user_id: str = Field(..., min_length=1, max_length=128)
    user_email: Optional[str] = Field(None, max_length=255)
    user_name: Optional[str] = Field(None, max_length=255)


class LeaveRequest(CamelModel):
    user_id: str = Field(..., min_length=1, max_length=128)
