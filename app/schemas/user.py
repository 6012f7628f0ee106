from datetime import datetime
from pydantic import BaseModel, EmailStr


class UserResponse(BaseModel):
    """Schema for the signed-in account."""
    id: int
    display_name: str
    email: EmailStr
    created_at: datetime

    model_config = {"from_attributes": True}
