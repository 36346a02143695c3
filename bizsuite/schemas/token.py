"""
Pydantic schemas for authentication and tokens
"""

from typing import Any, Dict

from pydantic import BaseModel, EmailStr, Field


class LoginRequest(BaseModel):
    """Login schema, shared by both identity domains"""
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=256)


class TokenResponse(BaseModel):
    """Token response"""
    access_token: str
    token_type: str = "bearer"
    user: Dict[str, Any]
