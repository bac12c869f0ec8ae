"""
Auth Routes

Session stub for the admin and institution portals. Any non-empty
credentials are accepted; institution logins must name a known DI code.
The returned token is an opaque session label, not a signed credential.
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from clepfinder.api.dependencies import CatalogServiceDep


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=255)
    role: Literal["admin", "institution"]
    di_code: Optional[int] = Field(None, ge=1)

    @field_validator("email", "password")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Field cannot be empty or whitespace only")
        return v.strip()


class LoginResponse(BaseModel):
    token: str
    role: str
    email: str
    name: Optional[str] = None
    institution: Optional[dict] = None


@router.post("/login", response_model=LoginResponse)
async def login(request: LoginRequest, catalog: CatalogServiceDep):
    if request.role == "admin":
        return LoginResponse(
            token=f"admin:{request.email}",
            role="admin",
            email=request.email,
            name="Admin User",
        )

    if request.di_code is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="DI code is required for institution login",
        )

    institution = await catalog.get_by_di_code(request.di_code)
    if institution is None:
        logger.info(f"Institution login with unknown DI code {request.di_code}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown institution DI code",
        )

    return LoginResponse(
        token=f"institution:{institution.di_code}:{request.email}",
        role="institution",
        email=request.email,
        institution={
            "id": institution.id,
            "name": institution.name,
            "city": institution.city,
            "state": institution.state,
            "di_code": institution.di_code,
        },
    )
