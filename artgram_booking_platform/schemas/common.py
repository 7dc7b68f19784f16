"""
Common schemas shared by the API and the services.
"""

import enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ActorRole(str, enum.Enum):
    """Roles issued by the identity service."""
    CUSTOMER = "customer"
    BRANCH_MANAGER = "branch_manager"
    ADMIN = "admin"


class Actor(BaseModel):
    """Authenticated caller, as asserted by the identity service."""

    id: str = Field(..., description="Identity-service user ID")
    role: ActorRole = Field(ActorRole.CUSTOMER, description="Caller role")
    branch_id: Optional[UUID] = Field(None, description="Branch a manager is scoped to")
    name: Optional[str] = Field(None, description="Display name")
    email: Optional[str] = Field(None, description="Contact email")
    phone: Optional[str] = Field(None, description="Contact phone")

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN

    @property
    def is_staff(self) -> bool:
        return self.role in (ActorRole.ADMIN, ActorRole.BRANCH_MANAGER)

    def can_manage_branch(self, branch_id: UUID) -> bool:
        """Admins manage every branch, managers only their own."""
        if self.is_admin:
            return True
        return self.role == ActorRole.BRANCH_MANAGER and self.branch_id == branch_id


class ErrorDetail(BaseModel):
    """Schema for detailed error information."""

    error_code: str = Field(..., description="Error code for programmatic handling")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error context")
    suggestions: Optional[List[str]] = Field(None, description="Helpful suggestions for resolving the error")


class ErrorResponse(BaseModel):
    """Schema for API error responses."""

    error: ErrorDetail
    error_id: Optional[str] = None
    timestamp: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "error": {
                        "error_code": "CAPACITY_EXCEEDED",
                        "message": "Not enough seats available: requested 3, available 2",
                        "details": {
                            "requested": 3,
                            "available": 2,
                            "session_id": "123e4567-e89b-12d3-a456-426614174000"
                        },
                        "suggestions": [
                            "Try booking fewer seats",
                            "Choose another time slot"
                        ]
                    }
                },
                {
                    "error": {
                        "error_code": "TOKEN_NOT_FOUND",
                        "message": "Invalid QR code"
                    }
                }
            ]
        }
    }
