"""
Domain Availability Schemas
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class DomainCheckRequest(BaseModel):
    names: List[str] = Field(..., min_length=1, max_length=20)
    tlds: Optional[List[str]] = Field(default=None, min_length=1, max_length=10)


class DomainResult(BaseModel):
    domain: str
    status: str  # available, taken, error
    available: Optional[bool]
    cached: bool
    checked_at: Optional[datetime] = None
    error: Optional[str] = None


class DomainCheckResponse(BaseModel):
    results: Dict[str, DomainResult]
    total: int
    available: int
    errors: int
