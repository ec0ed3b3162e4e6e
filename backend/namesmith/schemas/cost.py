"""
Cost and Usage Schemas
"""

from decimal import Decimal
from typing import Dict

from pydantic import BaseModel, ConfigDict


class BudgetWindowResponse(BaseModel):
    period: str
    limit: Decimal
    spent: Decimal
    committed: Decimal
    remaining: Decimal
    percentage: float
    exceeded: bool
    alert_needed: bool


class BudgetResponse(BaseModel):
    daily: BudgetWindowResponse
    monthly: BudgetWindowResponse


class ModelUsage(BaseModel):
    calls: int
    tokens: int
    cost: Decimal


class RateWindowUsage(BaseModel):
    used: int
    limit: int
    remaining: int


class UsageResponse(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    period_days: int
    generations: int
    model_calls: int
    successful_calls: int
    failed_calls: int
    success_rate: float
    total_tokens: int
    total_cost: Decimal
    average_response_time_ms: float
    model_breakdown: Dict[str, ModelUsage]
    limits: Dict[str, RateWindowUsage]
