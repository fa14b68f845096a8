"""
Pydantic schemas for the duck facts API.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, StrictStr


class SubscriptionRequest(BaseModel):
    number: StrictStr = Field(..., min_length=1)


class SubscriberResponse(BaseModel):
    id: int
    number: str


class FactResponse(BaseModel):
    id: int
    en: str
    fr: str
    created: int


class HealthResponse(BaseModel):
    status: Literal["healthy"]


class RouteInfo(BaseModel):
    path: str
    method: str
    description: str


class RouteListingResponse(BaseModel):
    routes: list[RouteInfo]
    description: str
