"""
HTTP routes for the duck facts API.
"""

from __future__ import annotations

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Response
from fastapi.responses import PlainTextResponse

from duckfacts.broadcast import broadcast
from duckfacts.cache import FactCache, format_fact
from duckfacts.config import Settings, get_settings
from duckfacts.db import DbClient
from duckfacts.dependencies import (
    get_db_client,
    get_fact_cache,
    get_fact_generator,
    get_sms_gateway,
)
from duckfacts.generator import FactGenerator
from duckfacts.schemas import (
    FactResponse,
    HealthResponse,
    RouteInfo,
    RouteListingResponse,
    SubscriberResponse,
    SubscriptionRequest,
)
from duckfacts.sms import SmsGateway

logger = logging.getLogger(__name__)

router = APIRouter()

ROUTES = [
    RouteInfo(path="/health", method="GET", description="Health check route"),
    RouteInfo(
        path="/fact",
        method="GET",
        description="Returns a singular duck fact, returns fact in both English and French",
    ),
    RouteInfo(
        path="/send",
        method="POST",
        description="Sends the current duck fact to every subscriber (requires authorization)",
    ),
    RouteInfo(
        path="/subscribe",
        method="POST",
        description="Subscribes a phone number to duck facts",
    ),
    RouteInfo(
        path="/unsubscribe",
        method="POST",
        description="Unsubscribes a phone number from duck facts",
    ),
    RouteInfo(
        path="/bonus",
        method="POST",
        description="Generates a brand new duck fact (requires authorization)",
    ),
]


def _check_secret(expected: Optional[str], provided: Optional[str]) -> None:
    if not expected or provided is None or not hmac.compare_digest(
        provided.encode("utf-8"), expected.encode("utf-8")
    ):
        raise HTTPException(status_code=401, detail="missing or incorrect authorization")


def require_send_secret(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    _check_secret(settings.send_secret, authorization)


def require_bonus_secret(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    _check_secret(settings.bonus_secret, authorization)


@router.get("/", response_model=RouteListingResponse)
def index():
    return RouteListingResponse(
        routes=ROUTES,
        description="Duck fact generation server, now powered by AI!",
    )


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="healthy")


@router.get("/fact", response_class=PlainTextResponse)
def fact(cache: FactCache = Depends(get_fact_cache)):
    return PlainTextResponse(format_fact(cache.get_fact()))


@router.post("/send", dependencies=[Depends(require_send_secret)])
def send(
    cache: FactCache = Depends(get_fact_cache),
    db: DbClient = Depends(get_db_client),
    gateway: SmsGateway = Depends(get_sms_gateway),
    settings: Settings = Depends(get_settings),
):
    """
    Broadcast the current fact. Individual send failures are logged and do
    not change the response.
    """
    message = format_fact(cache.get_fact())
    subscribers = db.list_subscribers()
    logger.info("Sending to %d subscribers", len(subscribers))
    outcomes = broadcast(
        message, subscribers, gateway, max_workers=settings.broadcast_max_workers
    )
    failed = sum(1 for outcome in outcomes if not outcome.success)
    logger.info("Broadcast finished: %d sent, %d failed", len(outcomes) - failed, failed)
    return PlainTextResponse("Sent", status_code=201)


@router.post("/subscribe", response_model=SubscriberResponse, status_code=201)
def subscribe(payload: SubscriptionRequest, db: DbClient = Depends(get_db_client)):
    subscriber = db.add_subscriber(payload.number)
    logger.info("Subscribed %s as %d", subscriber.number, subscriber.id)
    return SubscriberResponse(id=subscriber.id, number=subscriber.number)


@router.post("/unsubscribe", status_code=204)
def unsubscribe(payload: SubscriptionRequest, db: DbClient = Depends(get_db_client)):
    removed = db.remove_subscriber(payload.number)
    logger.info("Unsubscribed %s (%d rows)", payload.number, removed)
    return Response(status_code=204)


@router.post(
    "/bonus",
    response_model=FactResponse,
    status_code=201,
    dependencies=[Depends(require_bonus_secret)],
)
def bonus(generator: FactGenerator = Depends(get_fact_generator)):
    fact = generator.generate()
    return FactResponse(**fact.as_dict())
