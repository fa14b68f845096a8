"""
Concurrent fan-out of one message to every subscriber.
"""

from __future__ import annotations

import concurrent.futures
import logging
from dataclasses import dataclass
from typing import Sequence

from duckfacts.db import SubscriberRecord
from duckfacts.sms import SmsGateway

logger = logging.getLogger(__name__)


@dataclass
class SendOutcome:
    subscriber: SubscriberRecord
    success: bool


def _send_one(gateway: SmsGateway, subscriber: SubscriberRecord, message: str) -> bool:
    try:
        success = gateway.send(subscriber.number, message)
    except Exception:
        logger.exception("SEND FAILURE: %s raised", subscriber.number)
        return False
    if success:
        logger.info("SEND SUCCESS: %s", subscriber.number)
    else:
        logger.warning("SEND FAILURE: %s", subscriber.number)
    return success


def broadcast(
    message: str,
    subscribers: Sequence[SubscriberRecord],
    gateway: SmsGateway,
    max_workers: int = 8,
) -> list[SendOutcome]:
    """
    Sends `message` to every subscriber and waits for all attempts.

    A failed or raising send only affects that subscriber's outcome. Outcomes
    are returned in the same order as `subscribers`.
    """
    if not subscribers:
        return []
    workers = max(1, min(max_workers, len(subscribers)))
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(_send_one, gateway, subscriber, message)
            for subscriber in subscribers
        ]
        results = [future.result() for future in futures]
    return [
        SendOutcome(subscriber=subscriber, success=success)
        for subscriber, success in zip(subscribers, results)
    ]
