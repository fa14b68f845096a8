"""
Dependency wiring for the FastAPI app.

Store, chat session and SMS gateway are process-wide handles: opened once,
shared by every request and closed by `close_dependencies()` on shutdown.
"""

from __future__ import annotations

import logging
import threading

from fastapi import Depends

from duckfacts.cache import FactCache
from duckfacts.chat import ChatClient
from duckfacts.config import Settings, get_settings
from duckfacts.db import DbClient, InMemoryDbClient, SqlDbClient
from duckfacts.generator import FactGenerator
from duckfacts.sms import InMemorySmsGateway, SmsGateway, SmtpSmsGateway

logger = logging.getLogger(__name__)

_db_client: DbClient | None = None
_chat_client: ChatClient | None = None
_sms_gateway: SmsGateway | None = None
_lock = threading.Lock()


def get_db_client() -> DbClient:
    """
    Return a singleton DB client so facts and subscribers persist across requests.

    Raises StorageError while the store cannot be opened.
    """
    global _db_client
    with _lock:
        if _db_client:
            return _db_client

        settings = get_settings()
        if settings.use_in_memory_backends:
            _db_client = InMemoryDbClient()
        else:
            _db_client = SqlDbClient(settings.database_url)
        return _db_client


def get_chat_client() -> ChatClient:
    global _chat_client
    with _lock:
        if _chat_client:
            return _chat_client

        settings = get_settings()
        _chat_client = ChatClient(
            api_key=settings.api_key or "",
            endpoint=settings.chat_endpoint,
            model=settings.chat_model,
            timeout=settings.chat_timeout_seconds,
        )
        return _chat_client


def get_sms_gateway() -> SmsGateway:
    global _sms_gateway
    with _lock:
        if _sms_gateway:
            return _sms_gateway

        settings = get_settings()
        if settings.use_in_memory_backends or not settings.mailer_host:
            logger.warning("MAILER_HOST not set; SMS messages will not leave this process")
            _sms_gateway = InMemorySmsGateway()
        else:
            _sms_gateway = SmtpSmsGateway(
                host=settings.mailer_host,
                port=settings.mailer_port,
                sender=settings.mailer_from,
                username=settings.mailer_user,
                password=settings.mailer_pass,
                secure=settings.mailer_secure,
                tls_reject_unauthorized=settings.mailer_tls_reject_unauthorized,
            )
        return _sms_gateway


def get_fact_generator(
    db: DbClient = Depends(get_db_client),
    chat: ChatClient = Depends(get_chat_client),
    settings: Settings = Depends(get_settings),
) -> FactGenerator:
    return FactGenerator(db, chat, max_attempts=settings.max_generation_attempts)


def get_fact_cache(
    db: DbClient = Depends(get_db_client),
    generator: FactGenerator = Depends(get_fact_generator),
    settings: Settings = Depends(get_settings),
) -> FactCache:
    return FactCache(db, generator, expiration_seconds=settings.fact_expiration_seconds)


def close_dependencies() -> None:
    global _db_client, _chat_client, _sms_gateway
    with _lock:
        if _db_client:
            _db_client.close()
        if _chat_client:
            _chat_client.close()
        _db_client = None
        _chat_client = None
        _sms_gateway = None
