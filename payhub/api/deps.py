"""Dependency wiring for FastAPI routes."""

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from payhub.core.config import Settings, settings
from payhub.db.session import init_db, make_engine, make_session_factory
from payhub.ledger.service import LedgerService
from payhub.ledger.storage.base import LedgerStorage
from payhub.ledger.storage.memory import MemoryLedgerStorage
from payhub.ledger.storage.sql import SqlLedgerStorage

logger = logging.getLogger(__name__)


def build_storage(config: Settings) -> LedgerStorage:
    if config.STORAGE_BACKEND == "memory":
        return MemoryLedgerStorage()

    engine = make_engine(config.DATABASE_URL, echo=config.SQL_ECHO)
    init_db(engine)
    return SqlLedgerStorage(make_session_factory(engine))


def build_ledger(config: Settings) -> LedgerService:
    ledger = LedgerService(build_storage(config), allow_overdraft=config.ALLOW_OVERDRAFT)
    logger.info(
        "Ledger ready: backend=%s overdraft=%s",
        config.STORAGE_BACKEND, "allowed" if config.ALLOW_OVERDRAFT else "refused",
    )

    if config.SEED_DEMO_DATA and config.STORAGE_BACKEND == "memory":
        # Imported here to avoid a cycle with services.auth
        from payhub.ledger.seed import seed_demo_data
        from payhub.services.auth import hash_password

        seed_demo_data(ledger, hash_password)

    return ledger


@lru_cache()
def get_ledger() -> LedgerService:
    return build_ledger(settings)

# Define a reusable type
ledger_dependency = Annotated[LedgerService, Depends(get_ledger)]
