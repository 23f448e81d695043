"""
Store — explicit unit of work around a Django database alias.

Components receive a Store instead of reaching for a module-level
connection, so the caller decides which database they write to:

    store = Store('default')
    mill = Mill(store)

Concurrency:
    - Store.atomic() wraps transaction.atomic(using=alias)
    - An OperationalError escaping the block (deadlock, serialization
      failure, lock timeout) is re-raised as TransactionFailure after the
      rollback, so no partial state survives
    - Store.retrying() is the caller-side retry loop for TransactionFailure
"""

import logging
import time
from contextlib import contextmanager

from django.db import DEFAULT_DB_ALIAS, OperationalError, transaction

from ricemill.conf import ricemill_settings
from ricemill.exceptions import TransactionFailure

logger = logging.getLogger('ricemill')


class Store:
    """Handle on one relational store (a Django DB alias)."""

    def __init__(self, alias: str = DEFAULT_DB_ALIAS):
        self.alias = alias

    def __repr__(self) -> str:
        return f"Store({self.alias!r})"

    @contextmanager
    def atomic(self):
        """All-or-nothing block; commit conflicts surface as TransactionFailure."""
        try:
            with transaction.atomic(using=self.alias):
                yield
        except OperationalError as exc:
            raise TransactionFailure('COMMIT_FAILED', detail=str(exc)) from exc

    def objects(self, model):
        """Default manager of ``model`` bound to this store."""
        return model._default_manager.db_manager(self.alias)

    def locked(self, model):
        """Queryset of ``model`` that row-locks what it reads (SELECT ... FOR UPDATE)."""
        return self.objects(model).select_for_update()

    def retrying(self, operation, *args, attempts: int | None = None, **kwargs):
        """
        Run ``operation`` and retry it on TransactionFailure with exponential backoff.

        Other errors propagate on the first attempt.
        """
        attempts = attempts or ricemill_settings.TRANSACTION_RETRIES
        delay = ricemill_settings.RETRY_BACKOFF_SECONDS
        for attempt in range(1, attempts + 1):
            try:
                return operation(*args, **kwargs)
            except TransactionFailure as exc:
                if attempt == attempts:
                    raise
                logger.warning(
                    "ricemill.transaction.retry",
                    extra={"attempt": attempt, "detail": exc.data.get('detail')},
                )
                time.sleep(delay)
                delay *= 2
