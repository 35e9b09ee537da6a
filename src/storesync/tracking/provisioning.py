"""Lazy, repeatable schema provisioning shared by tracker and recorder."""
import logging
from typing import Callable, TypeVar

from storesync.tracking.errors import SchemaMissing

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SchemaGuard:
    """Runs store operations, provisioning the schema when it is missing.

    Writes provision once up front; reads only provision after a
    SchemaMissing. Either way the operation is retried exactly once.
    If provisioning fails, its StorageUnavailable propagates.
    """

    def __init__(self, store):
        self.store = store
        self.provisioned = False

    def run(self, op: Callable[[], T], *, provision_first: bool = False) -> T:
        if provision_first and not self.provisioned:
            self.provision()
        try:
            return op()
        except SchemaMissing as exc:
            logger.warning("%s; provisioning sync tables", exc)
            self.provision()
            return op()

    def provision(self) -> None:
        self.store.ensure_schema()
        self.provisioned = True
