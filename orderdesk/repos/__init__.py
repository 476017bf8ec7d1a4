"""Order store adapters and the directories the core consumes."""

from .memory import (
    MemoryBusinessDirectory,
    MemoryCustomerDirectory,
    MemoryGroupSessionStore,
    MemoryOrderStore,
    MemoryOutboxStore,
)
from .orders_repo import (
    BusinessDirectory,
    CustomerDirectory,
    GroupSessionStore,
    OrderStore,
    OutboxStore,
)

__all__ = [
    "BusinessDirectory",
    "CustomerDirectory",
    "GroupSessionStore",
    "MemoryBusinessDirectory",
    "MemoryCustomerDirectory",
    "MemoryGroupSessionStore",
    "MemoryOrderStore",
    "MemoryOutboxStore",
    "OrderStore",
    "OutboxStore",
]
