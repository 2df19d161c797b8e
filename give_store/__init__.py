"""Typed read access to a GiveWP database and flattening of its records."""

from give_store.config import AppConfig
from give_store.flatten import ValueKind, classify, flatten
from give_store.queries import GiveStore
from give_store.records import Money

__all__ = [
    "AppConfig",
    "GiveStore",
    "Money",
    "ValueKind",
    "classify",
    "flatten",
]
