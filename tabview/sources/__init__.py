"""Data sources feeding the query pipeline."""

from .base import DataSource
from .current_tabs import CURRENT_TABS_SCHEMA, CurrentTabsDataSource
from .memory import InMemoryDataSource
from .saved_tabs import SAVED_TABS_SCHEMA, SavedTabsDataSource

__all__ = [
    "DataSource",
    "CurrentTabsDataSource",
    "SavedTabsDataSource",
    "InMemoryDataSource",
    "CURRENT_TABS_SCHEMA",
    "SAVED_TABS_SCHEMA",
]
