"""
Storage abstraction layer.
Provides the row-level interface the tree engine and services persist through.
"""
from .interface import RowStore
from .sqlite_storage import SQLiteRowStore

__all__ = ['RowStore', 'SQLiteRowStore']
