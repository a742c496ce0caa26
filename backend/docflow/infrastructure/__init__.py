"""Adapters for the document engine ports"""

from .document_store import SqlAlchemyDocumentStore
from .file_store import LocalFileStore
from .notifier import LoggingNotifier

__all__ = ["SqlAlchemyDocumentStore", "LocalFileStore", "LoggingNotifier"]
