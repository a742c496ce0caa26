"""Declarative base and shared column types of the DocFlow tables"""

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.orm import declarative_base

# JSONB on PostgreSQL, plain JSON on SQLite (tests, local runs)
JSONColumn = JSON().with_variant(JSONB(), "postgresql")

# Ordered slot names of a document. Item assignment and append on a loaded
# row mark it dirty, so in-place edits are flushed like reassignments.
SlotNameList = MutableList.as_mutable(JSONColumn)

Base = declarative_base()
