"""Script operations.

Pure data objects describing WHAT script to produce. Builders in
``tablesync.query_builder`` decide HOW to render them.
"""

from tablesync.operations.base import BaseOperation
from tablesync.operations.ddl import AddPrimaryKey, CreateStagingTable, DropTable
from tablesync.operations.dml import BulkInsert, MergeTable, ReadIdentity

__all__ = [
    "BaseOperation",
    "CreateStagingTable",
    "AddPrimaryKey",
    "DropTable",
    "MergeTable",
    "BulkInsert",
    "ReadIdentity",
]
