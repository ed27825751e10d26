from tablesync.query_builder.sqlserver.builder import SqlServerScriptBuilder

__all__ = ["SqlServerScriptBuilder"]
