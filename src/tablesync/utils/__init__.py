from tablesync.utils.decorators import retry, retry_with_backoff, traced

__all__ = ["traced", "retry_with_backoff", "retry"]
