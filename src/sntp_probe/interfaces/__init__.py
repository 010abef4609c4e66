"""Result contract handed to downstream consumers."""

from .query_result import QueryResult

__all__ = ['QueryResult']
