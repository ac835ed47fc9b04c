"""REST data source — authenticated access to the hosted backend.

Public API:
    - RestClient: Async client for tables, RPCs and edge functions
    - eq / in_list: Filter value builders
    - DataSourceError, TransportError, DecodeError: Error types
"""

from poll_results.lib.rest.client import RestClient, eq, in_list
from poll_results.lib.rest.errors import DataSourceError, DecodeError, TransportError

__all__ = [
    "DataSourceError",
    "DecodeError",
    "RestClient",
    "TransportError",
    "eq",
    "in_list",
]
