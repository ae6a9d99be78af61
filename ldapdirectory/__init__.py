from .config import DirectoryConfig, SecurityType, domain_from_dn
from .connection import DirectoryConnection, Entry, LdapConnection, SearchRequest
from .errors import (
    AggregatingError,
    InvalidConfig,
    MultipleEntriesReturned,
    NoEntriesReturned,
    SearchError,
    SizeLimitExceeded,
    TransportError,
)
from .search import DirectorySearch

__version__ = "1.0.0"

__all__ = [
    "AggregatingError",
    "DirectoryConfig",
    "DirectoryConnection",
    "DirectorySearch",
    "Entry",
    "InvalidConfig",
    "LdapConnection",
    "MultipleEntriesReturned",
    "NoEntriesReturned",
    "SearchError",
    "SearchRequest",
    "SecurityType",
    "SizeLimitExceeded",
    "TransportError",
    "domain_from_dn",
]
