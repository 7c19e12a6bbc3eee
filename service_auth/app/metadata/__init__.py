"""
Identity provider metadata retrieval.

The retriever resolves a discovery address in two cache-aside steps: the
discovery document first, then the key set it points at. Only the raw
documents are cached; parsing happens on every call.
"""

from .cache_gate import CacheGate
from .cancellation import CancellationToken
from .fetcher import DocumentFetcher, HttpDocumentFetcher
from .manager import ConfigurationManager
from .models import CacheEntry, OidcConfiguration, SigningKey
from .parser import parse_configuration, parse_key_set
from .retriever import MetadataRetriever, RetrievalResult, classify_error

__all__ = [
    "CacheEntry",
    "CacheGate",
    "CancellationToken",
    "ConfigurationManager",
    "DocumentFetcher",
    "HttpDocumentFetcher",
    "MetadataRetriever",
    "OidcConfiguration",
    "RetrievalResult",
    "SigningKey",
    "classify_error",
    "parse_configuration",
    "parse_key_set",
]
