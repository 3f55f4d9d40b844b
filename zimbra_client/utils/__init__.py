"""Utility helpers for HTTP, credential storage and filesystem operations."""

from .credential_store import CredentialStore, InMemoryCredentialStore, JsonCredentialStore
from .file_utils import ensure_directory, sanitize_filename
from .http_client import ClientError, HttpClient, ServerError, TransportError

__all__ = [
    "ClientError",
    "CredentialStore",
    "HttpClient",
    "InMemoryCredentialStore",
    "JsonCredentialStore",
    "ServerError",
    "TransportError",
    "ensure_directory",
    "sanitize_filename",
]
