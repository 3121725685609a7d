"""Shared Firestore utilities for the monitoring log.

Usage:
    from devmetrics.common.firestore import get_firestore_client, api_transactions_collection

    client = get_firestore_client()
    collection = client.collection(api_transactions_collection())
"""

from __future__ import annotations

from typing import Any, Dict, Optional, TYPE_CHECKING

from devmetrics.common.config import FirestoreConfig, load_firestore_config

if TYPE_CHECKING:
    from google.cloud.firestore import Client as FirestoreClient


class FirestoreError(Exception):
    """Base exception for Firestore-related errors."""


def get_firestore_client(
    config: Optional[FirestoreConfig] = None,
) -> "FirestoreClient":
    """Get a configured Firestore client.

    Args:
        config: Optional FirestoreConfig. If not provided, loads from environment.

    Raises:
        FirestoreError: If google-cloud-firestore is not installed or
            client initialization fails.
    """
    try:
        from google.cloud import firestore
    except ImportError as e:
        raise FirestoreError(
            "google-cloud-firestore not installed. Run: pip install google-cloud-firestore"
        ) from e

    if config is None:
        config = load_firestore_config()

    kwargs: Dict[str, Any] = {}
    if config.project_id:
        kwargs["project"] = config.project_id
    if config.database_id:
        kwargs["database"] = config.database_id

    try:
        return firestore.Client(**kwargs)
    except Exception as e:
        raise FirestoreError(f"Failed to initialize Firestore client: {e}") from e


def verify_connection(client: "FirestoreClient") -> None:
    """Issue one cheap read so a bad project or missing credentials fail fast.

    Raises:
        FirestoreError: If the round trip fails.
    """
    try:
        next(iter(client.collections()), None)
    except Exception as e:
        raise FirestoreError(f"Firestore connection check failed: {e}") from e


def get_collection_prefix(config: Optional[FirestoreConfig] = None) -> str:
    if config is None:
        config = load_firestore_config()
    return config.collection_prefix


def api_transactions_collection(prefix: Optional[str] = None) -> str:
    """Get the API transaction log collection name."""
    prefix = prefix or get_collection_prefix()
    return f"{prefix}api_transactions"


def frontend_errors_collection(prefix: Optional[str] = None) -> str:
    """Get the frontend error log collection name."""
    prefix = prefix or get_collection_prefix()
    return f"{prefix}frontend_errors"
