"""Shared Firestore client lifecycle.

The API initializes the client once at startup and closes it at shutdown;
everything in between reuses the same handle (and its connection pool).
"""
from __future__ import annotations

import logging
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore

from .config import ConfigurationError, Settings

logger = logging.getLogger(__name__)

APP_NAME = "business-finder"

_firestore_app: Optional[firebase_admin.App] = None
_firestore_client = None


def init_firestore_client(settings: Settings):
    """Create the process-wide Firestore client, or return the existing one."""

    global _firestore_app, _firestore_client
    if _firestore_client is not None:
        return _firestore_client

    if not settings.firestore_project:
        raise ConfigurationError(
            "BF_FIRESTORE_PROJECT is required to connect to Firestore."
        )

    cred = None
    if settings.firestore_credentials:
        cred = credentials.Certificate(settings.firestore_credentials)

    logger.info(
        "Connecting to Firestore project %s (credentials: %s)",
        settings.firestore_project,
        "service account file" if cred else "application default",
    )
    _firestore_app = firebase_admin.initialize_app(
        cred,
        options={"projectId": settings.firestore_project},
        name=APP_NAME,
    )
    _firestore_client = firestore.client(app=_firestore_app)
    return _firestore_client


def get_firestore_client():
    """Return the cached Firestore client."""

    if _firestore_client is None:
        raise ConfigurationError(
            "Firestore client is not initialized; call init_firestore_client() first."
        )
    return _firestore_client


def close_firestore_client() -> None:
    """Close the cached client and tear down its firebase app."""

    global _firestore_app, _firestore_client
    if _firestore_client is not None:
        _firestore_client.close()
        _firestore_client = None
    if _firestore_app is not None:
        firebase_admin.delete_app(_firestore_app)
        _firestore_app = None
        logger.info("Firestore client closed")
