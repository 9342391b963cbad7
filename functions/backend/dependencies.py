"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging

from backend.config import get_settings
from backend.db import SqlDocumentStore
from launchpad.completion import CompletionToggleEngine
from launchpad.profiles import ProfileService
from launchpad.projects import ProjectService
from launchpad.relationships import RelationshipManager
from shared.document_store import DocumentStore, InMemoryDocumentStore

logger = logging.getLogger(__name__)

_document_store: DocumentStore | None = None


def get_document_store() -> DocumentStore:
    """
    Return a singleton document store so state persists across requests.
    """
    global _document_store
    if _document_store:
        return _document_store

    settings = get_settings()
    max_attempts = settings.transaction_max_attempts
    if settings.use_in_memory_backends:
        _document_store = InMemoryDocumentStore(max_attempts=max_attempts)
    elif settings.use_firestore:
        # Imported lazily so firebase_admin is only initialized when used.
        from firebase_admin import initialize_app

        from shared.firestore_store import FirestoreDocumentStore

        initialize_app()
        _document_store = FirestoreDocumentStore(max_attempts=max_attempts)
    elif settings.database_url:
        _document_store = SqlDocumentStore(
            settings.database_url, max_attempts=max_attempts
        )
    else:
        _document_store = InMemoryDocumentStore(max_attempts=max_attempts)
    logger.info("Using %s", type(_document_store).__name__)
    return _document_store


def get_relationship_manager() -> RelationshipManager:
    return RelationshipManager(get_document_store())


def get_toggle_engine() -> CompletionToggleEngine:
    return CompletionToggleEngine(get_document_store())


def get_project_service() -> ProjectService:
    return ProjectService(get_document_store())


def get_profile_service() -> ProfileService:
    return ProfileService(get_document_store())
