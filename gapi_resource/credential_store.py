"""
Credential storage for resource instances.

One record per instance, keyed by the instance name. The store itself is a
small keyed-record interface (first/insert/update) with a Supabase table
implementation and an in-memory one; CredentialStoreManager seeds and
updates records on top of it.
"""
from __future__ import annotations

import copy
import logging
from threading import RLock
from typing import Any, Dict, List, Optional, Protocol

import httpx
from postgrest.exceptions import APIError

from .config import ResourceConfig
from .exceptions import CredentialStoreError
from .models import InstanceCredential, TokenPair

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------- #
# Store Interface
# --------------------------------------------------------------------------- #

class CredentialStore(Protocol):
    """Persistent keyed-record store used for credential records."""

    def first(self, filter: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Return the first record matching every key of filter, or None."""
        ...

    def insert(self, record: Dict[str, Any]) -> Dict[str, Any]:
        """Insert a record and return it as stored."""
        ...

    def update(self, filter: Dict[str, Any], patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply patch to the first matching record and return it, or None."""
        ...


def _matches(record: Dict[str, Any], filter: Dict[str, Any]) -> bool:
    return all(record.get(key) == value for key, value in filter.items())


class MemoryCredentialStore:
    """
    Process-local credential store.

    Useful for development and tests; records are lost when the process exits.
    """

    def __init__(self):
        self._records: List[Dict[str, Any]] = []
        self._lock = RLock()

    def first(self, filter: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            for record in self._records:
                if _matches(record, filter):
                    return copy.deepcopy(record)
        return None

    def insert(self, record: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            self._records.append(copy.deepcopy(record))
        return copy.deepcopy(record)

    def update(self, filter: Dict[str, Any], patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            for record in self._records:
                if _matches(record, filter):
                    record.update(copy.deepcopy(patch))
                    return copy.deepcopy(record)
        return None

    def all(self) -> List[Dict[str, Any]]:
        """All stored records, oldest first."""
        with self._lock:
            return copy.deepcopy(self._records)


class SupabaseCredentialStore:
    """Credential store backed by a Supabase table."""

    def __init__(self, db, table: str = "gapi_resource_auth_store"):
        """
        Args:
            db: Supabase client
            table: Name of the table holding one row per instance
        """
        self._db = db
        self._table = table

    def _query(self, builder, filter: Dict[str, Any]):
        for key, value in filter.items():
            builder = builder.eq(key, value)
        return builder

    def first(self, filter: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        result = self._query(self._db.table(self._table).select("*"), filter).limit(1).execute()
        if result.data:
            return result.data[0]
        return None

    def insert(self, record: Dict[str, Any]) -> Dict[str, Any]:
        result = self._db.table(self._table).insert(record).execute()
        return result.data[0] if result.data else record

    def update(self, filter: Dict[str, Any], patch: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        result = self._query(self._db.table(self._table).update(patch), filter).execute()
        if result.data:
            return result.data[0]
        return None


# --------------------------------------------------------------------------- #
# Credential Store Manager
# --------------------------------------------------------------------------- #

STORE_ERRORS = (APIError, httpx.HTTPError)


def build_redirect_uri(host: str, instance: str) -> str:
    """Callback URL registered with Google for an instance."""
    return "/".join(["http:/", host, instance, "auth", "v1", "oauth2callback"])


class CredentialStoreManager:
    """
    Seeds and updates the credential record of each resource instance.

    There is no lock around the lookup and the insert in ensure_credential;
    two first requests for the same instance can both insert.
    """

    def __init__(self, store: CredentialStore):
        self._store = store

    def get_credential(self, instance: str) -> Optional[InstanceCredential]:
        """Get the credential record for an instance, or None if not seeded."""
        try:
            record = self._store.first({"instance": instance})
        except STORE_ERRORS as e:
            logger.error(f"Credential lookup failed for instance {instance}: {e}")
            raise CredentialStoreError(f"Credential lookup failed: {e}") from e
        return InstanceCredential.model_validate(record) if record else None

    def ensure_credential(
        self,
        instance: str,
        host: str,
        config: ResourceConfig,
    ) -> InstanceCredential:
        """
        Get the credential record for an instance, seeding it on first use.

        Args:
            instance: Name of the resource instance
            host: Serving host:port, used for the redirect URI
            config: Static settings of the instance

        Returns:
            The existing or newly created credential record

        Raises:
            CredentialStoreError: If the store lookup or insert fails
        """
        existing = self.get_credential(instance)
        if existing:
            return existing

        credential = InstanceCredential(
            instance=instance,
            host=host,
            client_id=config.client_id,
            client_secret=config.client_secret,
            scope=" ".join(config.scopes),
            redirect_uri=build_redirect_uri(host, instance),
        )

        try:
            record = self._store.insert(credential.model_dump(exclude_none=True))
        except STORE_ERRORS as e:
            logger.error(f"Credential insert failed for instance {instance}: {e}")
            raise CredentialStoreError(f"Credential insert failed: {e}") from e

        logger.info(f"Seeded credential record for instance {instance} (redirect {credential.redirect_uri})")
        return InstanceCredential.model_validate(record)

    def record_tokens(self, instance: str, tokens: TokenPair) -> InstanceCredential:
        """
        Store the token pair obtained from the OAuth2 exchange.

        Args:
            instance: Name of the resource instance
            tokens: Access and refresh tokens

        Returns:
            The updated credential record

        Raises:
            CredentialStoreError: If the record does not exist or the update fails
        """
        patch = {"access_token": tokens.access_token}
        if tokens.refresh_token:
            patch["refresh_token"] = tokens.refresh_token

        try:
            record = self._store.update({"instance": instance}, patch)
        except STORE_ERRORS as e:
            logger.error(f"Token update failed for instance {instance}: {e}")
            raise CredentialStoreError(f"Token update failed: {e}") from e

        if record is None:
            raise CredentialStoreError(f"No credential record for instance {instance}")

        logger.info(f"Recorded tokens for instance {instance}")
        return InstanceCredential.model_validate(record)
