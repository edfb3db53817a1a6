"""Share token index for StashBox.

A share token is an opaque indirection to one storage key. The mapping lives
in the same bucket as the files::

    .share/{token}               body = target storage key
    .share-keys/{key}/{token}    zero-byte reverse record

Resolution always re-checks that the target still exists, so a token for a
deleted file fails exactly like a token that was never issued.
"""

import re
import secrets
from typing import Dict, Optional

from .errors import NotFound, StoreUnavailable
from .logging_config import get_logger
from .models import ObjectInfo
from .object_store import ObjectStoreClient


logger = get_logger(__name__)

SHARE_PREFIX = ".share/"
REVERSE_PREFIX = ".share-keys/"
TOKEN_BYTES = 32
SHARE_NOT_FOUND = "File not found or link expired"
SHARE_UNAVAILABLE = "Shared file is temporarily unavailable"

_TOKEN_RE = re.compile(r"^[A-Za-z0-9_-]{8,128}$")


class ShareTokenIndex:
    """Issues and resolves public share tokens."""

    def __init__(self, store: ObjectStoreClient):
        self.store = store

    def issue(self, key: str) -> str:
        """Issue a new token for a storage key.

        Callers that want one token per key check ``lookup`` first.

        Args:
            key: Target storage key

        Returns:
            The new share token
        """
        token = secrets.token_urlsafe(TOKEN_BYTES)
        while self.store.exists(SHARE_PREFIX + token):
            token = secrets.token_urlsafe(TOKEN_BYTES)

        self.store.put(SHARE_PREFIX + token, key.encode('utf-8'), 'text/plain; charset=utf-8')
        self.store.put(f"{REVERSE_PREFIX}{key}/{token}", b'', 'application/octet-stream')
        logger.info(f"Issued share token for {key}")
        return token

    def resolve(self, token: str) -> str:
        """Resolve a token to the storage key it points at.

        Raises:
            NotFound: If the token is unknown or its target no longer exists
            StoreUnavailable: With a fixed message if the store fails mid-lookup
        """
        return self.resolve_object(token).key

    def resolve_object(self, token: str) -> ObjectInfo:
        """Resolve a token and return the target object's attributes."""
        if not isinstance(token, str) or not _TOKEN_RE.match(token):
            raise NotFound(SHARE_NOT_FOUND)

        try:
            key = self.store.get(SHARE_PREFIX + token).body.decode('utf-8')
        except (NotFound, UnicodeDecodeError):
            raise NotFound(SHARE_NOT_FOUND) from None
        except StoreUnavailable as e:
            logger.warning(f"Store failure while reading share token: {e.message}")
            raise StoreUnavailable(SHARE_UNAVAILABLE) from None
        if not key:
            raise NotFound(SHARE_NOT_FOUND)

        try:
            return self.store.head(key)
        except NotFound:
            logger.debug(f"Share token points at a deleted object: {key}")
            raise NotFound(SHARE_NOT_FOUND) from None
        except StoreUnavailable as e:
            logger.warning(f"Store failure while checking shared object: {e.message}")
            raise StoreUnavailable(SHARE_UNAVAILABLE) from None

    def lookup(self, key: str) -> Optional[str]:
        """Return the newest token still mapped to ``key``, if any."""
        prefix = f"{REVERSE_PREFIX}{key}/"
        records = [
            obj for obj in self.store.list_by_prefix(prefix)
            if '/' not in obj.key[len(prefix):]
        ]
        records.sort(key=lambda obj: obj.last_modified.timestamp() if obj.last_modified else 0,
                     reverse=True)

        for record in records:
            token = record.key[len(prefix):]
            try:
                target = self.store.get(SHARE_PREFIX + token).body.decode('utf-8')
            except NotFound:
                continue
            if target == key:
                return token
        return None

    def tokens_under(self, prefix: str) -> Dict[str, str]:
        """Map every shared key under ``prefix`` to its newest token in one listing."""
        found = {}
        for record in self.store.list_by_prefix(REVERSE_PREFIX + prefix):
            key, _, token = record.key[len(REVERSE_PREFIX):].rpartition('/')
            if not key or not token:
                continue
            stamp = record.last_modified.timestamp() if record.last_modified else 0
            if key not in found or stamp >= found[key][0]:
                found[key] = (stamp, token)
        return {key: token for key, (_, token) in found.items()}
