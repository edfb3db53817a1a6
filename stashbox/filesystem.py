"""Virtual filesystem service for StashBox.

Presents folders and files on top of a flat object store. Hierarchy is
derived from key prefixes (see ``keys``); folders exist through zero-byte
marker objects. The service holds no per-request state and can be shared by
concurrent request handlers.
"""

import mimetypes
import secrets
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote, unquote

from .errors import FileTooLarge, InvalidRequest, NotFound, QuotaExceeded, StashBoxError
from .keys import (
    FOLDER_CONTENT_TYPE,
    MARKER_SUFFIX,
    DecodedKey,
    MalformedKey,
    PathLike,
    decode_key,
    encode_file_key,
    encode_folder_marker_key,
    folder_prefix,
    validate_name,
    validate_owner,
    validate_path,
)
from .logging_config import get_logger
from .models import Entry, StoredObject, UsageStats
from .object_store import ObjectStoreClient
from .quota import QuotaLedger
from .share_index import SHARE_NOT_FOUND, ShareTokenIndex


logger = get_logger(__name__)

DEFAULT_MAX_FILE_SIZE = 100 * 1024 * 1024  # 100 MB
DEFAULT_CONTENT_TYPE = "application/octet-stream"
STAMP_DIGITS = 20


def guess_content_type(name: str) -> str:
    """Guess a MIME type from a file name."""
    content_type, _ = mimetypes.guess_type(name)
    return content_type or DEFAULT_CONTENT_TYPE


class FilesystemService:
    """Folder/file operations for one object store, partitioned by owner."""

    def __init__(self, store: ObjectStoreClient, ledger: QuotaLedger,
                 share_index: ShareTokenIndex, config: Optional[Dict[str, Any]] = None,
                 clock: Callable[[], float] = time.time):
        """Initialize the filesystem service.

        Args:
            store: Object store client
            ledger: Quota ledger consulted before writes
            share_index: Share token index
            config: Upload configuration (``max_file_size``, ``key_stamp``)
            clock: Seconds-since-epoch source, used by the ``timestamp`` stamp
        """
        config = config or {}
        self.store = store
        self.ledger = ledger
        self.share_index = share_index
        self.clock = clock
        self.max_file_size = int(config.get('max_file_size', DEFAULT_MAX_FILE_SIZE))
        self.key_stamp = config.get('key_stamp', 'random')
        if self.key_stamp not in ('random', 'timestamp'):
            raise ValueError(f"Unknown key_stamp strategy: {self.key_stamp}")

    def upload(self, owner_id: str, parent_path: PathLike, name: str, content: bytes,
               size_bytes: Optional[int] = None, content_type: Optional[str] = None) -> Entry:
        """Store a new file.

        Args:
            owner_id: Owner supplied by the identity provider
            parent_path: Destination folder, empty for the owner root
            name: Logical file name
            content: File body
            size_bytes: Declared size; must match ``len(content)`` when given
            content_type: MIME type, guessed from the name when omitted

        Returns:
            The new file Entry

        Raises:
            InvalidName: If the name or a parent segment is invalid
            InvalidRequest: If size_bytes does not match the content length
            FileTooLarge: If the file exceeds the per-file limit
            QuotaExceeded: If the owner has no room left
            NotFound: If the destination folder does not exist
            StoreUnavailable: If the object store write fails
        """
        validate_owner(owner_id)
        segments = validate_path(parent_path)
        validate_name(name)

        size = len(content)
        if size_bytes is not None and size_bytes != size:
            raise InvalidRequest(f"Declared size {size_bytes} does not match content length {size}")
        if size > self.max_file_size:
            raise FileTooLarge(size, self.max_file_size)

        self._require_folder(owner_id, segments)

        if not self.ledger.reserve(owner_id, size):
            raise QuotaExceeded(owner_id, size, self.ledger.usage(owner_id), self.ledger.limit(owner_id))

        content_type = content_type or guess_content_type(name)
        key = encode_file_key(owner_id, segments, name, self._next_stamp())
        self.store.put(
            key,
            content,
            content_type,
            metadata={'display-name': quote(name)},
            content_disposition=f"attachment; filename*=UTF-8''{quote(name)}",
        )
        logger.info(f"Uploaded {name} for {owner_id} ({size} bytes)")

        return Entry(
            key=key,
            owner_id=owner_id,
            logical_name=name,
            parent_path=segments,
            is_folder=False,
            size_bytes=size,
            content_type=content_type,
            last_modified=datetime.now(timezone.utc),
            url=self.store.public_url(key),
        )

    def list(self, owner_id: str, parent_path: PathLike = ()) -> List[Entry]:
        """List the direct children of a folder (non-recursive).

        Every result page is drained before returning. Keys that do not
        decode are skipped.
        """
        validate_owner(owner_id)
        segments = validate_path(parent_path)
        prefix = folder_prefix(owner_id, segments)

        entries = []
        for obj in self.store.list_by_prefix(prefix):
            try:
                decoded = decode_key(obj.key)
            except MalformedKey:
                logger.warning(f"Skipping undecodable key: {obj.key}")
                continue
            if decoded.parent_path != segments:
                continue
            entries.append(self._to_entry(obj.key, decoded, obj.size, obj.last_modified))

        if entries:
            tokens = self.share_index.tokens_under(prefix)
            for entry in entries:
                entry.share_token = tokens.get(entry.key)

        entries.sort(key=lambda entry: (not entry.is_folder, entry.logical_name.casefold()))
        return entries

    def create_folder(self, owner_id: str, parent_path: PathLike, name: str) -> Entry:
        """Create a folder by writing its marker object.

        Creating an existing folder again rewrites the same marker and is not
        an error.
        """
        validate_owner(owner_id)
        segments = validate_path(parent_path)
        validate_name(name)
        self._require_folder(owner_id, segments)

        key = encode_folder_marker_key(owner_id, segments, name)
        self.store.put(key, b'', FOLDER_CONTENT_TYPE)
        logger.info(f"Created folder {'/'.join(segments + (name,))} for {owner_id}")

        return Entry(
            key=key,
            owner_id=owner_id,
            logical_name=name,
            parent_path=segments,
            is_folder=True,
            content_type=FOLDER_CONTENT_TYPE,
            last_modified=datetime.now(timezone.utc),
        )

    def delete_entry(self, owner_id: str, key: str):
        """Delete a file, or a folder together with everything beneath it.

        Folder descendants are deleted one by one, deepest first. A failed
        descendant delete is logged and skipped; only a failure to delete the
        folder's own marker, which goes last, is raised.

        Raises:
            NotFound: If the key is not the owner's or nothing exists there
            StoreUnavailable: If the target object (or folder marker) delete fails
        """
        decoded = self._owned(owner_id, key)

        if not decoded.is_folder:
            self.store.head(key)
            self.store.delete(key)
            logger.info(f"Deleted file {key}")
            return

        prefix = key[:-len(MARKER_SUFFIX)]
        descendants = [obj.key for obj in self.store.list_by_prefix(prefix) if obj.key != key]
        if not descendants and not self.store.exists(key):
            raise NotFound("Entry not found")

        descendants.sort(key=lambda k: (-k.count('/'), k.endswith('/' + MARKER_SUFFIX), k))
        failed = []
        for descendant in descendants:
            try:
                self.store.delete(descendant)
            except StashBoxError as e:
                logger.warning(f"Failed to delete {descendant} while removing folder {prefix}: {e}")
                failed.append(descendant)

        self.store.delete(key)
        if failed:
            logger.warning(f"Deleted folder {prefix} with {len(failed)} descendant(s) left behind")
        else:
            logger.info(f"Deleted folder {prefix} and {len(descendants)} descendant(s)")

    def read(self, owner_id: str, key: str) -> StoredObject:
        """Download one of the owner's files."""
        decoded = self._owned(owner_id, key)
        if decoded.is_folder:
            raise NotFound("Entry not found")
        return self.store.get(key)

    def share(self, owner_id: str, key: str) -> str:
        """Return a share token for one of the owner's files.

        An existing token that still maps to the file is reused; otherwise a
        new one is issued.

        Raises:
            NotFound: If the key is not one of the owner's existing files
            InvalidRequest: If the key is a folder
        """
        decoded = self._owned(owner_id, key)
        if decoded.is_folder:
            raise InvalidRequest("Only files can be shared")
        self.store.head(key)

        token = self.share_index.lookup(key)
        if token is None:
            token = self.share_index.issue(key)
        return token

    def resolve_share(self, token: str) -> Entry:
        """Describe the file behind a share token.

        Raises:
            NotFound: With the same message whether the token never existed
                or its file has been deleted
        """
        info = self.share_index.resolve_object(token)
        try:
            decoded = decode_key(info.key)
        except MalformedKey:
            raise NotFound(SHARE_NOT_FOUND) from None
        if decoded.is_folder:
            raise NotFound(SHARE_NOT_FOUND)

        entry = self._to_entry(info.key, decoded, info.size, info.last_modified)
        display_name = info.metadata.get('display-name')
        if display_name:
            entry.logical_name = unquote(display_name)
        if info.content_type:
            entry.content_type = info.content_type
        entry.share_token = token
        return entry

    def usage(self, owner_id: str) -> UsageStats:
        validate_owner(owner_id)
        return self.ledger.stats(owner_id)

    def _next_stamp(self) -> str:
        if self.key_stamp == 'timestamp':
            return str(int(self.clock() * 1000))
        return f"{secrets.randbelow(10 ** STAMP_DIGITS):0{STAMP_DIGITS}d}"

    def _require_folder(self, owner_id: str, segments):
        if not segments:
            return
        marker = encode_folder_marker_key(owner_id, segments[:-1], segments[-1])
        if not self.store.exists(marker):
            raise NotFound(f"Folder not found: {'/'.join(segments)}")

    def _owned(self, owner_id: str, key: str) -> DecodedKey:
        validate_owner(owner_id)
        if not isinstance(key, str) or not key.startswith(owner_id + '/'):
            raise NotFound("Entry not found")
        try:
            return decode_key(key)
        except MalformedKey:
            raise NotFound("Entry not found") from None

    def _to_entry(self, key: str, decoded: DecodedKey, size: int,
                  last_modified: Optional[datetime]) -> Entry:
        if decoded.is_folder:
            return Entry(
                key=key,
                owner_id=decoded.owner_id,
                logical_name=decoded.display_name,
                parent_path=decoded.parent_path,
                is_folder=True,
                content_type=FOLDER_CONTENT_TYPE,
                last_modified=last_modified,
            )
        return Entry(
            key=key,
            owner_id=decoded.owner_id,
            logical_name=decoded.display_name,
            parent_path=decoded.parent_path,
            is_folder=False,
            size_bytes=size,
            content_type=guess_content_type(decoded.display_name),
            last_modified=last_modified,
            url=self.store.public_url(key),
        )
