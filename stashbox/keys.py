"""Key codec for StashBox.

Maps the user-visible hierarchy (owner, parent folders, logical name) onto
flat object-store keys and back. Layout::

    {owner}/{parent/path}/{stamp}-{name}        file
    {owner}/{parent/path}/{name}/.foldermarker  folder marker

The parent path segment is omitted for entries in the owner root. Nothing in
this module performs I/O.
"""

import re
from typing import NamedTuple, Sequence, Tuple, Union

from .errors import InvalidName


MARKER_SUFFIX = ".foldermarker"
FOLDER_CONTENT_TYPE = "application/x-directory"
SEPARATOR = "/"

PathLike = Union[str, Sequence[str], None]

_STAMP_RE = re.compile(r"^([0-9]+)-(.+)$", re.DOTALL)
_DIGITS_RE = re.compile(r"[0-9]+")


class MalformedKey(ValueError):
    """Raised when a storage key does not follow the StashBox layout."""


class DecodedKey(NamedTuple):
    owner_id: str
    parent_path: Tuple[str, ...]
    is_folder: bool
    display_name: str


def split_path(path: PathLike) -> Tuple[str, ...]:
    """Normalize a folder path into a tuple of segments.

    Accepts ``"a/b"``, ``"/a/b/"``, ``""``/``None`` (root) or a sequence of
    segment strings.
    """
    if path is None:
        return ()
    if isinstance(path, str):
        return tuple(part for part in path.split(SEPARATOR) if part)
    return tuple(path)


def validate_name(name: str) -> str:
    """Check a logical file or folder name.

    Raises:
        InvalidName: If the name is empty, contains '/', or is '.' or '..'
    """
    if not isinstance(name, str) or not name:
        raise InvalidName(name if isinstance(name, str) else repr(name))
    if SEPARATOR in name:
        raise InvalidName(name)
    if name in (".", ".."):
        raise InvalidName(name, "relative path components are not allowed")
    return name


def validate_owner(owner_id: str) -> str:
    validate_name(owner_id)
    # Dot-prefixed top-level prefixes hold the share index.
    if owner_id.startswith("."):
        raise InvalidName(owner_id, "owner ids must not start with '.'")
    return owner_id


def validate_path(path: PathLike) -> Tuple[str, ...]:
    segments = split_path(path)
    for segment in segments:
        validate_name(segment)
    return segments


def folder_prefix(owner_id: str, path: PathLike = ()) -> str:
    """Return the listing prefix that holds a folder's contents."""
    segments = (validate_owner(owner_id),) + validate_path(path)
    return SEPARATOR.join(segments) + SEPARATOR


def encode_file_key(owner_id: str, parent_path: PathLike, name: str,
                    timestamp: Union[int, str]) -> str:
    """Build the storage key for an uploaded file.

    Args:
        owner_id: Owner partition (first key segment)
        parent_path: Containing folder, empty for the owner root
        name: Logical file name
        timestamp: Numeric stamp that makes the key unique per upload

    Returns:
        Storage key string
    """
    stamp = str(timestamp)
    if not _DIGITS_RE.fullmatch(stamp):
        raise ValueError(f"Key stamp must be a non-negative integer, got {timestamp!r}")
    return folder_prefix(owner_id, parent_path) + f"{stamp}-{validate_name(name)}"


def encode_folder_marker_key(owner_id: str, parent_path: PathLike, name: str) -> str:
    """Build the key of the zero-byte marker object representing a folder."""
    return folder_prefix(owner_id, parent_path) + validate_name(name) + SEPARATOR + MARKER_SUFFIX


def is_marker_key(key: str) -> bool:
    return key.rsplit(SEPARATOR, 1)[-1] == MARKER_SUFFIX


def strip_stamp(segment: str) -> str:
    """Recover the original file name from a stamped key segment."""
    match = _STAMP_RE.match(segment)
    if match:
        return match.group(2)
    return segment


def decode_key(key: str) -> DecodedKey:
    """Decode a storage key back into owner, parent path and display name.

    Raises:
        MalformedKey: If the key cannot have been produced by the encoders
    """
    segments = key.split(SEPARATOR)
    if len(segments) < 2 or not all(segments):
        raise MalformedKey(f"Not a StashBox key: {key!r}")

    owner_id = segments[0]
    if segments[-1] == MARKER_SUFFIX:
        if len(segments) < 3:
            raise MalformedKey(f"Folder marker without a folder name: {key!r}")
        return DecodedKey(owner_id, tuple(segments[1:-2]), True, segments[-2])

    return DecodedKey(owner_id, tuple(segments[1:-1]), False, strip_stamp(segments[-1]))


def folder_path_of_marker(key: str) -> Tuple[str, ...]:
    """Return the logical path (parent + name) of the folder a marker key represents."""
    decoded = decode_key(key)
    if not decoded.is_folder:
        raise MalformedKey(f"Not a folder marker: {key!r}")
    return decoded.parent_path + (decoded.display_name,)
