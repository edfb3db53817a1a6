"""Data types shared across StashBox components."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Tuple


@dataclass
class Entry:
    """A file or folder as seen by users."""
    key: str
    owner_id: str
    logical_name: str
    parent_path: Tuple[str, ...] = ()
    is_folder: bool = False
    size_bytes: int = 0
    share_token: Optional[str] = None
    content_type: str = "application/octet-stream"
    last_modified: Optional[datetime] = None
    url: str = ""

    @property
    def parent_folder(self) -> str:
        """Parent path joined with '/', empty for the owner root."""
        return "/".join(self.parent_path)

    @property
    def path(self) -> str:
        """Logical path of this entry relative to the owner root."""
        return "/".join(self.parent_path + (self.logical_name,))

    def to_dict(self) -> Dict[str, object]:
        return {
            'key': self.key,
            'owner_id': self.owner_id,
            'name': self.logical_name,
            'parent_folder': self.parent_folder,
            'is_folder': self.is_folder,
            'size': self.size_bytes,
            'type': self.content_type,
            'url': self.url,
            'share_token': self.share_token,
            'last_modified': self.last_modified.isoformat() if self.last_modified else None,
        }


@dataclass
class ObjectInfo:
    """Object attributes returned by head and list calls (no body)."""
    key: str
    size: int
    last_modified: Optional[datetime] = None
    content_type: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class StoredObject:
    """An object fetched together with its body."""
    key: str
    body: bytes
    content_type: str
    size: int
    last_modified: Optional[datetime] = None
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class UsageStats:
    """Storage usage for one owner."""
    used: int
    limit: int

    @property
    def available(self) -> int:
        return max(self.limit - self.used, 0)

    @property
    def percent_used(self) -> float:
        if self.limit <= 0:
            return 100.0
        return round(self.used * 100.0 / self.limit, 2)
