"""Processing cache models"""

from pydantic import BaseModel, ConfigDict
from typing import Optional, List, Dict, Any


class CacheEntry(BaseModel):
    """A cached processing result keyed by content hash. Timestamps are epoch seconds."""
    model_config = ConfigDict(extra="ignore")
    file_hash: str
    file_name: str
    file_size: int
    result: Dict[str, Any]
    metadata: Dict[str, Any] = {}
    created_at: float
    expires_at: float
    access_count: int = 1
    last_accessed_at: float

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now


class TopFile(BaseModel):
    file_name: str
    access_count: int


class CacheStats(BaseModel):
    total_entries: int = 0
    hit_rate: float = 0.0
    total_size: int = 0
    oldest_entry: Optional[float] = None
    newest_entry: Optional[float] = None
    top_files: List[TopFile] = []
