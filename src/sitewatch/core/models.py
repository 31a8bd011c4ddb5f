"""
Core data models for Sitewatch

Records are exchanged with the presentation layer in their wire form
(camelCase keys); inside the package the snake_case attributes are used.
"""

import time
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from sitewatch.core.catalogs import DEFAULT_SEVERITY, HEADQUARTERS_SITE


def now_ms() -> int:
    """Current wall clock time in milliseconds since epoch"""
    return int(time.time() * 1000)


DAY_MS = 24 * 60 * 60 * 1000


class ErrorRecord(BaseModel):
    """One synthetic monitoring event"""

    model_config = ConfigDict(populate_by_name=True)

    # Identity - assigned by the store on insert
    id: Optional[int] = None

    # Event payload
    error_code: str = Field(alias="errorCode")
    title: str
    timestamp: int = Field(default_factory=now_ms)
    severity: str = DEFAULT_SEVERITY
    site: str = HEADQUARTERS_SITE

    # Visibility
    is_hidden: bool = Field(default=False, alias="isHidden")

    def to_wire(self) -> Dict[str, Any]:
        """Dictionary handed to the command interface"""
        return self.model_dump(by_alias=True)


class ErrorTypeCount(BaseModel):
    """Number of stored records sharing a title"""
    title: str
    count: int


class ErrorStatistics(BaseModel):
    """Aggregate view over every stored record, hidden ones included"""

    model_config = ConfigDict(populate_by_name=True)

    total: int = Field(default=0, alias="totalErrors")
    visible: int = Field(default=0, alias="visibleErrors")
    hidden: int = Field(default=0, alias="hiddenErrors")
    recent_24h: int = Field(default=0, alias="recentErrors24h")
    error_types: List[ErrorTypeCount] = Field(default_factory=list, alias="errorTypes")

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
