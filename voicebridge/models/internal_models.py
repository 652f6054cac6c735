"""Internal data models for the offline simulator."""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class CannedReply:
    """Fixed query/response pair the simulator can hand back."""

    query: str
    response: str
    category: str

    def __post_init__(self):
        """Reject empty replies; every simulated answer must be displayable."""
        if not self.query or not self.response:
            raise ValueError("Canned replies need both a query and a response")


@dataclass(frozen=True)
class Classification:
    """Result of categorizing a text query."""

    category: str
    response: str
    matched_keyword: Optional[str] = None
