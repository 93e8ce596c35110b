"""
Output schema for scored recommendations.

Defines the value objects handed back to callers. They carry no identity
beyond one request and serialize to plain dictionaries.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, Any, List
from enum import Enum


class EntityKind(Enum):
    """Kind tag of a recommendable entity."""
    USER = "user"
    STARTUP = "startup"


class ScoreStatus(Enum):
    """Outcome of scoring one user."""
    OK = "ok"                      # At least one personalized result
    COLD_START = "cold_start"      # Known user, results only from popularity (or none)
    UNKNOWN_USER = "unknown_user"  # Identifier absent from the entity table
    FAILED = "failed"              # Scoring raised, see error


@dataclass(frozen=True)
class Recommendation:
    """
    One ranked candidate.

    Attributes:
        target_id: Identifier of the recommended entity
        kind: Kind of the recommended entity
        score: Final score (higher is better)
        is_fallback: True when the entry was padded from popularity
    """
    target_id: str
    kind: EntityKind
    score: float
    is_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "target_id": self.target_id,
            "kind": self.kind.value,
            "score": float(self.score),
            "is_fallback": self.is_fallback
        }


@dataclass
class UserRecommendations:
    """
    Ranked recommendations for one user together with how they were produced.

    Attributes:
        user_id: User the list was computed for
        recommendations: Ranked recommendations, best first
        status: Scoring outcome
        error: Error message when status is FAILED
        elapsed_seconds: Wall time spent scoring this user
    """
    user_id: str
    recommendations: List[Recommendation] = field(default_factory=list)
    status: ScoreStatus = ScoreStatus.OK
    error: Optional[str] = None
    elapsed_seconds: float = 0.0

    @property
    def n_fallback(self) -> int:
        return sum(1 for rec in self.recommendations if rec.is_fallback)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result = {
            "user_id": self.user_id,
            "status": self.status.value,
            "recommendations": [rec.to_dict() for rec in self.recommendations]
        }
        if self.error:
            result["error"] = self.error
        return result
