"""
数据模型定义
抽签、排名计算使用的纯数据记录
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple

from padelnight.infra.errors import ValidationError


class Tier(str, Enum):
    MASTERS = "MASTERS"
    EXPLORERS = "EXPLORERS"


class EventState(str, Enum):
    DRAFT = "DRAFT"
    OPEN = "OPEN"
    FROZEN = "FROZEN"
    DRAWN = "DRAWN"
    PUBLISHED = "PUBLISHED"


class RSVPStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    WAITLISTED = "WAITLISTED"
    DECLINED = "DECLINED"
    CANCELLED = "CANCELLED"


class RSVPAction(str, Enum):
    IN = "IN"
    OUT = "OUT"


@dataclass(frozen=True)
class Player:
    id: str
    name: str
    rating: int
    email: Optional[str] = None


@dataclass(frozen=True)
class Team:
    player1: Player
    player2: Player

    @property
    def avg_rating(self) -> float:
        return (self.player1.rating + self.player2.rating) / 2

    @property
    def player_ids(self) -> Tuple[str, str]:
        return (self.player1.id, self.player2.id)


@dataclass(frozen=True)
class Matchup:
    team_a: Team
    team_b: Team


@dataclass
class Assignment:
    round: int
    court_id: str
    team_a: Tuple[str, str]
    team_b: Tuple[str, str]
    tier: Tier
    id: Optional[str] = None

    @property
    def player_ids(self) -> Tuple[str, str, str, str]:
        return (*self.team_a, *self.team_b)


@dataclass(frozen=True)
class DrawConstraints:
    """抽签约束（balance_strength 仅作记录，抽签总是做实力平衡）"""
    avoid_recent_sessions: int = 4
    balance_strength: bool = True
    allow_tier_mixing: bool = False

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "DrawConstraints":
        data = data or {}
        sessions = data.get('avoid_recent_sessions', data.get('avoidRecentSessions', 4))
        if sessions is None:
            sessions = 4
        if not isinstance(sessions, int) or isinstance(sessions, bool) or sessions < 0:
            raise ValidationError(f"avoid_recent_sessions must be a non-negative integer, got {sessions!r}")
        return cls(
            avoid_recent_sessions=sessions,
            balance_strength=bool(data.get('balance_strength', data.get('balanceStrength', True))),
            allow_tier_mixing=bool(data.get('allow_tier_mixing', data.get('allowTierMixing', False))),
        )

    def to_dict(self) -> dict:
        return {
            'avoid_recent_sessions': self.avoid_recent_sessions,
            'balance_strength': self.balance_strength,
            'allow_tier_mixing': self.allow_tier_mixing,
        }


@dataclass(frozen=True)
class TierCourts:
    """每个级别可用的场地ID（两个级别在不同时段，场地可以重叠）"""
    masters: Tuple[str, ...] = ()
    explorers: Tuple[str, ...] = ()

    def for_tier(self, tier: Tier) -> Tuple[str, ...]:
        return self.masters if tier == Tier.MASTERS else self.explorers

    def union(self) -> Tuple[str, ...]:
        seen = []
        for court_id in (*self.masters, *self.explorers):
            if court_id not in seen:
                seen.append(court_id)
        return tuple(seen)


@dataclass
class Draw:
    assignments: List[Assignment]
    seed: str
    constraints: DrawConstraints
    id: Optional[str] = None
    event_id: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class MatchResult:
    match_id: str
    tier: Tier
    team_a: Tuple[str, str]
    team_b: Tuple[str, str]
    sets_a: int
    sets_b: int


@dataclass
class RatingOutcome:
    weekly_score: Dict[str, int] = field(default_factory=dict)
    new_ratings: Dict[str, int] = field(default_factory=dict)
