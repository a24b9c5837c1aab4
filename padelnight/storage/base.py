"""
存储接口定义
抽签与排名服务依赖的持久化协作方，所有写操作要求原子提交
"""

from abc import abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from padelnight.infra.draw.partner_history import HistorySource
from padelnight.infra.models import (
    Assignment,
    Draw,
    EventState,
    Player,
    RSVPStatus,
    Tier,
    TierCourts,
)


@dataclass
class EventRecord:
    id: str
    date: datetime
    state: EventState = EventState.DRAFT
    title: Optional[str] = None
    tier_rules: Dict = field(default_factory=dict)
    tier_courts: TierCourts = field(default_factory=TierCourts)
    seed: Optional[str] = None
    # 报名上限，None 表示不限
    capacity: Optional[int] = None
    rsvp_opens_at: Optional[datetime] = None
    rsvp_closes_at: Optional[datetime] = None

    def to_summary(self) -> Dict:
        return {
            'id': self.id,
            'title': self.title or '',
            'date': self.date.isoformat(),
            'state': self.state.value,
        }


@dataclass
class RSVPRecord:
    event_id: str
    player_id: str
    status: RSVPStatus = RSVPStatus.CONFIRMED
    position: int = 0


@dataclass
class MatchRecord:
    event_id: str
    round: int
    court_id: str
    tier: Tier
    sets_a: int
    sets_b: int
    id: Optional[str] = None
    published_at: Optional[datetime] = None


@dataclass
class RankingSnapshot:
    player_id: str
    event_id: str
    before: int
    after: int
    algo_version: str
    created_at: datetime


class EventStore(HistorySource):
    """赛事存储接口"""

    # ==================== 赛事与球员 ====================

    @abstractmethod
    def get_event(self, event_id: str) -> Optional[EventRecord]:
        pass

    @abstractmethod
    def set_event_state(self, event_id: str, state: EventState) -> None:
        pass

    @abstractmethod
    def list_rsvps(self, event_id: str, status: Optional[RSVPStatus] = None) -> List[RSVPRecord]:
        pass

    @abstractmethod
    def get_rsvp(self, event_id: str, player_id: str) -> Optional[RSVPRecord]:
        pass

    @abstractmethod
    def rsvp_in(self, event_id: str, player_id: str, capacity: Optional[int]) -> RSVPRecord:
        """原子操作: 确认人数未满时确认，否则排到候补名单末尾"""
        pass

    @abstractmethod
    def delete_rsvp(self, event_id: str, player_id: str) -> Optional[RSVPRecord]:
        pass

    @abstractmethod
    def promote_next_waitlisted(self, event_id: str) -> Optional[RSVPRecord]:
        """原子操作: 候补第一位转为确认，其余候补从1重新编号"""
        pass

    @abstractmethod
    def get_players(self, player_ids: Sequence[str]) -> List[Player]:
        pass

    @abstractmethod
    def list_players(self) -> List[Player]:
        pass

    # ==================== 抽签 ====================

    @abstractmethod
    def commit_draw(self, event_id: str, draw: Draw, waitlisted_ids: Sequence[str]) -> Draw:
        """原子提交: 保存抽签（替换旧抽签）、状态改为 DRAWN、记录种子、候补球员追加到候补名单末尾"""
        pass

    @abstractmethod
    def get_latest_draw(self, event_id: str) -> Optional[Draw]:
        pass

    @abstractmethod
    def find_assignment(self, assignment_id: str) -> Optional[Tuple[Draw, Assignment]]:
        pass

    @abstractmethod
    def update_assignment(
        self,
        assignment_id: str,
        team_a: Tuple[str, str],
        team_b: Tuple[str, str]
    ) -> Assignment:
        pass

    # ==================== 比赛与排名 ====================

    @abstractmethod
    def save_match(self, match: MatchRecord) -> MatchRecord:
        """按 (赛事, 轮次, 场地, 级别) 新增或覆盖比分"""
        pass

    @abstractmethod
    def list_matches(self, event_id: str, published_only: bool = False) -> List[MatchRecord]:
        pass

    @abstractmethod
    def publish_matches(self, event_id: str, published_at: datetime) -> int:
        """只给未发布的比分写入发布时间，返回本次发布的数量"""
        pass

    @abstractmethod
    def get_weekly_scores(self, player_ids: Sequence[str], week_start: datetime) -> Dict[str, int]:
        pass

    @abstractmethod
    def list_weekly_scores(self, player_id: str, limit: int) -> List[Tuple[datetime, int]]:
        """按周起始日期降序"""
        pass

    @abstractmethod
    def list_snapshots(self, player_id: str, limit: int) -> List[RankingSnapshot]:
        """按创建时间降序"""
        pass

    @abstractmethod
    def apply_ratings(
        self,
        event_id: str,
        week_start: datetime,
        weekly_scores: Mapping[str, int],
        new_ratings: Mapping[str, int],
        algo_version: str
    ) -> List[RankingSnapshot]:
        """原子提交: 写入周得分、更新评分并保存快照，赛事状态改为 PUBLISHED"""
        pass
