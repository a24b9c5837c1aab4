"""
搭档历史索引
从最近几期已发布赛事的对阵中收集每名球员的搭档与对手
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Set

from padelnight.infra.models import Assignment
from padelnight.utils.logger import get_logger

logger = get_logger(__name__)

DAYS_PER_SESSION = 7


class HistorySource(ABC):
    """历史数据来源: 返回指定日期之后已发布赛事的对阵（按日期降序）"""

    @abstractmethod
    def find_published_assignments(
        self,
        since: datetime,
        limit: int
    ) -> List[List[Assignment]]:
        """每个元素对应一期赛事的全部对阵"""
        pass


class PartnerHistoryIndex:
    """搭档/对手历史索引: 每次抽签重新构建，不单独持久化"""

    def __init__(self, source: HistorySource, clock=datetime.now):
        self.source = source
        self.clock = clock

    def build(
        self,
        player_ids: Iterable[str],
        lookback_sessions: int,
        as_of: Optional[datetime] = None
    ) -> Dict[str, Set[str]]:
        """构建 player_id -> 最近搭档或对手集合"""
        history: Dict[str, Set[str]] = {pid: set() for pid in player_ids}
        if lookback_sessions <= 0:
            return history

        now = as_of or self.clock()
        since = now - timedelta(days=lookback_sessions * DAYS_PER_SESSION)
        sessions = self.source.find_published_assignments(since, lookback_sessions)

        relation_count = 0
        for assignments in sessions[:lookback_sessions]:
            for assignment in assignments:
                relation_count += self._record(history, assignment)

        logger.info(
            f"搭档历史: 回看 {len(sessions[:lookback_sessions])} 期赛事, "
            f"记录 {relation_count} 条关系"
        )
        return history

    @staticmethod
    def _record(history: Dict[str, Set[str]], assignment: Assignment) -> int:
        p1, p2 = assignment.team_a
        p3, p4 = assignment.team_b
        pairs = [
            (p1, p2), (p3, p4),
            (p1, p3), (p1, p4), (p2, p3), (p2, p4),
        ]
        for a, b in pairs:
            history.setdefault(a, set()).add(b)
            history.setdefault(b, set()).add(a)
        return len(pairs)
