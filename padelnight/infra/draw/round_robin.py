"""
单循环赛程模块
圆桌法生成全部对阵，再按可同时开打的场地数切分轮次
"""

from typing import List, Optional, Sequence, Tuple

from padelnight.infra.errors import ValidationError
from padelnight.infra.models import Matchup, Team
from padelnight.utils.logger import get_logger

logger = get_logger(__name__)


class RoundRobinScheduler:
    """单循环赛程: 每两支队伍恰好相遇一次"""

    def all_matchups(self, teams: Sequence[Team]) -> List[Matchup]:
        """圆桌法：固定第一个位置，其余队伍每轮顺移一位"""
        slots: List[Optional[Team]] = list(teams)
        if len(slots) % 2 == 1:
            # 奇数队伍补一个轮空位，轮空的对阵直接跳过
            slots.append(None)

        n = len(slots)
        matchups = []
        for _ in range(n - 1):
            for i in range(n // 2):
                team_a, team_b = slots[i], slots[n - 1 - i]
                if team_a is None or team_b is None or team_a is team_b:
                    continue
                matchups.append(Matchup(team_a, team_b))

            slots.insert(1, slots.pop())

        return matchups

    def schedule(self, teams: Sequence[Team], available_courts: int) -> List[List[Matchup]]:
        """生成分轮赛程，每轮对阵数不超过 min(场地数, 队伍数 // 2)"""
        if available_courts <= 0:
            raise ValidationError("No courts available to schedule matches")

        max_simultaneous = min(available_courts, len(teams) // 2)
        if max_simultaneous == 0:
            return []

        matchups = self.all_matchups(teams)
        rounds = [
            matchups[start:start + max_simultaneous]
            for start in range(0, len(matchups), max_simultaneous)
        ]

        logger.info(
            f"单循环赛程: {len(teams)} 支队伍, {len(matchups)} 场对阵, "
            f"{len(rounds)} 轮 (每轮最多 {max_simultaneous} 场)"
        )
        return rounds

    @staticmethod
    def assign_courts(
        round_matchups: Sequence[Matchup],
        court_ids: Sequence[str]
    ) -> List[Tuple[str, Matchup]]:
        """按顺序分配场地，对阵数多于场地数时取模回绕"""
        if not court_ids:
            raise ValidationError("No courts available to schedule matches")
        return [
            (court_ids[index % len(court_ids)], matchup)
            for index, matchup in enumerate(round_matchups)
        ]
