"""
评分算法模块
根据一批比赛结果计算每周得分，并用五周滑动平均得出新评分
"""

import math
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence

import numpy as np

from padelnight.infra.models import MatchResult, RatingOutcome, Tier

WINDOW_WEEKS = 4


@dataclass(frozen=True)
class TierScoring:
    """级别计分常量: 胜方基础分与每盘得分"""
    base: int
    per_set: int


DEFAULT_TIER_SCORING: Dict[Tier, TierScoring] = {
    Tier.MASTERS: TierScoring(base=300, per_set=20),
    Tier.EXPLORERS: TierScoring(base=200, per_set=15),
}


def round_half_up(value: float) -> int:
    """四舍五入（.5 向上取整）"""
    return int(math.floor(value + 0.5))


class RatingAlgorithm(ABC):
    """评分算法基类: 定义评分算法接口"""

    version: str = "v1"

    @abstractmethod
    def compute(
        self,
        current_ratings: Mapping[str, int],
        weekly_window: Sequence[Mapping[str, int]],
        matches: Sequence[MatchResult]
    ) -> RatingOutcome:
        """计算每周得分与新评分"""
        pass


class RatingEngine(RatingAlgorithm):
    """周得分 + 五周滑动平均评分

    胜方得 base + per_set * 胜盘数，负方得 per_set * 负盘数，
    平局双方各得 per_set * 己方盘数，队伍得分由两名队员平分。
    """

    def __init__(
        self,
        tier_scoring: Optional[Mapping[Tier, TierScoring]] = None,
        version: str = "v1"
    ):
        self.tier_scoring = dict(tier_scoring or DEFAULT_TIER_SCORING)
        self.version = version

    def match_points(self, match: MatchResult) -> Dict[str, float]:
        """单场比赛每名球员获得的分数"""
        scoring = self.tier_scoring[Tier(match.tier)]

        if match.sets_a == match.sets_b:
            team_a_points = scoring.per_set * match.sets_a
            team_b_points = scoring.per_set * match.sets_b
        elif match.sets_a > match.sets_b:
            team_a_points = scoring.base + scoring.per_set * match.sets_a
            team_b_points = scoring.per_set * match.sets_b
        else:
            team_a_points = scoring.per_set * match.sets_a
            team_b_points = scoring.base + scoring.per_set * match.sets_b

        points = {pid: team_a_points / 2 for pid in match.team_a}
        points.update({pid: team_b_points / 2 for pid in match.team_b})
        return points

    def weekly_scores(
        self,
        current_ratings: Mapping[str, int],
        matches: Sequence[MatchResult]
    ) -> Dict[str, int]:
        """每周得分 = 本周总分 / 出场次数，未出场为 0"""
        totals: Dict[str, float] = defaultdict(float)
        played: Dict[str, int] = defaultdict(int)

        for match in matches:
            for pid, points in self.match_points(match).items():
                totals[pid] += points
                played[pid] += 1

        weekly = {}
        for pid in {*totals, *current_ratings}:
            weekly[pid] = round_half_up(totals[pid] / played[pid]) if played[pid] else 0
        return weekly

    def compute(
        self,
        current_ratings: Mapping[str, int],
        weekly_window: Sequence[Mapping[str, int]],
        matches: Sequence[MatchResult]
    ) -> RatingOutcome:
        weekly_score = self.weekly_scores(current_ratings, matches)

        # 只取最近四周，不足四周的在前面补空
        window = list(weekly_window)[-WINDOW_WEEKS:]
        window = [{}] * (WINDOW_WEEKS - len(window)) + window

        new_ratings = {}
        for pid in {*current_ratings, *weekly_score}:
            series = [week.get(pid) or 0 for week in window] + [weekly_score.get(pid, 0)]
            valid = [value for value in series if value > 0]
            if valid:
                new_ratings[pid] = round_half_up(float(np.mean(valid)))
            else:
                new_ratings[pid] = current_ratings.get(pid, 0)

        return RatingOutcome(weekly_score=weekly_score, new_ratings=new_ratings)
