"""
组队模块
同一级别内按评分组成双打搭档，兼顾实力平衡并避开近期搭档
"""

import random
from typing import Callable, List, Mapping, Optional, Sequence, Set

from padelnight.infra.errors import UnpairedPlayerError
from padelnight.infra.models import DrawConstraints, Player, Team
from padelnight.utils.logger import get_logger

logger = get_logger(__name__)

RATING_DIFF_WEIGHT = 0.5
RECENT_PARTNER_PENALTY = 1000
RANDOM_JITTER = 10


class TeamBalancer:
    """贪心组队: 评分差越小越好，近期搭档重罚，带种子的随机扰动用于打破平局"""

    def __init__(
        self,
        rng_factory: Callable[[str], random.Random] = random.Random,
        strict: bool = False
    ):
        self.rng_factory = rng_factory
        self.strict = strict

    def balance(
        self,
        players: Sequence[Player],
        seed: str,
        recent_history: Optional[Mapping[str, Set[str]]] = None,
        constraints: Optional[DrawConstraints] = None,
        rng: Optional[random.Random] = None
    ) -> List[Team]:
        """组队：相同输入与种子得到相同结果"""
        rng = rng or self.rng_factory(seed)
        recent_history = recent_history or {}
        # avoid_recent_sessions 为 0 时不惩罚近期搭档
        avoid_recent = constraints is None or constraints.avoid_recent_sessions > 0
        sorted_players = sorted(players, key=lambda p: p.rating, reverse=True)

        used: Set[str] = set()
        teams: List[Team] = []

        for i, player1 in enumerate(sorted_players):
            if player1.id in used:
                continue

            recent = recent_history.get(player1.id, set())
            best_partner = None
            best_score = float('-inf')

            for player2 in sorted_players[i + 1:]:
                if player2.id in used:
                    continue

                score = -RATING_DIFF_WEIGHT * abs(player1.rating - player2.rating)
                if avoid_recent and player2.id in recent:
                    score -= RECENT_PARTNER_PENALTY
                score += rng.random() * RANDOM_JITTER

                if score > best_score:
                    best_score = score
                    best_partner = player2

            if best_partner is None:
                continue

            teams.append(Team(player1, best_partner))
            used.add(player1.id)
            used.add(best_partner.id)
            logger.debug(f"组队: {player1.name}({player1.rating}) + {best_partner.name}({best_partner.rating}), 得分 {best_score:.2f}")

        unpaired = [p for p in sorted_players if p.id not in used]
        if unpaired:
            if self.strict:
                raise UnpairedPlayerError(p.id for p in unpaired)
            logger.warning(f"奇数人数，{len(unpaired)} 名球员未能组队: {[p.name for p in unpaired]}")

        logger.info(f"组队完成: {len(sorted_players)} 名球员 -> {len(teams)} 支队伍")
        return teams

    @staticmethod
    def unpaired(players: Sequence[Player], teams: Sequence[Team]) -> List[Player]:
        """返回未进入任何队伍的球员"""
        paired = {pid for team in teams for pid in team.player_ids}
        return [p for p in players if p.id not in paired]

