"""
抽签编排器模块
计算场地容量、划分级别，按级别组队并生成单循环赛程，决定候补名单
"""

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence, Set

from padelnight.infra.draw.round_robin import RoundRobinScheduler
from padelnight.infra.draw.team_balancer import TeamBalancer
from padelnight.infra.draw.tier_assignment import FixedCountRule, TierAssignment, TierRule
from padelnight.infra.errors import ValidationError
from padelnight.infra.models import (
    Assignment,
    Draw,
    DrawConstraints,
    Player,
    Tier,
    TierCourts,
)
from padelnight.utils.logger import get_logger

logger = get_logger(__name__)

PLAYERS_PER_COURT = 4
MIN_PLAYERS = 4


@dataclass
class DrawPlan:
    """一次抽签的完整结果"""
    draw: Draw
    tiers: Dict[str, Tier] = field(default_factory=dict)
    selected: List[Player] = field(default_factory=list)
    overflow: List[Player] = field(default_factory=list)
    unplaced: List[Player] = field(default_factory=list)

    @property
    def waitlisted(self) -> List[Player]:
        """超出容量与未能排进赛程的球员，按评分降序"""
        return sorted(self.unplaced + self.overflow, key=lambda p: p.rating, reverse=True)

    @property
    def placed_ids(self) -> Set[str]:
        return {pid for a in self.draw.assignments for pid in a.player_ids}


class DrawOrchestrator:
    """抽签编排器: 协调级别划分、组队、赛程生成"""

    def __init__(
        self,
        tier_assignment: Optional[TierAssignment] = None,
        team_balancer: Optional[TeamBalancer] = None,
        scheduler: Optional[RoundRobinScheduler] = None
    ):
        self.tier_assignment = tier_assignment or TierAssignment()
        self.team_balancer = team_balancer or TeamBalancer()
        self.scheduler = scheduler or RoundRobinScheduler()

    def generate(
        self,
        players: Sequence[Player],
        tier_courts: TierCourts,
        rules: TierRule,
        seed: str,
        constraints: Optional[DrawConstraints] = None,
        recent_history: Optional[Mapping[str, Set[str]]] = None
    ) -> DrawPlan:
        """生成抽签，相同输入与种子得到相同结果"""
        constraints = constraints or DrawConstraints()
        recent_history = recent_history or {}

        if not tier_courts.masters and not tier_courts.explorers:
            raise ValidationError("No courts selected for either tier")
        if len(players) < MIN_PLAYERS:
            raise ValidationError(f"Need at least {MIN_PLAYERS} players to generate draw")

        masters_capacity = len(tier_courts.masters) * PLAYERS_PER_COURT
        explorers_capacity = len(tier_courts.explorers) * PLAYERS_PER_COURT
        total_capacity = masters_capacity + explorers_capacity

        sorted_players = sorted(players, key=lambda p: p.rating, reverse=True)
        selected_count = min(len(sorted_players), total_capacity)
        selected_count -= selected_count % PLAYERS_PER_COURT
        selected = sorted_players[:selected_count]
        overflow = sorted_players[selected_count:]

        master_count = min(rules.master_count(selected_count), masters_capacity, selected_count)
        master_count -= master_count % PLAYERS_PER_COURT
        explorer_count = selected_count - master_count

        logger.info(
            f"容量: MASTERS {masters_capacity} + EXPLORERS {explorers_capacity} = {total_capacity}, "
            f"报名 {len(players)} 人, 入选 {selected_count} 人, 候补 {len(overflow)} 人"
        )

        if master_count < MIN_PLAYERS and explorer_count < MIN_PLAYERS:
            raise ValidationError(
                f"Not enough players for either tier (MASTERS: {master_count}, "
                f"EXPLORERS: {explorer_count}); each playable tier needs at least {MIN_PLAYERS}"
            )
        if explorer_count >= MIN_PLAYERS and not tier_courts.explorers:
            raise ValidationError(
                f"EXPLORERS tier has {explorer_count} players but no courts selected"
            )

        tiers = self.tier_assignment.assign(selected, FixedCountRule(master_count))
        logger.info(f"级别划分 ({rules.describe()}): MASTERS {master_count} 人, EXPLORERS {explorer_count} 人")

        assignments: List[Assignment] = []
        for tier in (Tier.MASTERS, Tier.EXPLORERS):
            tier_players = [p for p in selected if tiers[p.id] == tier]
            if len(tier_players) < MIN_PLAYERS:
                continue
            assignments.extend(self._schedule_pass(
                players=tier_players,
                court_ids=tier_courts.for_tier(tier),
                tier=tier,
                seed=f"{seed}:{tier.value}",
                recent_history=recent_history,
                constraints=constraints,
            ))

        leftovers = self._unplaced(selected, assignments)
        if constraints.allow_tier_mixing and len(leftovers) >= MIN_PLAYERS:
            # 混合组与 EXPLORERS 共用存储标签，轮次接在其后避免场地冲突
            round_offset = max(
                (a.round for a in assignments if a.tier == Tier.EXPLORERS),
                default=0
            )
            logger.info(f"混合组: {len(leftovers)} 名剩余球员使用全部场地, 轮次从 {round_offset + 1} 开始")
            assignments.extend(self._schedule_pass(
                players=leftovers,
                court_ids=tier_courts.union(),
                tier=Tier.EXPLORERS,
                seed=f"{seed}:MIXED",
                recent_history=recent_history,
                constraints=constraints,
                round_offset=round_offset,
            ))
            for player in leftovers:
                tiers[player.id] = Tier.EXPLORERS

        unplaced = self._unplaced(selected, assignments)
        if unplaced:
            logger.warning(f"{len(unplaced)} 名入选球员未排进赛程，将转入候补: {[p.name for p in unplaced]}")

        draw = Draw(assignments=assignments, seed=seed, constraints=constraints)
        logger.info(f"抽签完成: {len(assignments)} 场对阵, 种子 {seed}")
        return DrawPlan(
            draw=draw,
            tiers={pid: tier for pid, tier in tiers.items() if pid not in {p.id for p in unplaced}},
            selected=selected,
            overflow=overflow,
            unplaced=unplaced,
        )

    def _schedule_pass(
        self,
        players: Sequence[Player],
        court_ids: Sequence[str],
        tier: Tier,
        seed: str,
        recent_history: Mapping[str, Set[str]],
        constraints: DrawConstraints,
        round_offset: int = 0
    ) -> List[Assignment]:
        """单个级别: 组队 -> 单循环 -> 分配场地"""
        teams = self.team_balancer.balance(players, seed, recent_history, constraints)
        rounds = self.scheduler.schedule(teams, len(court_ids))

        assignments = []
        for round_index, round_matchups in enumerate(rounds):
            for court_id, matchup in self.scheduler.assign_courts(round_matchups, court_ids):
                assignments.append(Assignment(
                    round=round_offset + round_index + 1,
                    court_id=court_id,
                    team_a=matchup.team_a.player_ids,
                    team_b=matchup.team_b.player_ids,
                    tier=tier,
                ))

        logger.info(f"{tier.value}: {len(teams)} 支队伍, {len(rounds)} 轮, {len(assignments)} 场对阵")
        return assignments

    @staticmethod
    def _unplaced(players: Sequence[Player], assignments: Sequence[Assignment]) -> List[Player]:
        placed = {pid for a in assignments for pid in a.player_ids}
        return [p for p in players if p.id not in placed]
