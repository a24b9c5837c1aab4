"""
抽签编排器单元测试
"""

from collections import Counter

import pytest

from padelnight.infra.draw import (
    DefaultSplitRule,
    DrawOrchestrator,
    FixedCountRule,
    PercentageRule,
    TeamBalancer,
)
from padelnight.infra.errors import ValidationError
from padelnight.infra.models import DrawConstraints, Player, Tier, TierCourts


class TwoTeamBalancer(TeamBalancer):
    """每次只保留前两支队伍，用来制造未排进赛程的球员"""

    def balance(self, players, seed, recent_history=None, constraints=None, rng=None):
        return super().balance(players, seed, recent_history, constraints, rng)[:2]


def make_players(n):
    return [Player(f"p{i:02d}", f"Player {i}", 1000 - i * 10) for i in range(n)]


def team_pairs(assignments):
    return [frozenset((a.team_a, a.team_b)) for a in assignments]


def test_end_to_end_single_tier():
    """测试8人2块场地: 4支队伍，3轮每轮2场，6组对阵各不相同"""
    plan = DrawOrchestrator().generate(
        players=make_players(8),
        tier_courts=TierCourts(masters=('c1', 'c2')),
        rules=FixedCountRule(8),
        seed='seed-1',
    )
    assignments = plan.draw.assignments

    assert len(assignments) == 6
    assert Counter(a.round for a in assignments) == {1: 2, 2: 2, 3: 2}
    assert len(set(team_pairs(assignments))) == 6
    assert all(a.tier == Tier.MASTERS for a in assignments)
    assert plan.waitlisted == []

    for round_number in (1, 2, 3):
        in_round = [a for a in assignments if a.round == round_number]
        assert len({a.court_id for a in in_round}) == len(in_round)
        players = [pid for a in in_round for pid in a.player_ids]
        assert len(players) == len(set(players))


def test_capacity_truncation():
    """测试10人2块场地: 评分前8入选，最后2人候补"""
    players = make_players(10)

    plan = DrawOrchestrator().generate(
        players=players,
        tier_courts=TierCourts(masters=('c1',), explorers=('c2',)),
        rules=DefaultSplitRule(),
        seed='seed-1',
    )

    assert [p.id for p in plan.selected] == [p.id for p in players[:8]]
    assert [p.id for p in plan.waitlisted] == ['p08', 'p09']
    assert plan.placed_ids == {p.id for p in players[:8]}


def test_tiers_follow_rating_order():
    """测试评分高者进入 MASTERS，两个级别轮次各自从1开始"""
    players = make_players(16)

    plan = DrawOrchestrator().generate(
        players=players,
        tier_courts=TierCourts(masters=('c1', 'c2'), explorers=('c1', 'c2')),
        rules=FixedCountRule(8),
        seed='seed-1',
    )

    assert {pid for pid, tier in plan.tiers.items() if tier == Tier.MASTERS} == {p.id for p in players[:8]}
    for tier in Tier:
        rounds = sorted({a.round for a in plan.draw.assignments if a.tier == tier})
        assert rounds == [1, 2, 3]


def test_master_count_clamped_to_capacity():
    """测试 MASTERS 人数超过其场地容量时截断"""
    plan = DrawOrchestrator().generate(
        players=make_players(16),
        tier_courts=TierCourts(masters=('c1', 'c2'), explorers=('c3', 'c4')),
        rules=PercentageRule(75),
        seed='seed-1',
    )

    assert Counter(plan.tiers.values()) == {Tier.MASTERS: 8, Tier.EXPLORERS: 8}


def test_master_count_rounded_to_court_multiple():
    """测试 MASTERS 人数向下取整为4的倍数"""
    plan = DrawOrchestrator().generate(
        players=make_players(12),
        tier_courts=TierCourts(masters=('c1', 'c2', 'c3'), explorers=('c4',)),
        rules=FixedCountRule(6),
        seed='seed-1',
    )

    assert Counter(plan.tiers.values()) == {Tier.MASTERS: 4, Tier.EXPLORERS: 8}


def test_same_seed_same_draw():
    """测试相同输入与种子得到相同抽签"""
    players = [Player(f"p{i}", f"Player {i}", 500) for i in range(8)]
    kwargs = dict(
        players=players,
        tier_courts=TierCourts(masters=('c1',), explorers=('c2',)),
        rules=DefaultSplitRule(),
        seed='fixed',
    )

    first = DrawOrchestrator().generate(**kwargs).draw.assignments
    second = DrawOrchestrator().generate(**kwargs).draw.assignments

    assert first == second


def test_no_courts():
    """测试两个级别都没有场地时报错"""
    with pytest.raises(ValidationError, match="No courts selected"):
        DrawOrchestrator().generate(make_players(8), TierCourts(), DefaultSplitRule(), 'seed')


def test_too_few_players():
    """测试少于4人时报错"""
    with pytest.raises(ValidationError, match="at least 4 players"):
        DrawOrchestrator().generate(make_players(3), TierCourts(masters=('c1',)), DefaultSplitRule(), 'seed')


def test_explorers_without_courts():
    """测试 EXPLORERS 有人但没有场地时报错"""
    with pytest.raises(ValidationError, match="EXPLORERS tier has 4 players"):
        DrawOrchestrator().generate(
            make_players(8),
            TierCourts(masters=('c1', 'c2')),
            FixedCountRule(4),
            'seed',
        )


class TestTierMixing:
    """跨级别混合组测试类"""

    tier_courts = TierCourts(masters=('m1', 'm2'), explorers=('e1', 'e2'))

    def generate(self, allow_tier_mixing):
        orchestrator = DrawOrchestrator(team_balancer=TwoTeamBalancer())
        return orchestrator.generate(
            players=make_players(16),
            tier_courts=self.tier_courts,
            rules=FixedCountRule(8),
            seed='seed-1',
            constraints=DrawConstraints(allow_tier_mixing=allow_tier_mixing),
        )

    def test_leftovers_waitlisted_without_mixing(self):
        """测试不允许混合时剩余球员转入候补"""
        plan = self.generate(allow_tier_mixing=False)

        assert len(plan.draw.assignments) == 2
        assert len(plan.waitlisted) == 8
        ratings = [p.rating for p in plan.waitlisted]
        assert ratings == sorted(ratings, reverse=True)

    def test_mixed_pass_uses_all_courts(self):
        """测试混合组标记为 EXPLORERS，轮次接在 EXPLORERS 之后"""
        plan = self.generate(allow_tier_mixing=True)

        mixed = [a for a in plan.draw.assignments if a.tier == Tier.EXPLORERS and a.round > 1]
        assert len(mixed) == 1
        assert mixed[0].round == 2
        assert mixed[0].court_id == 'm1'
        assert len(plan.waitlisted) == 4
        assert not set(mixed[0].player_ids) & {p.id for p in plan.waitlisted}
