"""
单循环赛程单元测试
"""

import pytest

from padelnight.infra.draw.round_robin import RoundRobinScheduler
from padelnight.infra.errors import ValidationError
from padelnight.infra.models import Player, Team


def make_teams(n):
    return [
        Team(Player(f"p{2 * i}", f"P{2 * i}", 100), Player(f"p{2 * i + 1}", f"P{2 * i + 1}", 100))
        for i in range(n)
    ]


def test_round_robin_completeness():
    """测试偶数队伍时每两队恰好相遇一次"""
    scheduler = RoundRobinScheduler()

    for n in (2, 4, 6, 8, 10):
        teams = make_teams(n)
        matchups = scheduler.all_matchups(teams)

        assert len(matchups) == n * (n - 1) // 2
        pairs = {frozenset((m.team_a, m.team_b)) for m in matchups}
        assert len(pairs) == n * (n - 1) // 2
        assert all(m.team_a != m.team_b for m in matchups)


def test_round_robin_odd_team_count():
    """测试奇数队伍用轮空补齐，仍然完整循环"""
    matchups = RoundRobinScheduler().all_matchups(make_teams(3))

    pairs = {frozenset((m.team_a, m.team_b)) for m in matchups}
    assert len(matchups) == 3
    assert len(pairs) == 3


def test_schedule_bounded_by_courts():
    """测试每轮对阵数不超过可用场地数"""
    teams = make_teams(6)
    rounds = RoundRobinScheduler().schedule(teams, available_courts=2)

    # 6支队伍 -> 15场，每轮最多2场 -> 8轮
    assert len(rounds) == 8
    assert all(len(r) <= 2 for r in rounds)
    assert sum(len(r) for r in rounds) == 15


def test_schedule_limited_by_team_count():
    """测试场地多于队伍对数时每轮最多 n/2 场"""
    rounds = RoundRobinScheduler().schedule(make_teams(4), available_courts=5)

    assert len(rounds) == 3
    assert all(len(r) == 2 for r in rounds)


def test_schedule_does_not_mutate_input():
    """测试生成赛程不会改变传入的队伍顺序"""
    teams = make_teams(6)
    original = list(teams)

    RoundRobinScheduler().schedule(teams, available_courts=3)

    assert teams == original


def test_schedule_single_team():
    """测试只有一支队伍时没有对阵"""
    assert RoundRobinScheduler().schedule(make_teams(1), available_courts=2) == []


def test_schedule_without_courts():
    """测试没有场地时报错"""
    with pytest.raises(ValidationError):
        RoundRobinScheduler().schedule(make_teams(4), available_courts=0)


def test_assign_courts_distinct_within_round():
    """测试同一轮内场地互不相同"""
    scheduler = RoundRobinScheduler()
    courts = ['c1', 'c2', 'c3']

    for round_matchups in scheduler.schedule(make_teams(6), len(courts)):
        assigned = [court for court, _ in scheduler.assign_courts(round_matchups, courts)]
        assert len(set(assigned)) == len(assigned)
        assert set(assigned) <= set(courts)


def test_assign_courts_wraps():
    """测试对阵多于场地时取模回绕"""
    matchups = RoundRobinScheduler().all_matchups(make_teams(4))[:3]

    assigned = RoundRobinScheduler.assign_courts(matchups, ['c1', 'c2'])

    assert [court for court, _ in assigned] == ['c1', 'c2', 'c1']
