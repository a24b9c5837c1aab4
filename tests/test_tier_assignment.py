"""
级别划分单元测试
"""

import pytest

from padelnight.infra.draw.tier_assignment import (
    DefaultSplitRule,
    FixedCountRule,
    PercentageRule,
    TierAssignment,
    parse_tier_rules,
)
from padelnight.infra.errors import ValidationError
from padelnight.infra.models import Player, Tier


def make_players(n):
    return [Player(f"p{i}", f"Player {i}", 1000 - i * 10) for i in range(n)]


def test_fixed_count_split():
    """测试固定人数: 20人中前8名为 MASTERS"""
    players = make_players(20)

    tiers = TierAssignment().assign(players, FixedCountRule(8))

    masters = [pid for pid, tier in tiers.items() if tier == Tier.MASTERS]
    assert masters == [f"p{i}" for i in range(8)]
    assert sum(1 for tier in tiers.values() if tier == Tier.EXPLORERS) == 12


def test_fixed_count_larger_than_total():
    """测试固定人数超过总人数时全部为 MASTERS"""
    tiers = TierAssignment().assign(make_players(5), FixedCountRule(10))

    assert set(tiers.values()) == {Tier.MASTERS}


def test_percentage_rule_rounds_down():
    """测试百分比向下取整"""
    assert PercentageRule(25).master_count(10) == 2
    assert PercentageRule(50).master_count(7) == 3
    assert PercentageRule(100).master_count(12) == 12
    assert PercentageRule(0).master_count(12) == 0


def test_default_split():
    """测试默认五五分"""
    assert DefaultSplitRule().master_count(7) == 3
    assert DefaultSplitRule().master_count(16) == 8


def test_assign_is_deterministic():
    """测试相同输入得到相同划分，同分按输入顺序"""
    players = [Player(f"p{i}", f"Player {i}", 300) for i in range(6)]

    first = TierAssignment().assign(players, FixedCountRule(3))
    second = TierAssignment().assign(players, FixedCountRule(3))

    assert first == second
    assert [pid for pid, tier in first.items() if tier == Tier.MASTERS] == ['p0', 'p1', 'p2']


class TestParseTierRules:
    """分级规则解析测试类"""

    def test_count_takes_precedence(self):
        """测试同时配置时固定人数优先"""
        rule = parse_tier_rules({'master_count': 4, 'master_percentage': 50})
        assert rule == FixedCountRule(4)

    def test_percentage(self):
        """测试百分比规则（兼容驼峰写法）"""
        assert parse_tier_rules({'masterPercentage': 30}) == PercentageRule(30)

    def test_default(self):
        """测试未配置时使用默认规则"""
        assert isinstance(parse_tier_rules({}), DefaultSplitRule)
        assert isinstance(parse_tier_rules(None), DefaultSplitRule)

    def test_negative_count(self):
        """测试负数人数报错"""
        with pytest.raises(ValidationError):
            parse_tier_rules({'master_count': -1})

    @pytest.mark.parametrize('percentage', [-5, 120, 'half'])
    def test_invalid_percentage(self, percentage):
        """测试超出范围或非数字的百分比报错"""
        with pytest.raises(ValidationError):
            parse_tier_rules({'master_percentage': percentage})
