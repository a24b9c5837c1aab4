"""
级别划分模块
根据分级规则把按评分降序排列的球员划分为 MASTERS / EXPLORERS
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Sequence

from padelnight.infra.errors import ValidationError
from padelnight.infra.models import Player, Tier
from padelnight.utils.logger import get_logger

logger = get_logger(__name__)


class TierRule(ABC):
    """分级规则基类: 给定总人数，返回 MASTERS 人数"""

    @abstractmethod
    def master_count(self, total: int) -> int:
        pass

    @abstractmethod
    def describe(self) -> str:
        pass


@dataclass(frozen=True)
class FixedCountRule(TierRule):
    """固定人数: 评分最高的 count 名进入 MASTERS"""
    count: int

    def master_count(self, total: int) -> int:
        return min(self.count, total)

    def describe(self) -> str:
        return f"fixed count {self.count}"


@dataclass(frozen=True)
class PercentageRule(TierRule):
    """按百分比: floor(total * percentage / 100)"""
    percentage: float

    def master_count(self, total: int) -> int:
        return int(total * self.percentage // 100)

    def describe(self) -> str:
        return f"{self.percentage}% masters"


@dataclass(frozen=True)
class DefaultSplitRule(TierRule):
    """默认五五分"""

    def master_count(self, total: int) -> int:
        return total // 2

    def describe(self) -> str:
        return "default 50/50 split"


def parse_tier_rules(data: Optional[Mapping]) -> TierRule:
    """在边界处一次性解析分级规则，优先级: 固定人数 > 百分比 > 默认"""
    data = data or {}
    count = data.get('master_count', data.get('masterCount'))
    if count is not None:
        if not isinstance(count, int) or isinstance(count, bool) or count < 0:
            raise ValidationError(f"master_count must be a non-negative integer, got {count!r}")
        return FixedCountRule(count)

    percentage = data.get('master_percentage', data.get('masterPercentage'))
    if percentage is not None:
        if isinstance(percentage, bool) or not isinstance(percentage, (int, float)) or not 0 <= percentage <= 100:
            raise ValidationError(f"master_percentage must be between 0 and 100, got {percentage!r}")
        return PercentageRule(percentage)

    return DefaultSplitRule()


class TierAssignment:
    """确定性的级别划分，评分相同的边界球员按输入顺序决定"""

    def assign(self, players: Sequence[Player], rules: TierRule) -> Dict[str, Tier]:
        total = len(players)
        masters = max(0, min(rules.master_count(total), total))

        tiers = {}
        for index, player in enumerate(players):
            tiers[player.id] = Tier.MASTERS if index < masters else Tier.EXPLORERS

        logger.debug(f"级别划分 ({rules.describe()}): MASTERS {masters} 人, EXPLORERS {total - masters} 人")
        return tiers
