"""
抽签基础设施
提供级别划分、搭档历史、组队、单循环赛程和抽签编排器
"""

from .tier_assignment import (
    TierRule,
    FixedCountRule,
    PercentageRule,
    DefaultSplitRule,
    TierAssignment,
    parse_tier_rules,
)
from .partner_history import HistorySource, PartnerHistoryIndex
from .team_balancer import TeamBalancer
from .round_robin import RoundRobinScheduler
from .draw_orchestrator import DrawOrchestrator, DrawPlan

__all__ = [
    # 级别划分
    'TierRule',
    'FixedCountRule',
    'PercentageRule',
    'DefaultSplitRule',
    'TierAssignment',
    'parse_tier_rules',
    # 搭档历史
    'HistorySource',
    'PartnerHistoryIndex',
    # 组队与赛程
    'TeamBalancer',
    'RoundRobinScheduler',
    # 抽签编排器
    'DrawOrchestrator',
    'DrawPlan',
]
