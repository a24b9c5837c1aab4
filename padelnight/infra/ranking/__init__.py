"""
排名计算
提供评分算法接口与周得分/滑动平均评分引擎
"""

from .rating_engine import (
    RatingAlgorithm,
    RatingEngine,
    TierScoring,
    DEFAULT_TIER_SCORING,
    round_half_up,
)

__all__ = [
    'RatingAlgorithm',
    'RatingEngine',
    'TierScoring',
    'DEFAULT_TIER_SCORING',
    'round_half_up',
]
