"""
赛事服务层
抽签服务、排名服务、报名服务与结果导出
"""

from .draw_service import DrawService, generate_seed
from .ranking_service import RankingService, get_week_start
from .rsvp_service import RsvpService

__all__ = [
    'DrawService',
    'generate_seed',
    'RankingService',
    'get_week_start',
    'RsvpService',
]
