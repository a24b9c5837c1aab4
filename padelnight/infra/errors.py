"""
统一异常定义
所有前置条件失败都以明确的提示信息抛出，由调用方修正输入后整体重试
"""


class PadelNightError(Exception):
    """所有业务异常的基类"""


class NotFoundError(PadelNightError):
    """引用的赛事、抽签、对阵或球员不存在"""


class ValidationError(PadelNightError, ValueError):
    """输入不合法或无法满足（赛事状态、场地数量、人数不足等）"""


class UnpairedPlayerError(ValidationError):
    """严格模式下球员人数为奇数，无法全部组队"""

    def __init__(self, player_ids):
        self.player_ids = list(player_ids)
        super().__init__(
            f"Cannot form teams: {len(self.player_ids)} player(s) left without a partner "
            f"({', '.join(self.player_ids)})"
        )


class ConflictError(PadelNightError):
    """存储层的冲突修改，例如同一轮次重复安排同一球员"""
