"""
统一配置管理器
加载和解析YAML配置文件，支持环境变量解析、配置验证
"""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Tuple

import yaml

from padelnight.infra.draw.tier_assignment import TierRule, parse_tier_rules
from padelnight.infra.errors import ValidationError
from padelnight.infra.models import DrawConstraints, Tier, TierCourts
from padelnight.infra.ranking.rating_engine import DEFAULT_TIER_SCORING, TierScoring

TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):([0-5]\d)$')


@dataclass(frozen=True)
class TierTimeSlot:
    """级别时段: 开始/结束时间 (HH:MM) 与该时段可用场地"""
    starts_at: str
    ends_at: str
    court_ids: Tuple[str, ...]

    @classmethod
    def from_dict(cls, tier: str, data: dict) -> "TierTimeSlot":
        starts_at = str(data.get('starts_at', data.get('startsAt', '')))
        ends_at = str(data.get('ends_at', data.get('endsAt', '')))
        for label, value in (('starts_at', starts_at), ('ends_at', ends_at)):
            if not TIME_PATTERN.match(value):
                raise ValidationError(f"{tier} time slot {label} must use HH:MM format, got {value!r}")
        if starts_at >= ends_at:
            raise ValidationError(f"{tier} time slot must end after it starts ({starts_at} - {ends_at})")

        court_ids = data.get('court_ids', data.get('courtIds')) or []
        return cls(starts_at=starts_at, ends_at=ends_at, court_ids=tuple(str(c) for c in court_ids))


class ConfigManager:
    """统一配置管理器: 加载YAML配置、解析环境变量、提供配置访问接口"""

    def __init__(self, config_path: str):
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise FileNotFoundError(f"配置文件不存在: {config_path}")

        self._config = self._load_config()

    def _load_config(self) -> dict:
        """加载配置文件"""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
                if not config:
                    raise ValueError("配置文件为空")
                return config
        except yaml.YAMLError as e:
            raise ValueError(f"配置文件格式错误: {e}")

    def _resolve_env_var(self, value: str) -> str:
        """解析环境变量格式的配置值，支持格式: env_var:VARIABLE_NAME"""
        if isinstance(value, str) and value.startswith("env_var:"):
            env_key = value[8:]
            env_value = os.getenv(env_key)
            if env_value is None:
                raise ValueError(f"环境变量 {env_key} 未设置")
            return env_value
        return value

    def get_raw_config(self) -> dict:
        """获取原始配置字典"""
        return self._config

    def get_event_name(self) -> str:
        """获取赛事名称"""
        return self._config.get('event_name', 'Padel Game Night')

    # ==================== 抽签相关配置 ====================

    def get_draw_constraints(self) -> DrawConstraints:
        """获取抽签约束"""
        return DrawConstraints.from_dict(self._config.get('draw', {}))

    def get_tier_rules(self) -> TierRule:
        """获取分级规则（固定人数 / 百分比 / 默认五五分）"""
        return parse_tier_rules(self._config.get('tier_rules', {}))

    def get_tier_time_slots(self) -> Dict[Tier, TierTimeSlot]:
        """获取各级别时段配置"""
        tier_rules = self._config.get('tier_rules', {}) or {}
        slots = {}
        for tier in Tier:
            data = tier_rules.get(f"{tier.value.lower()}_time_slot")
            if data:
                slots[tier] = TierTimeSlot.from_dict(tier.value, data)
        return slots

    def get_tier_courts(self) -> TierCourts:
        """获取各级别场地，未配置时段时使用 courts 列表"""
        slots = self.get_tier_time_slots()
        if slots:
            return TierCourts(
                masters=slots[Tier.MASTERS].court_ids if Tier.MASTERS in slots else (),
                explorers=slots[Tier.EXPLORERS].court_ids if Tier.EXPLORERS in slots else (),
            )

        courts = self._config.get('courts', {}) or {}
        return TierCourts(
            masters=tuple(str(c) for c in courts.get('masters', []) or []),
            explorers=tuple(str(c) for c in courts.get('explorers', []) or []),
        )

    # ==================== 排名相关配置 ====================

    def get_rating_settings(self) -> Dict:
        """获取评分设置"""
        return self._config.get('rating', {}) or {}

    def get_tier_scoring(self) -> Dict[Tier, TierScoring]:
        """获取各级别计分常量，未配置部分使用默认值"""
        configured = self.get_rating_settings().get('tiers', {}) or {}
        scoring = dict(DEFAULT_TIER_SCORING)
        for tier in Tier:
            item = configured.get(tier.value)
            if item:
                default = DEFAULT_TIER_SCORING[tier]
                scoring[tier] = TierScoring(
                    base=int(item.get('base', default.base)),
                    per_set=int(item.get('per_set', default.per_set)),
                )
        return scoring

    def get_algo_version(self) -> str:
        """获取评分算法版本（写入评分快照）"""
        return str(self.get_rating_settings().get('algo_version', 'v1'))

    # ==================== 其他配置 ====================

    def get_notification_settings(self) -> Dict:
        """获取通知配置"""
        settings = dict(self._config.get('notifications', {}) or {})
        if 'webhook_url' in settings:
            settings['webhook_url'] = self._resolve_env_var(settings['webhook_url'])
        return settings

    def get_output_dir(self) -> Path:
        """获取结果输出目录"""
        return Path(self._config.get('output_dir', 'results'))

    def validate_config(self) -> List[str]:
        """验证配置文件的完整性和有效性"""
        errors = []

        try:
            self.get_draw_constraints()
        except ValidationError as e:
            errors.append(f"draw 配置错误: {e}")

        try:
            self.get_tier_rules()
        except ValidationError as e:
            errors.append(f"tier_rules 配置错误: {e}")

        try:
            tier_courts = self.get_tier_courts()
            if not tier_courts.masters and not tier_courts.explorers:
                errors.append("未配置任何场地")
        except ValidationError as e:
            errors.append(f"时段配置错误: {e}")

        try:
            for tier, scoring in self.get_tier_scoring().items():
                if scoring.base < 0 or scoring.per_set < 0:
                    errors.append(f"{tier.value} 计分常量不能为负数")
        except (TypeError, ValueError) as e:
            errors.append(f"rating 配置错误: {e}")

        notifications = self._config.get('notifications', {}) or {}
        if notifications.get('enabled') and not notifications.get('webhook_url'):
            errors.append("notifications 已启用但缺少 webhook_url")

        return errors
