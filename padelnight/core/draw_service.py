"""
抽签服务
负责赛事状态校验、种子生成、调用抽签编排器、原子提交与通知
"""

import random
import time
from typing import Any, Dict, Optional, Sequence

from padelnight.infra.draw import (
    DrawOrchestrator,
    DrawPlan,
    PartnerHistoryIndex,
    parse_tier_rules,
)
from padelnight.infra.errors import NotFoundError, ValidationError
from padelnight.infra.models import Draw, DrawConstraints, EventState, RSVPStatus
from padelnight.infra.notifier import LoggingNotifier, Notifier
from padelnight.storage.base import EventRecord, EventStore
from padelnight.utils.logger import get_audit_logger, get_logger

logger = get_logger(__name__)
audit_logger = get_audit_logger()

DRAWABLE_STATES = (EventState.FROZEN, EventState.OPEN)


def generate_seed(event_id: str) -> str:
    """赛事ID + 毫秒时间戳 + 随机数，生成后随抽签一起保存"""
    return f"{event_id}-{int(time.time() * 1000)}-{random.random()}"


class DrawService:
    """抽签服务: 编排器保持无状态，所有读写都通过存储协作方完成"""

    def __init__(
        self,
        store: EventStore,
        notifier: Optional[Notifier] = None,
        orchestrator: Optional[DrawOrchestrator] = None,
        history_index: Optional[PartnerHistoryIndex] = None,
        seed_factory=generate_seed
    ):
        self.store = store
        self.notifier = notifier or LoggingNotifier()
        self.orchestrator = orchestrator or DrawOrchestrator()
        self.history_index = history_index or PartnerHistoryIndex(store)
        self.seed_factory = seed_factory

    def generate_draw(
        self,
        event_id: str,
        created_by: str,
        constraints: Optional[DrawConstraints] = None
    ) -> Draw:
        """生成并提交抽签"""
        event = self._require_event(event_id)
        if event.state not in DRAWABLE_STATES:
            raise ValidationError("Event must be frozen before generating draw")

        constraints = constraints or DrawConstraints()
        rules = parse_tier_rules(event.tier_rules)

        rsvps = self.store.list_rsvps(event_id, RSVPStatus.CONFIRMED)
        players = self.store.get_players([r.player_id for r in rsvps])
        logger.info(f"赛事 {event_id}: 确认报名 {len(players)} 人，开始抽签")

        history = self.history_index.build(
            [p.id for p in players],
            constraints.avoid_recent_sessions,
        )
        seed = self.seed_factory(event_id)

        plan: DrawPlan = self.orchestrator.generate(
            players=players,
            tier_courts=event.tier_courts,
            rules=rules,
            seed=seed,
            constraints=constraints,
            recent_history=history,
        )
        plan.draw.created_by = created_by

        waitlisted = [p.id for p in plan.waitlisted]
        draw = self.store.commit_draw(event_id, plan.draw, waitlisted)
        logger.info(f"赛事 {event_id}: 抽签已保存 ({len(draw.assignments)} 场对阵)，{len(waitlisted)} 人转入候补")

        emails = [p.email for p in players if p.email]
        self._notify(lambda: self.notifier.announce_draw(emails, event.to_summary()))
        return draw

    def get_draw(self, event_id: str) -> Dict[str, Any]:
        """获取最新抽签，附带球员姓名与评分"""
        draw = self.store.get_latest_draw(event_id)
        if draw is None:
            raise NotFoundError("Draw not found for this event")

        player_ids = {pid for a in draw.assignments for pid in a.player_ids}
        players = {p.id: p for p in self.store.get_players(sorted(player_ids))}

        def describe(ids: Sequence[str]):
            return [
                {
                    'id': pid,
                    'name': players[pid].name if pid in players else None,
                    'rating': players[pid].rating if pid in players else None,
                }
                for pid in ids
            ]

        assignments = sorted(draw.assignments, key=lambda a: (a.tier.value, a.round, a.court_id))
        return {
            'id': draw.id,
            'event_id': draw.event_id,
            'seed': draw.seed,
            'constraints': draw.constraints.to_dict() if draw.constraints else {},
            'assignments': [
                {
                    'id': a.id,
                    'round': a.round,
                    'court_id': a.court_id,
                    'tier': a.tier.value,
                    'team_a': describe(a.team_a),
                    'team_b': describe(a.team_b),
                }
                for a in assignments
            ],
        }

    def update_assignment(
        self,
        assignment_id: str,
        team_a: Sequence[str],
        team_b: Sequence[str],
        updated_by: str
    ):
        """管理员手动调整对阵"""
        if len(team_a) != 2 or len(team_b) != 2:
            raise ValidationError("Each team must have exactly 2 players")
        if len({*team_a, *team_b}) != 4:
            raise ValidationError("A player cannot appear twice in the same match")

        found = self.store.find_assignment(assignment_id)
        if found is None:
            raise NotFoundError("Assignment not found")
        _, before = found
        before_a, before_b = before.team_a, before.team_b

        assignment = self.store.update_assignment(assignment_id, tuple(team_a), tuple(team_b))
        audit_logger.info(
            f"[AUDIT] Assignment {assignment_id} updated by {updated_by}: "
            f"TeamA {list(before_a)} -> {list(team_a)}, TeamB {list(before_b)} -> {list(team_b)}"
        )
        return assignment

    def publish_draw(self, event_id: str) -> Dict[str, str]:
        """发布抽签"""
        self._require_event(event_id)
        if self.store.get_latest_draw(event_id) is None:
            raise ValidationError("No draw generated for this event")

        self.store.set_event_state(event_id, EventState.DRAWN)
        return {'message': "Draw published successfully"}

    def _require_event(self, event_id: str) -> EventRecord:
        event = self.store.get_event(event_id)
        if event is None:
            raise NotFoundError("Event not found")
        return event

    @staticmethod
    def _notify(send) -> None:
        # 抽签已提交，通知失败不回滚
        try:
            send()
        except Exception as e:
            logger.error(f"通知发送异常，已忽略: {type(e).__name__} - {e}")
