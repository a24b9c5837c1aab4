"""
报名服务
报名/退出、名额已满时进入候补、有人退出后候补自动递补
"""

from datetime import datetime
from typing import Any, Dict, Optional

from padelnight.infra.errors import NotFoundError, ValidationError
from padelnight.infra.models import EventState, Player, RSVPAction, RSVPStatus
from padelnight.infra.notifier import LoggingNotifier, Notifier
from padelnight.storage.base import EventRecord, EventStore, RSVPRecord
from padelnight.utils.logger import get_logger

logger = get_logger(__name__)


class RsvpService:
    """报名服务: 确认与候补的原子切换由存储层完成"""

    def __init__(
        self,
        store: EventStore,
        notifier: Optional[Notifier] = None,
        clock=datetime.now
    ):
        self.store = store
        self.notifier = notifier or LoggingNotifier()
        self.clock = clock

    def handle_rsvp(self, event_id: str, player_id: str, action: RSVPAction) -> Dict[str, Any]:
        """处理报名 (IN) 或退出 (OUT)"""
        try:
            action = RSVPAction(action)
        except ValueError:
            raise ValidationError(f"RSVP action must be IN or OUT, got {action!r}")

        event = self._require_event(event_id)
        now = self.clock()
        if event.rsvp_opens_at and now < event.rsvp_opens_at:
            raise ValidationError("RSVP window has not opened yet")
        # 冻结后仍允许报名/退出（进入候补或触发递补）
        if event.rsvp_closes_at and now > event.rsvp_closes_at and event.state != EventState.FROZEN:
            raise ValidationError("RSVP window has closed")

        players = self.store.get_players([player_id])
        if not players:
            raise NotFoundError("Player profile not found")

        if action == RSVPAction.IN:
            return self._handle_in(event, players[0])
        return self._handle_out(event, players[0])

    def promote_next_waitlisted(self, event_id: str) -> Optional[RSVPRecord]:
        """候补第一位转为确认，其余候补重新编号"""
        event = self._require_event(event_id)
        promoted = self.store.promote_next_waitlisted(event_id)
        if promoted is None:
            return None

        logger.info(f"赛事 {event_id}: 候补球员 {promoted.player_id} 递补为确认")
        players = self.store.get_players([promoted.player_id])
        if players and players[0].email:
            player = players[0]
            self._notify(lambda: self.notifier.waitlist_promoted(player.email, player.name, event.to_summary()))
        return promoted

    def auto_promote_waitlist(self, event_id: str) -> Dict[str, int]:
        """截止前按名额连续递补，直到名额已满或候补为空"""
        event = self._require_event(event_id)
        if event.rsvp_closes_at and self.clock() > event.rsvp_closes_at:
            raise ValidationError("Cannot auto-promote after cutoff")

        promoted = 0
        while event.capacity is None or len(self.store.list_rsvps(event_id, RSVPStatus.CONFIRMED)) < event.capacity:
            if self.promote_next_waitlisted(event_id) is None:
                break
            promoted += 1

        logger.info(f"赛事 {event_id}: 自动递补 {promoted} 人")
        return {'promoted': promoted}

    def _handle_in(self, event: EventRecord, player: Player) -> Dict[str, Any]:
        existing = self.store.get_rsvp(event.id, player.id)
        if existing and existing.status == RSVPStatus.CONFIRMED:
            return {
                'status': RSVPStatus.CONFIRMED,
                'message': "You are already confirmed for this event",
            }

        record = self.store.rsvp_in(event.id, player.id, event.capacity)
        summary = event.to_summary()

        if record.status == RSVPStatus.CONFIRMED:
            logger.info(f"赛事 {event.id}: {player.name} 报名确认")
            if player.email:
                self._notify(lambda: self.notifier.rsvp_confirmed(player.email, player.name, summary))
            return {
                'status': RSVPStatus.CONFIRMED,
                'message': "You are confirmed for this event!",
            }

        logger.info(f"赛事 {event.id}: 名额已满，{player.name} 进入候补第 {record.position} 位")
        if player.email:
            self._notify(lambda: self.notifier.rsvp_waitlisted(player.email, player.name, summary, record.position))
        return {
            'status': RSVPStatus.WAITLISTED,
            'position': record.position,
            'message': f"You are on the waitlist at position #{record.position}",
        }

    def _handle_out(self, event: EventRecord, player: Player) -> Dict[str, Any]:
        removed = self.store.delete_rsvp(event.id, player.id)
        if removed is None:
            return {
                'status': RSVPStatus.DECLINED,
                'message': "You were not registered for this event",
            }

        logger.info(f"赛事 {event.id}: {player.name} 退出 (原状态 {removed.status.value})")
        if removed.status == RSVPStatus.CONFIRMED:
            self.promote_next_waitlisted(event.id)

        return {
            'status': RSVPStatus.CANCELLED,
            'message': "You have been removed from this event",
        }

    def _require_event(self, event_id: str) -> EventRecord:
        event = self.store.get_event(event_id)
        if event is None:
            raise NotFoundError("Event not found")
        return event

    @staticmethod
    def _notify(send) -> None:
        try:
            send()
        except Exception as e:
            logger.error(f"通知发送异常，已忽略: {type(e).__name__} - {e}")
