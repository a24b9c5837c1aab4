"""
内存存储实现
单进程使用与测试用的 EventStore，所有写操作在同一把锁内完成
"""

import threading
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from padelnight.infra.errors import ConflictError, NotFoundError
from padelnight.infra.models import (
    Assignment,
    Draw,
    DrawConstraints,
    EventState,
    Player,
    RSVPStatus,
)
from padelnight.storage.base import (
    EventRecord,
    EventStore,
    MatchRecord,
    RankingSnapshot,
    RSVPRecord,
)
from padelnight.utils.logger import get_logger

logger = get_logger(__name__)


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


class InMemoryEventStore(EventStore):
    """内存存储实现，单把可重入锁串行化所有写操作"""

    def __init__(self, clock=datetime.now):
        self.clock = clock
        self._lock = threading.RLock()
        self._events: Dict[str, EventRecord] = {}
        self._players: Dict[str, Player] = {}
        self._rsvps: Dict[Tuple[str, str], RSVPRecord] = {}
        self._draws: Dict[str, List[Draw]] = {}
        self._matches: Dict[Tuple[str, int, str, str], MatchRecord] = {}
        self._weekly_scores: Dict[Tuple[str, datetime], int] = {}
        self._snapshots: List[RankingSnapshot] = []

    # ==================== 初始化数据 ====================

    def add_player(self, player: Player) -> Player:
        with self._lock:
            self._players[player.id] = player
        return player

    def add_event(self, event: EventRecord) -> EventRecord:
        with self._lock:
            self._events[event.id] = event
        return event

    def add_rsvp(
        self,
        event_id: str,
        player_id: str,
        status: RSVPStatus = RSVPStatus.CONFIRMED,
        position: Optional[int] = None
    ) -> RSVPRecord:
        with self._lock:
            if position is None:
                position = self._next_waitlist_position(event_id) if status == RSVPStatus.WAITLISTED else 0
            record = RSVPRecord(event_id, player_id, status, position)
            self._rsvps[(event_id, player_id)] = record
        return record

    def add_published_draw(self, event: EventRecord, assignments: Sequence[Assignment]) -> Draw:
        """写入一期已发布赛事的历史抽签"""
        with self._lock:
            event.state = EventState.PUBLISHED
            self._events[event.id] = event
            draw = Draw(
                assignments=[replace(a, id=a.id or _new_id('asg')) for a in assignments],
                seed=event.seed or '',
                constraints=DrawConstraints(),
                id=_new_id('draw'),
                event_id=event.id,
                created_at=event.date,
            )
            self._draws.setdefault(event.id, []).append(draw)
        return draw

    # ==================== 赛事与球员 ====================

    def get_event(self, event_id: str) -> Optional[EventRecord]:
        return self._events.get(event_id)

    def set_event_state(self, event_id: str, state: EventState) -> None:
        with self._lock:
            event = self._require_event(event_id)
            event.state = state

    def list_rsvps(self, event_id: str, status: Optional[RSVPStatus] = None) -> List[RSVPRecord]:
        records = [
            r for (eid, _), r in self._rsvps.items()
            if eid == event_id and (status is None or r.status == status)
        ]
        if status == RSVPStatus.WAITLISTED:
            records.sort(key=lambda r: r.position)
        return records

    def get_rsvp(self, event_id: str, player_id: str) -> Optional[RSVPRecord]:
        return self._rsvps.get((event_id, player_id))

    def rsvp_in(self, event_id: str, player_id: str, capacity: Optional[int]) -> RSVPRecord:
        with self._lock:
            self._require_event(event_id)
            confirmed = len(self.list_rsvps(event_id, RSVPStatus.CONFIRMED))
            if capacity is None or confirmed < capacity:
                record = RSVPRecord(event_id, player_id, RSVPStatus.CONFIRMED, 0)
            else:
                record = RSVPRecord(
                    event_id, player_id, RSVPStatus.WAITLISTED, self._next_waitlist_position(event_id)
                )
            self._rsvps[(event_id, player_id)] = record
            return record

    def delete_rsvp(self, event_id: str, player_id: str) -> Optional[RSVPRecord]:
        with self._lock:
            return self._rsvps.pop((event_id, player_id), None)

    def promote_next_waitlisted(self, event_id: str) -> Optional[RSVPRecord]:
        with self._lock:
            waitlist = self.list_rsvps(event_id, RSVPStatus.WAITLISTED)
            if not waitlist:
                return None

            promoted = waitlist[0]
            promoted.status = RSVPStatus.CONFIRMED
            promoted.position = 0
            for position, record in enumerate(waitlist[1:], 1):
                record.position = position
            return promoted

    def get_players(self, player_ids: Sequence[str]) -> List[Player]:
        return [self._players[pid] for pid in player_ids if pid in self._players]

    def list_players(self) -> List[Player]:
        return list(self._players.values())

    # ==================== 历史 ====================

    def find_published_assignments(self, since: datetime, limit: int) -> List[List[Assignment]]:
        events = sorted(
            (e for e in self._events.values()
             if e.state == EventState.PUBLISHED and e.date >= since),
            key=lambda e: e.date,
            reverse=True,
        )[:limit]
        return [
            [a for draw in self._draws.get(e.id, []) for a in draw.assignments]
            for e in events
        ]

    # ==================== 抽签 ====================

    def commit_draw(self, event_id: str, draw: Draw, waitlisted_ids: Sequence[str]) -> Draw:
        with self._lock:
            event = self._require_event(event_id)

            stored = replace(
                draw,
                id=_new_id('draw'),
                event_id=event_id,
                created_at=draw.created_at or self.clock(),
                assignments=[replace(a, id=_new_id('asg')) for a in draw.assignments],
            )
            # 重新抽签时替换旧抽签
            self._draws[event_id] = [stored]

            position = self._next_waitlist_position(event_id)
            for player_id in waitlisted_ids:
                record = self._rsvps.get((event_id, player_id))
                if record is None or record.status != RSVPStatus.CONFIRMED:
                    continue
                record.status = RSVPStatus.WAITLISTED
                record.position = position
                position += 1

            event.state = EventState.DRAWN
            event.seed = draw.seed
            logger.debug(f"赛事 {event_id} 抽签已提交: {len(stored.assignments)} 场对阵, 候补 {len(waitlisted_ids)} 人")
            return stored

    def get_latest_draw(self, event_id: str) -> Optional[Draw]:
        draws = self._draws.get(event_id) or []
        return draws[-1] if draws else None

    def find_assignment(self, assignment_id: str) -> Optional[Tuple[Draw, Assignment]]:
        for draws in self._draws.values():
            for draw in draws:
                for assignment in draw.assignments:
                    if assignment.id == assignment_id:
                        return draw, assignment
        return None

    def update_assignment(
        self,
        assignment_id: str,
        team_a: Tuple[str, str],
        team_b: Tuple[str, str]
    ) -> Assignment:
        with self._lock:
            found = self.find_assignment(assignment_id)
            if found is None:
                raise NotFoundError("Assignment not found")
            draw, assignment = found

            new_players = {*team_a, *team_b}
            for other in draw.assignments:
                if other is assignment or other.round != assignment.round or other.tier != assignment.tier:
                    continue
                clash = new_players & set(other.player_ids)
                if clash:
                    raise ConflictError(
                        f"Player(s) {sorted(clash)} already play in round {assignment.round} "
                        f"on court {other.court_id}"
                    )

            assignment.team_a = tuple(team_a)
            assignment.team_b = tuple(team_b)
            return assignment

    # ==================== 比赛与排名 ====================

    def save_match(self, match: MatchRecord) -> MatchRecord:
        with self._lock:
            key = (match.event_id, match.round, match.court_id, match.tier.value)
            existing = self._matches.get(key)
            match.id = existing.id if existing else (match.id or _new_id('match'))
            self._matches[key] = match
        return match

    def list_matches(self, event_id: str, published_only: bool = False) -> List[MatchRecord]:
        return [
            m for m in self._matches.values()
            if m.event_id == event_id and (not published_only or m.published_at is not None)
        ]

    def publish_matches(self, event_id: str, published_at: datetime) -> int:
        with self._lock:
            # 已发布的比分保留原发布时间
            pending = [m for m in self.list_matches(event_id) if m.published_at is None]
            for match in pending:
                match.published_at = published_at
        return len(pending)

    def get_weekly_scores(self, player_ids: Sequence[str], week_start: datetime) -> Dict[str, int]:
        return {
            pid: self._weekly_scores[(pid, week_start)]
            for pid in player_ids
            if (pid, week_start) in self._weekly_scores
        }

    def list_weekly_scores(self, player_id: str, limit: int) -> List[Tuple[datetime, int]]:
        scores = [
            (week_start, score)
            for (pid, week_start), score in self._weekly_scores.items()
            if pid == player_id
        ]
        scores.sort(key=lambda item: item[0], reverse=True)
        return scores[:limit]

    def set_weekly_score(self, player_id: str, week_start: datetime, score: int) -> None:
        with self._lock:
            self._weekly_scores[(player_id, week_start)] = score

    def list_snapshots(self, player_id: str, limit: int) -> List[RankingSnapshot]:
        snapshots = [s for s in self._snapshots if s.player_id == player_id]
        snapshots.sort(key=lambda s: s.created_at, reverse=True)
        return snapshots[:limit]

    def apply_ratings(
        self,
        event_id: str,
        week_start: datetime,
        weekly_scores: Mapping[str, int],
        new_ratings: Mapping[str, int],
        algo_version: str
    ) -> List[RankingSnapshot]:
        with self._lock:
            event = self._require_event(event_id)
            now = self.clock()

            for player_id, score in weekly_scores.items():
                self._weekly_scores[(player_id, week_start)] = score

            snapshots = []
            for player_id, rating in new_ratings.items():
                player = self._players.get(player_id)
                before = player.rating if player else 0
                if player:
                    self._players[player_id] = replace(player, rating=rating)
                snapshots.append(RankingSnapshot(
                    player_id=player_id,
                    event_id=event_id,
                    before=before,
                    after=rating,
                    algo_version=algo_version,
                    created_at=now,
                ))
            self._snapshots.extend(snapshots)
            event.state = EventState.PUBLISHED
        return snapshots

    # ==================== 内部工具 ====================

    def _require_event(self, event_id: str) -> EventRecord:
        event = self._events.get(event_id)
        if event is None:
            raise NotFoundError("Event not found")
        return event

    def _next_waitlist_position(self, event_id: str) -> int:
        positions = [
            r.position for (eid, _), r in self._rsvps.items()
            if eid == event_id and r.status == RSVPStatus.WAITLISTED
        ]
        return max(positions, default=0) + 1
