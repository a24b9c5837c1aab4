"""
排名服务
比分录入与发布、按赛事计算周得分和新评分、排行榜与个人历史
"""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from padelnight.infra.errors import NotFoundError, ValidationError
from padelnight.infra.models import MatchResult, Tier
from padelnight.infra.notifier import LoggingNotifier, Notifier
from padelnight.infra.ranking import RatingAlgorithm, RatingEngine
from padelnight.infra.ranking.rating_engine import WINDOW_WEEKS
from padelnight.storage.base import EventRecord, EventStore, MatchRecord
from padelnight.utils.logger import get_logger

logger = get_logger(__name__)

MAX_SETS = 6
LEADERBOARD_WEEKS = 5
HISTORY_LIMIT = 10


def get_week_start(date: datetime) -> datetime:
    """所在周的周一零点"""
    day = date.replace(hour=0, minute=0, second=0, microsecond=0)
    return day - timedelta(days=day.weekday())


class RankingService:
    """排名服务: 评分只通过评分算法的输出更新"""

    def __init__(
        self,
        store: EventStore,
        notifier: Optional[Notifier] = None,
        engine: Optional[RatingAlgorithm] = None,
        clock=datetime.now
    ):
        self.store = store
        self.notifier = notifier or LoggingNotifier()
        self.engine = engine or RatingEngine()
        self.clock = clock

    def record_match_result(
        self,
        event_id: str,
        round: int,
        court_id: str,
        tier: Tier,
        sets_a: int,
        sets_b: int
    ) -> MatchRecord:
        """录入比分（每队 0-6 盘）"""
        if sets_a < 0 or sets_b < 0:
            raise ValidationError("Sets cannot be negative")
        if sets_a > MAX_SETS or sets_b > MAX_SETS:
            raise ValidationError(f"Sets cannot exceed {MAX_SETS}")

        self._require_event(event_id)
        tier = Tier(tier)
        draw = self.store.get_latest_draw(event_id)
        if draw is None or not any(
            a.round == round and a.court_id == court_id and a.tier == tier
            for a in draw.assignments
        ):
            raise NotFoundError(f"No {tier.value} assignment for round {round} on court {court_id}")

        return self.store.save_match(MatchRecord(
            event_id=event_id,
            round=round,
            court_id=court_id,
            tier=tier,
            sets_a=sets_a,
            sets_b=sets_b,
        ))

    def publish_matches(self, event_id: str) -> int:
        """发布本场赛事的全部比分"""
        self._require_event(event_id)
        if not self.store.list_matches(event_id):
            raise ValidationError("No matches to publish")
        count = self.store.publish_matches(event_id, self.clock())
        logger.info(f"赛事 {event_id}: 已发布 {count} 场比分")
        return count

    def compute_rankings_for_event(self, event_id: str) -> Dict[str, Any]:
        """计算并保存本周得分、新评分与评分快照"""
        event = self._require_event(event_id)

        matches = self.store.list_matches(event_id, published_only=True)
        if not matches:
            raise ValidationError("No published matches found for this event")

        draw = self.store.get_latest_draw(event_id)
        if draw is None:
            raise ValidationError("No draw found for this event")

        by_slot = {(a.round, a.court_id, a.tier): a for a in draw.assignments}
        results: List[MatchResult] = []
        for match in sorted(matches, key=lambda m: (m.tier.value, m.round, m.court_id)):
            assignment = by_slot.get((match.round, match.court_id, match.tier))
            if assignment is None:
                logger.warning(f"比分 {match.id} 找不到对应的对阵 (第 {match.round} 轮, 场地 {match.court_id})，跳过")
                continue
            results.append(MatchResult(
                match_id=match.id,
                tier=match.tier,
                team_a=assignment.team_a,
                team_b=assignment.team_b,
                sets_a=match.sets_a,
                sets_b=match.sets_b,
            ))

        if not results:
            raise ValidationError("No published matches correspond to the draw assignments")

        player_ids = sorted({pid for r in results for pid in (*r.team_a, *r.team_b)})
        players = self.store.get_players(player_ids)
        current_ratings = {p.id: p.rating for p in players}

        week_start = get_week_start(event.date)
        weekly_window = [
            self.store.get_weekly_scores(player_ids, week_start - timedelta(weeks=weeks_back))
            for weeks_back in range(WINDOW_WEEKS, 0, -1)
        ]

        outcome = self.engine.compute(current_ratings, weekly_window, results)
        self.store.apply_ratings(
            event_id,
            week_start,
            outcome.weekly_score,
            outcome.new_ratings,
            self.engine.version,
        )
        logger.info(f"赛事 {event_id}: {len(results)} 场比赛，更新 {len(outcome.new_ratings)} 名球员评分")

        emails = [p.email for p in players if p.email]
        try:
            self.notifier.results_published(emails, event.to_summary())
        except Exception as e:
            logger.error(f"通知发送异常，已忽略: {type(e).__name__} - {e}")

        return {
            'players_updated': len(outcome.new_ratings),
            'weekly_scores': outcome.weekly_score,
            'new_ratings': outcome.new_ratings,
        }

    def get_leaderboard(self, limit: int = 50) -> List[Dict[str, Any]]:
        """按评分降序的排行榜（同分按姓名、ID 排序），delta 为最近一次快照的变化"""
        players = sorted(self.store.list_players(), key=lambda p: (-p.rating, p.name, p.id))[:limit]

        entries = []
        for rank, player in enumerate(players, 1):
            snapshots = self.store.list_snapshots(player.id, 1)
            delta = snapshots[0].after - snapshots[0].before if snapshots else 0
            weekly = self.store.list_weekly_scores(player.id, LEADERBOARD_WEEKS)
            entries.append({
                'rank': rank,
                'player_id': player.id,
                'player_name': player.name,
                'rating': player.rating,
                'delta': delta,
                'weekly_scores': [score for _, score in weekly],
            })
        return entries

    def get_player_history(self, player_id: str) -> Dict[str, Any]:
        """个人每周得分与对应周的评分"""
        players = self.store.get_players([player_id])
        if not players:
            raise NotFoundError("Player not found")
        player = players[0]

        # 快照按赛事日期归到对应的周，同一周取最新一次
        snapshot_by_week = {}
        for snapshot in self.store.list_snapshots(player_id, HISTORY_LIMIT):
            event = self.store.get_event(snapshot.event_id)
            week = get_week_start(event.date if event else snapshot.created_at)
            snapshot_by_week.setdefault(week, snapshot)

        history = []
        for week_start, score in self.store.list_weekly_scores(player_id, HISTORY_LIMIT):
            snapshot = snapshot_by_week.get(week_start)
            history.append({
                'week_start': week_start,
                'score': score,
                'rating': snapshot.after if snapshot else player.rating,
            })

        return {
            'player_id': player.id,
            'player_name': player.name,
            'current_rating': player.rating,
            'history': history,
        }

    def _require_event(self, event_id: str) -> EventRecord:
        event = self.store.get_event(event_id)
        if event is None:
            raise NotFoundError("Event not found")
        return event
