"""
排名服务单元测试
"""

from datetime import datetime, timedelta

import pytest

from padelnight.core import RankingService, get_week_start
from padelnight.infra.errors import NotFoundError, ValidationError
from padelnight.infra.models import (
    Assignment,
    Draw,
    DrawConstraints,
    EventState,
    Player,
    Tier,
)
from padelnight.infra.notifier import Notifier
from padelnight.storage import EventRecord, InMemoryEventStore

EVENT_DATE = datetime(2026, 10, 20, 20, 0)
WEEK = datetime(2026, 10, 19)


class RecordingNotifier(Notifier):
    """记录通知调用"""

    def __init__(self):
        self.calls = []

    def announce_draw(self, emails, event):
        self.calls.append(('announce_draw', list(emails)))

    def results_published(self, emails, event):
        self.calls.append(('results_published', list(emails)))

    def rsvp_confirmed(self, email, name, event):
        pass

    def rsvp_waitlisted(self, email, name, event, position):
        pass

    def waitlist_promoted(self, email, name, event):
        pass


@pytest.fixture
def store():
    """8名球员、两个级别各一场对阵的赛事"""
    store = InMemoryEventStore()
    store.add_event(EventRecord(id='evt_1', date=EVENT_DATE, state=EventState.FROZEN))
    for i in range(1, 9):
        store.add_player(Player(f"p{i}", f"Player {i}", 310 - i * 10, email=f"p{i}@test.com"))

    store.commit_draw('evt_1', Draw(
        assignments=[
            Assignment(1, 'c1', ('p1', 'p2'), ('p3', 'p4'), Tier.MASTERS),
            Assignment(1, 'c1', ('p5', 'p6'), ('p7', 'p8'), Tier.EXPLORERS),
        ],
        seed='seed-1',
        constraints=DrawConstraints(),
    ), [])
    return store


def record_and_publish(service):
    service.record_match_result('evt_1', 1, 'c1', Tier.MASTERS, 6, 2)
    service.record_match_result('evt_1', 1, 'c1', Tier.EXPLORERS, 3, 3)
    service.publish_matches('evt_1')


def test_get_week_start():
    """测试周起始为周一零点"""
    assert get_week_start(datetime(2026, 10, 21, 19, 30)) == WEEK
    assert get_week_start(WEEK) == WEEK
    assert get_week_start(datetime(2026, 10, 25, 23, 59)) == WEEK


class TestRecordMatchResult:
    """比分录入测试类"""

    def test_record(self, store):
        """测试录入并覆盖同一场地的比分"""
        service = RankingService(store)

        first = service.record_match_result('evt_1', 1, 'c1', Tier.MASTERS, 6, 2)
        second = service.record_match_result('evt_1', 1, 'c1', Tier.MASTERS, 5, 3)

        matches = store.list_matches('evt_1')
        assert len(matches) == 1
        assert first.id == second.id
        assert (matches[0].sets_a, matches[0].sets_b) == (5, 3)

    def test_same_court_different_tier(self, store):
        """测试不同级别同一轮次同一场地分别记录"""
        service = RankingService(store)

        service.record_match_result('evt_1', 1, 'c1', Tier.MASTERS, 6, 2)
        service.record_match_result('evt_1', 1, 'c1', 'EXPLORERS', 3, 3)

        assert len(store.list_matches('evt_1')) == 2

    @pytest.mark.parametrize('sets_a,sets_b,message', [
        (-1, 3, "cannot be negative"),
        (7, 3, "cannot exceed 6"),
    ])
    def test_invalid_sets(self, store, sets_a, sets_b, message):
        """测试盘数校验"""
        with pytest.raises(ValidationError, match=message):
            RankingService(store).record_match_result('evt_1', 1, 'c1', Tier.MASTERS, sets_a, sets_b)

    def test_unknown_slot(self, store):
        """测试没有对应对阵"""
        with pytest.raises(NotFoundError):
            RankingService(store).record_match_result('evt_1', 2, 'c1', Tier.MASTERS, 6, 2)
        with pytest.raises(NotFoundError):
            RankingService(store).record_match_result('missing', 1, 'c1', Tier.MASTERS, 6, 2)

    def test_publish_without_matches(self, store):
        """测试没有比分时不能发布"""
        with pytest.raises(ValidationError, match="No matches to publish"):
            RankingService(store).publish_matches('evt_1')

    def test_publish_keeps_existing_timestamp(self, store):
        """测试重复发布只给新比分写入发布时间"""
        times = iter([datetime(2026, 10, 20, 22, 0), datetime(2026, 10, 21, 9, 0), datetime(2026, 10, 21, 10, 0)])
        service = RankingService(store, clock=lambda: next(times))

        service.record_match_result('evt_1', 1, 'c1', Tier.MASTERS, 6, 2)
        assert service.publish_matches('evt_1') == 1
        service.record_match_result('evt_1', 1, 'c1', Tier.EXPLORERS, 3, 3)
        assert service.publish_matches('evt_1') == 1
        assert service.publish_matches('evt_1') == 0

        published = {m.tier: m.published_at for m in store.list_matches('evt_1')}
        assert published[Tier.MASTERS] == datetime(2026, 10, 20, 22, 0)
        assert published[Tier.EXPLORERS] == datetime(2026, 10, 21, 9, 0)


class TestComputeRankings:
    """评分计算测试类"""

    def test_requires_published_matches(self, store):
        """测试比分未发布时不能计算"""
        service = RankingService(store)
        service.record_match_result('evt_1', 1, 'c1', Tier.MASTERS, 6, 2)

        with pytest.raises(ValidationError, match="No published matches"):
            service.compute_rankings_for_event('evt_1')

    def test_compute(self, store):
        """测试计算周得分与新评分并保存"""
        store.set_weekly_score('p1', WEEK - timedelta(weeks=1), 190)
        notifier = RecordingNotifier()
        service = RankingService(store, notifier=notifier)
        record_and_publish(service)

        result = service.compute_rankings_for_event('evt_1')

        assert result['players_updated'] == 8
        assert result['weekly_scores']['p1'] == 210
        assert result['weekly_scores']['p3'] == 20
        # EXPLORERS 3-3: 45 / 2 = 22.5 -> 23
        assert result['weekly_scores']['p5'] == 23
        assert result['new_ratings']['p1'] == 200
        assert result['new_ratings']['p2'] == 210

        assert store.get_players(['p1'])[0].rating == 200
        assert store.get_weekly_scores(['p1', 'p3'], WEEK) == {'p1': 210, 'p3': 20}
        assert store.get_event('evt_1').state == EventState.PUBLISHED

        snapshot = store.list_snapshots('p1', 1)[0]
        assert (snapshot.before, snapshot.after, snapshot.algo_version) == (300, 200, 'v1')

        kind, emails = notifier.calls[0]
        assert kind == 'results_published'
        assert len(emails) == 8

    def test_leaderboard(self, store):
        """测试排行榜按评分降序并带有变化值"""
        store.set_weekly_score('p1', WEEK - timedelta(weeks=1), 190)
        service = RankingService(store)
        record_and_publish(service)
        service.compute_rankings_for_event('evt_1')

        leaderboard = service.get_leaderboard()

        assert [e['player_id'] for e in leaderboard[:2]] == ['p2', 'p1']
        assert leaderboard[0]['rank'] == 1
        assert leaderboard[0]['delta'] == 210 - 290
        assert leaderboard[0]['weekly_scores'] == [210]
        assert len(service.get_leaderboard(limit=3)) == 3

    def test_leaderboard_tie_order(self, store):
        """测试评分相同时按姓名排序"""
        service = RankingService(store)
        record_and_publish(service)
        service.compute_rankings_for_event('evt_1')

        leaderboard = service.get_leaderboard()

        assert leaderboard[0]['rating'] == leaderboard[1]['rating'] == 210
        assert [e['player_id'] for e in leaderboard[:2]] == ['p1', 'p2']
        assert [e['rank'] for e in leaderboard[:2]] == [1, 2]

    def test_player_history(self, store):
        """测试个人历史包含每周得分与评分"""
        store.set_weekly_score('p1', WEEK - timedelta(weeks=1), 190)
        service = RankingService(store)
        record_and_publish(service)
        service.compute_rankings_for_event('evt_1')

        history = service.get_player_history('p1')

        assert history['current_rating'] == 200
        assert history['history'][0] == {'week_start': WEEK, 'score': 210, 'rating': 200}
        assert history['history'][1]['score'] == 190

    def test_player_history_not_found(self, store):
        """测试球员不存在"""
        with pytest.raises(NotFoundError, match="Player not found"):
            RankingService(store).get_player_history('missing')
