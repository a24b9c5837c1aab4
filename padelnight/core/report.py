"""
结果导出模块
读取球员/比分 CSV，导出抽签表、候补名单、评分结果与排行榜
"""

import time
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from padelnight.infra.models import Draw, MatchResult, Player, RatingOutcome, Tier
from padelnight.utils.logger import get_logger

logger = get_logger(__name__)

PLAYER_COLUMNS = ['id', 'name', 'rating']
MATCH_COLUMNS = ['match_id', 'tier', 'team_a_1', 'team_a_2', 'team_b_1', 'team_b_2', 'sets_a', 'sets_b']


def _require_columns(df: pd.DataFrame, columns: Sequence[str], source: Path) -> None:
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise ValueError(f"{source} 缺少必要的列: {missing}")


def load_players_csv(path: Path) -> List[Player]:
    """读取球员列表（id, name, rating[, email]）"""
    df = pd.read_csv(path, dtype={'id': str, 'name': str})
    _require_columns(df, PLAYER_COLUMNS, path)

    players = []
    for _, row in df.iterrows():
        email = row.get('email') if 'email' in df.columns else None
        players.append(Player(
            id=str(row['id']),
            name=str(row['name']),
            rating=int(row['rating']),
            email=str(email) if pd.notna(email) else None,
        ))
    logger.info(f"已加载 {len(players)} 名球员: {path}")
    return players


def load_matches_csv(path: Path) -> List[MatchResult]:
    """读取比分（每行一场，双方各两名球员）"""
    df = pd.read_csv(path, dtype={c: str for c in MATCH_COLUMNS[:6]})
    _require_columns(df, MATCH_COLUMNS, path)

    return [
        MatchResult(
            match_id=row['match_id'],
            tier=Tier(row['tier'].upper()),
            team_a=(row['team_a_1'], row['team_a_2']),
            team_b=(row['team_b_1'], row['team_b_2']),
            sets_a=int(row['sets_a']),
            sets_b=int(row['sets_b']),
        )
        for _, row in df.iterrows()
    ]


def load_weekly_window_csv(path: Optional[Path]) -> List[Dict[str, int]]:
    """读取前几周得分，宽表: player_id + 各周列（从旧到新）"""
    if path is None:
        return []
    df = pd.read_csv(path, dtype={'player_id': str})
    _require_columns(df, ['player_id'], path)

    df = df.set_index('player_id').fillna(0)
    return [
        {pid: int(score) for pid, score in df[column].items()}
        for column in df.columns
    ]


def draw_to_dataframe(draw: Draw, players: Mapping[str, Player]) -> pd.DataFrame:
    """抽签表: 每行一场对阵，按级别、轮次、场地排序"""
    def names(ids: Iterable[str]) -> str:
        return ' / '.join(players[pid].name if pid in players else pid for pid in ids)

    records = [
        {
            'tier': a.tier.value,
            'round': a.round,
            'court_id': a.court_id,
            'team_a': names(a.team_a),
            'team_b': names(a.team_b),
            'team_a_ids': ','.join(a.team_a),
            'team_b_ids': ','.join(a.team_b),
        }
        for a in draw.assignments
    ]
    df = pd.DataFrame(records, columns=['tier', 'round', 'court_id', 'team_a', 'team_b', 'team_a_ids', 'team_b_ids'])
    return df.sort_values(['tier', 'round', 'court_id'], kind='stable').reset_index(drop=True)


def waitlist_to_dataframe(players: Sequence[Player]) -> pd.DataFrame:
    """候补名单: 编号从1开始，顺序即递补顺序"""
    records = [
        {'position': position, 'player_id': p.id, 'name': p.name, 'rating': p.rating}
        for position, p in enumerate(players, 1)
    ]
    return pd.DataFrame(records, columns=['position', 'player_id', 'name', 'rating'])


def ratings_to_dataframe(current_ratings: Mapping[str, int], outcome: RatingOutcome) -> pd.DataFrame:
    """评分结果: 计算前后评分与周得分，按新评分降序"""
    records = [
        {
            'player_id': pid,
            'before': current_ratings.get(pid, 0),
            'weekly_score': outcome.weekly_score.get(pid, 0),
            'after': rating,
            'delta': rating - current_ratings.get(pid, 0),
        }
        for pid, rating in outcome.new_ratings.items()
    ]
    df = pd.DataFrame(records, columns=['player_id', 'before', 'weekly_score', 'after', 'delta'])
    df = df.sort_values(['after', 'player_id'], ascending=[False, True], kind='stable').reset_index(drop=True)
    df.insert(0, 'rank', range(1, len(df) + 1))
    return df


def leaderboard_to_dataframe(entries: Sequence[Mapping]) -> pd.DataFrame:
    """排行榜条目转表格，最近几周得分用逗号连接"""
    df = pd.DataFrame(list(entries), columns=['rank', 'player_id', 'player_name', 'rating', 'delta', 'weekly_scores'])
    df['weekly_scores'] = df['weekly_scores'].apply(
        lambda scores: ','.join(str(s) for s in scores) if isinstance(scores, list) else ''
    )
    return df


def save_dataframe(
    df: pd.DataFrame,
    output_dir: Path,
    filename_template: str,
    **format_params
) -> Path:
    """按模板保存 CSV，模板可使用 {timestamp}"""
    output_dir.mkdir(parents=True, exist_ok=True)
    format_params.setdefault('timestamp', time.strftime('%Y_%m_%d_%H_%M_%S', time.localtime()))
    path = output_dir / filename_template.format(**format_params)
    df.to_csv(path, index=False)
    logger.info(f"已保存: {path}")
    return path
