"""CSV 格式的历史对阵来源（命令行抽签使用）"""

from datetime import datetime
from pathlib import Path
from typing import List

import pandas as pd

from padelnight.infra.draw.partner_history import HistorySource
from padelnight.infra.models import Assignment, Tier

HISTORY_COLUMNS = ['event_id', 'date', 'team_a_1', 'team_a_2', 'team_b_1', 'team_b_2']


class CsvHistorySource(HistorySource):
    """每行一场已发布赛事的对阵: event_id, date, team_a_1, team_a_2, team_b_1, team_b_2"""

    def __init__(self, df: pd.DataFrame):
        missing = [c for c in HISTORY_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"历史对阵缺少必要的列: {missing}")
        self.df = df.assign(date=pd.to_datetime(df['date']))

    @classmethod
    def from_csv(cls, path: Path) -> "CsvHistorySource":
        return cls(pd.read_csv(path, dtype={c: str for c in HISTORY_COLUMNS if c != 'date'}))

    def find_published_assignments(self, since: datetime, limit: int) -> List[List[Assignment]]:
        recent = self.df[self.df['date'] >= pd.Timestamp(since)]
        event_dates = (
            recent.groupby('event_id')['date'].max()
            .sort_values(ascending=False)
            .head(limit)
        )

        sessions = []
        for event_id in event_dates.index:
            rows = recent[recent['event_id'] == event_id]
            sessions.append([
                Assignment(
                    round=index + 1,
                    court_id='',
                    team_a=(row['team_a_1'], row['team_a_2']),
                    team_b=(row['team_b_1'], row['team_b_2']),
                    tier=Tier(row['tier']) if 'tier' in rows.columns and pd.notna(row['tier']) else Tier.EXPLORERS,
                )
                for index, (_, row) in enumerate(rows.iterrows())
            ])
        return sessions
