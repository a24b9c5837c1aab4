import argparse
import sys
import time
from pathlib import Path

from padelnight.core.draw_service import generate_seed
from padelnight.core.report import (
    draw_to_dataframe,
    load_matches_csv,
    load_players_csv,
    load_weekly_window_csv,
    ratings_to_dataframe,
    save_dataframe,
    waitlist_to_dataframe,
)
from padelnight.infra.config import ConfigManager
from padelnight.infra.draw import DrawOrchestrator, PartnerHistoryIndex
from padelnight.infra.errors import PadelNightError
from padelnight.infra.ranking import RatingEngine
from padelnight.storage.csv_history import CsvHistorySource
from padelnight.utils.env_loader import load_project_env
from padelnight.utils.logger import configure_root_logger, get_logger

logger = get_logger(__name__)


def run_draw(config_manager: ConfigManager, args) -> Path:
    """命令行抽签: 球员 CSV + 配置 -> 抽签表 CSV 与同批次的候补名单 CSV"""
    players = load_players_csv(Path(args.players))
    constraints = config_manager.get_draw_constraints()

    history = {}
    if args.history:
        index = PartnerHistoryIndex(CsvHistorySource.from_csv(Path(args.history)))
        history = index.build([p.id for p in players], constraints.avoid_recent_sessions)

    seed = args.seed or generate_seed(config_manager.get_event_name().replace(' ', '_'))
    plan = DrawOrchestrator().generate(
        players=players,
        tier_courts=config_manager.get_tier_courts(),
        rules=config_manager.get_tier_rules(),
        seed=seed,
        constraints=constraints,
        recent_history=history,
    )

    for position, player in enumerate(plan.waitlisted, 1):
        logger.info(f"候补 #{position}: {player.name} ({player.rating})")

    output_dir = config_manager.get_output_dir()
    timestamp = time.strftime('%Y_%m_%d_%H_%M_%S', time.localtime())
    save_dataframe(waitlist_to_dataframe(plan.waitlisted), output_dir, "waitlist_{timestamp}.csv", timestamp=timestamp)

    df = draw_to_dataframe(plan.draw, {p.id: p for p in players})
    return save_dataframe(df, output_dir, "draw_{timestamp}.csv", timestamp=timestamp)


def run_rank(config_manager: ConfigManager, args) -> Path:
    """命令行排名: 当前评分 + 比分 (+ 前四周得分) -> 新评分 CSV"""
    players = load_players_csv(Path(args.ratings))
    current_ratings = {p.id: p.rating for p in players}
    matches = load_matches_csv(Path(args.matches))
    if not matches:
        raise PadelNightError("No matches found in the results file")

    engine = RatingEngine(
        tier_scoring=config_manager.get_tier_scoring(),
        version=config_manager.get_algo_version(),
    )
    window = load_weekly_window_csv(Path(args.window) if args.window else None)
    outcome = engine.compute(current_ratings, window, matches)

    df = ratings_to_dataframe(current_ratings, outcome)
    for _, row in df.head(10).iterrows():
        logger.info(f"  {row['rank']}. {row['player_id']} - {row['after']} ({row['delta']:+d})")
    return save_dataframe(df, config_manager.get_output_dir(), "ratings_{version}_{timestamp}.csv", version=engine.version)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Padel game night 抽签与排名工具")
    parser.add_argument('--config', type=str, required=True, help='赛事YAML配置文件路径')
    parser.add_argument('--log-level', type=str, default='INFO', help='日志级别')
    parser.add_argument('--env-file', type=str, help='.env 文件路径（默认查找当前目录与项目根目录）')
    parser.add_argument('--log-dir', type=str, help='日志目录（默认 PADELNIGHT_LOG_DIR 或项目根目录下的 logs）')
    subparsers = parser.add_subparsers(dest='command', required=True)

    draw_parser = subparsers.add_parser('draw', help='生成抽签')
    draw_parser.add_argument('--players', required=True, help='确认报名球员 CSV (id,name,rating[,email])')
    draw_parser.add_argument('--history', help='历史对阵 CSV (event_id,date,team_a_1,team_a_2,team_b_1,team_b_2)')
    draw_parser.add_argument('--seed', help='指定随机种子以复现抽签')

    rank_parser = subparsers.add_parser('rank', help='计算周得分与新评分')
    rank_parser.add_argument('--ratings', required=True, help='当前评分 CSV (id,name,rating)')
    rank_parser.add_argument('--matches', required=True, help='比分 CSV')
    rank_parser.add_argument('--window', help='前四周得分 CSV (player_id + 各周列，从旧到新)')
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure_root_logger(level=args.log_level, log_to_file=True, log_to_console=True, log_dir=args.log_dir)

    logger.info(f"padelnight 启动 - 配置文件: {args.config}")
    try:
        load_project_env(args.env_file)
        config_manager = ConfigManager(args.config)
        validation_errors = config_manager.validate_config()
        if validation_errors:
            logger.error("配置验证失败，发现以下问题：")
            for error in validation_errors:
                logger.error(f"  - {error}")
            logger.error("请修复配置文件后重试")
            return 1
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"配置加载失败: {e}")
        return 1

    try:
        if args.command == 'draw':
            output = run_draw(config_manager, args)
        else:
            output = run_rank(config_manager, args)
    except (PadelNightError, ValueError) as e:
        logger.error(f"{args.command} 失败: {e}")
        return 1

    logger.info(f"完成: {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
