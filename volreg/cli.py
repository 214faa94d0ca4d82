"""
Volreg CLI

Glue layer: config -> algorithm -> engine -> (regression check) -> outputs.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict, is_dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from .algorithm import Algorithm
from .algorithms import ALGORITHMS, get_algorithm
from .config import Config, load_config
from .data_io import actions_path, bar_path
from .engine import BacktestResult, run_backtest
from .regression import RegressionAlgorithmDefinition, compare_results
from .run_meta import build_run_meta, write_run_meta
from .statistics import statistics_frame

logger = logging.getLogger(__name__)


# -----------------------------
# Helpers
# -----------------------------
def _now_run_id() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def _safe_mkdir(p: Path) -> None:
    p.mkdir(parents=True, exist_ok=True)


def _default(x: Any) -> Any:
    if is_dataclass(x) and not isinstance(x, type):
        return asdict(x)
    if hasattr(x, "__dict__"):
        return dict(x.__dict__)
    return str(x)


def _write_json(path: Path, obj: Any) -> None:
    path.write_text(json.dumps(obj, indent=2, default=_default))


def _print_compact_json(obj: Any) -> None:
    print(json.dumps(obj, default=_default, separators=(",", ":")))


def _configure_logging(cfg: Config) -> None:
    logging.basicConfig(
        level=getattr(logging, cfg.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _subscribed_files(algorithm: Algorithm, data_root: str) -> list[Path]:
    files: list[Path] = []
    for sym, sec in algorithm.securities.items():
        try:
            files.append(bar_path(data_root, sym.value, sec.resolution))
        except FileNotFoundError:
            continue
        ap = actions_path(data_root, sym.value)
        if ap is not None:
            files.append(ap)
    return files


def _write_artifacts(
    root: Path,
    result: BacktestResult,
    algorithm: Algorithm,
    *,
    cmd: str,
    run_id: str,
    config_path: str,
    cfg: Config,
    data_root: str,
    argv: list[str],
) -> None:
    _write_json(root / "summary.json", result.summary())
    statistics_frame(result.statistics).to_csv(root / "statistics.csv", index=False)
    result.equity.to_csv(root / "equity.csv")
    result.equity.to_parquet(root / "equity.parquet", index=True)

    meta = build_run_meta(
        cmd=cmd,
        argv=argv,
        run_id=run_id,
        outputs_dir=root,
        algorithm=result.algorithm,
        config_path=config_path,
        config_obj=cfg,
        data_root=data_root,
        data_files=_subscribed_files(algorithm, data_root),
    )
    meta.update({"status": result.status.value, "data_points": result.data_points})
    write_run_meta(root, meta)


# -----------------------------
# Commands
# -----------------------------
def cmd_backtest(
    algorithm_name: str,
    config_path: str,
    *,
    data_root: str | None = None,
    out_dir: str = "outputs/backtest",
    run_id: str | None = None,
    argv: list[str] | None = None,
) -> BacktestResult:
    cfg = load_config(config_path)
    _configure_logging(cfg)
    data_root = data_root or cfg.data.root

    algorithm = get_algorithm(algorithm_name)()
    result = run_backtest(algorithm, cfg, data_root=data_root)

    run_id = run_id or _now_run_id()
    root = Path(out_dir) / run_id
    _safe_mkdir(root)
    _write_artifacts(
        root,
        result,
        algorithm,
        cmd="backtest",
        run_id=run_id,
        config_path=config_path,
        cfg=cfg,
        data_root=data_root,
        argv=argv or [],
    )

    _print_compact_json({"run_id": run_id, "artifacts_dir": str(root), **result.summary()})
    return result


def cmd_regression(
    algorithm_name: str,
    config_path: str,
    *,
    data_root: str | None = None,
    out_dir: str = "outputs/regression",
    run_id: str | None = None,
    check_data_points: bool = True,
    argv: list[str] | None = None,
) -> bool:
    cfg = load_config(config_path)
    _configure_logging(cfg)
    data_root = data_root or cfg.data.root

    algorithm = get_algorithm(algorithm_name)()
    if not isinstance(algorithm, RegressionAlgorithmDefinition):
        raise ValueError(f"{algorithm_name} does not declare regression expectations")

    result = run_backtest(algorithm, cfg, data_root=data_root)
    report = compare_results(algorithm, result, check_data_points=check_data_points)

    run_id = run_id or _now_run_id()
    root = Path(out_dir) / run_id
    _safe_mkdir(root)
    _write_artifacts(
        root,
        result,
        algorithm,
        cmd="regression",
        run_id=run_id,
        config_path=config_path,
        cfg=cfg,
        data_root=data_root,
        argv=argv or [],
    )
    _write_json(root / "regression.json", report.to_dict())

    _print_compact_json(
        {
            "run_id": run_id,
            "artifacts_dir": str(root),
            "algorithm": result.algorithm,
            "status": result.status.value,
            **report.to_dict(),
        }
    )
    return report.passed


def cmd_list() -> None:
    for name in sorted(ALGORITHMS):
        print(name)


def main(argv: list[str] | None = None) -> None:
    p = argparse.ArgumentParser(description="Volreg backtester and regression runner")
    sub = p.add_subparsers(dest="cmd", required=True)

    # ---------------- backtest ----------------
    p_bt = sub.add_parser("backtest", help="Run a single backtest")
    p_bt.add_argument("--algorithm", required=True)
    p_bt.add_argument("--config", required=True)
    p_bt.add_argument("--data", dest="data_root", default=None, help="Data root (overrides data.root).")
    p_bt.add_argument("--out-dir", default="outputs/backtest")
    p_bt.add_argument("--run-id", default=None)

    # ---------------- regression ----------------
    p_rg = sub.add_parser("regression", help="Run an algorithm and check its declared expectations")
    p_rg.add_argument("--algorithm", required=True)
    p_rg.add_argument("--config", required=True)
    p_rg.add_argument("--data", dest="data_root", default=None, help="Data root (overrides data.root).")
    p_rg.add_argument("--out-dir", default="outputs/regression")
    p_rg.add_argument("--run-id", default=None)
    p_rg.add_argument(
        "--check-data-points",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Compare data-point counts (only meaningful on the recorded dataset).",
    )

    # ---------------- list ----------------
    sub.add_parser("list", help="List registered algorithms")

    args = p.parse_args(argv)

    argv_list = list(argv) if argv is not None else sys.argv[1:]

    if args.cmd == "backtest":
        cmd_backtest(
            args.algorithm,
            args.config,
            data_root=args.data_root,
            out_dir=args.out_dir,
            run_id=args.run_id,
            argv=argv_list,
        )
        return

    if args.cmd == "regression":
        passed = cmd_regression(
            args.algorithm,
            args.config,
            data_root=args.data_root,
            out_dir=args.out_dir,
            run_id=args.run_id,
            check_data_points=bool(args.check_data_points),
            argv=argv_list,
        )
        if not passed:
            raise SystemExit(1)
        return

    if args.cmd == "list":
        cmd_list()
        return


if __name__ == "__main__":
    main()
