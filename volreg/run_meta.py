"""
Run Metadata
------------
Provenance for every CLI run: git state, interpreter, the resolved config and
SHA-256 hashes of the config file and of the market data files the algorithm
subscribed to. Written next to the run's artifacts as run_meta.json.
"""

from __future__ import annotations

import hashlib
import json
import os
import platform
import subprocess
import sys
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, cast


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def stable_json_dumps(obj: Any) -> str:
    """Sorted, compact JSON used for hashing."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)


def sha256_text(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def sha256_file(path: str | Path, *, chunk_size: int = 1024 * 1024) -> str:
    """SHA-256 of a file, read in chunks."""
    h = hashlib.sha256()
    with Path(path).open("rb") as f:
        while True:
            b = f.read(chunk_size)
            if not b:
                break
            h.update(b)
    return h.hexdigest()


def _git(*args: str) -> Optional[str]:
    try:
        out = subprocess.check_output(["git", *args], stderr=subprocess.DEVNULL)
    except (OSError, subprocess.CalledProcessError):
        return None
    return out.decode("utf-8").strip() or None


def try_git_sha() -> Optional[str]:
    return _git("rev-parse", "HEAD")


def try_git_describe() -> Optional[str]:
    return _git("describe", "--tags", "--always")


def env_info() -> Dict[str, Any]:
    return {
        "python": sys.version.split()[0],
        "platform": platform.platform(),
        "executable": sys.executable,
        "cwd": os.getcwd(),
    }


def dataclass_to_dict(dc: Any) -> Dict[str, Any]:
    if not is_dataclass(dc):
        raise TypeError("dataclass_to_dict expected a dataclass instance")
    return asdict(cast(Any, dc))


def data_file_hashes(paths: Iterable[str | Path]) -> Dict[str, str]:
    """Maps each existing data file to its SHA-256."""
    return {str(p): sha256_file(p) for p in sorted({Path(p) for p in paths}) if Path(p).is_file()}


def build_run_meta(
    *,
    cmd: str,
    argv: list[str],
    run_id: str,
    outputs_dir: str | Path,
    algorithm: str,
    config_path: Optional[str] = None,
    config_obj: Optional[Any] = None,
    data_root: Optional[str] = None,
    data_files: Iterable[str | Path] = (),
) -> Dict[str, Any]:
    """Collects the metadata dictionary for the current run."""
    meta: Dict[str, Any] = {
        "cmd": cmd,
        "run_id": run_id,
        "algorithm": algorithm,
        "argv": argv,
        "outputs_dir": str(Path(outputs_dir)),
        "timestamp_utc": utc_now_iso(),
        "git_sha": try_git_sha(),
        "git_describe": try_git_describe(),
        "env": env_info(),
    }

    if config_path:
        meta["config_path"] = config_path
        meta["config_sha256"] = sha256_file(config_path)

    if config_obj is not None:
        cfg_dict = dataclass_to_dict(config_obj)
        meta["config_dump"] = cfg_dict
        meta["config_dump_sha256"] = sha256_text(stable_json_dumps(cfg_dict))

    if data_root is not None:
        meta["data_root"] = str(data_root)
    meta["data_sha256"] = data_file_hashes(data_files)

    return meta


def write_run_meta(outputs_dir: str | Path, meta: Dict[str, Any]) -> Path:
    out_dir = Path(outputs_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    path = out_dir / "run_meta.json"
    path.write_text(json.dumps(meta, indent=2, default=str), encoding="utf-8")
    return path
