"""
Environment capture: host facts and source-control metadata for a run.
"""
from __future__ import annotations

import logging
import os
import platform
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Optional

import psutil

from .models import EnvironmentSnapshot, GitInfo
from .timeutil import isoformat, utc_now

logger = logging.getLogger(__name__)


def _cpu_model() -> str:
    model = platform.processor()
    if model:
        return model
    cpuinfo = Path("/proc/cpuinfo")
    if cpuinfo.exists():
        for line in cpuinfo.read_text(errors="ignore").splitlines():
            if line.startswith("model name"):
                return line.split(":", 1)[1].strip()
    return "Unknown"


def capture_environment(
    connection_pool_size: int = 20,
    postgres_version: Optional[str] = None,
    moment: Optional[datetime] = None,
) -> EnvironmentSnapshot:
    """Snapshot the interpreter, OS, CPU and memory of this host."""
    return EnvironmentSnapshot(
        python_version=platform.python_version(),
        platform=platform.system().lower(),
        arch=platform.machine(),
        cpu_model=_cpu_model(),
        cpu_cores=os.cpu_count() or 0,
        total_memory_mb=round(psutil.virtual_memory().total / 1024 / 1024),
        connection_pool_size=connection_pool_size,
        timestamp=isoformat(moment or utc_now()),
        postgres_version=postgres_version or os.environ.get("POSTGRES_VERSION") or None,
    )


def _git(*args: str, cwd: Optional[Path] = None) -> str:
    proc = subprocess.run(
        ["git", *args],
        cwd=str(cwd) if cwd else None,
        capture_output=True,
        text=True,
        check=True,
        timeout=10,
    )
    return proc.stdout.strip()


def capture_git_info(cwd: Optional[Path] = None) -> Optional[GitInfo]:
    """Branch/commit/dirty flag, or None outside a git checkout."""
    try:
        branch = _git("rev-parse", "--abbrev-ref", "HEAD", cwd=cwd)
        commit = _git("rev-parse", "HEAD", cwd=cwd)
        dirty = bool(_git("status", "--porcelain", cwd=cwd))
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("Git info unavailable: %s", e)
        return None
    return GitInfo(branch=branch, commit=commit, is_dirty=dirty)
