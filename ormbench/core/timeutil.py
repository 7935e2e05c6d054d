"""
Time helpers: run identifiers, ISO timestamps and the injectable clock.
"""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]

RUN_ID_FORMAT = "%Y-%m-%d_%H-%M-%S"
_RUN_ID_RE = re.compile(r"^\d{4}-\d{2}-\d{2}_\d{2}-\d{2}-\d{2}(-\d{2,})?$")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(moment: datetime) -> str:
    """ISO 8601 with millisecond precision, always in UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds")


def parse_iso(value: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_run_id(moment: datetime, sequence: int = 0) -> str:
    """
    Build a sortable run identifier ``YYYY-MM-DD_HH-MM-SS``.

    A non-zero *sequence* appends ``-NN`` so that two runs started within the
    same second still get distinct ids that sort after the plain one.
    """
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    run_id = moment.strftime(RUN_ID_FORMAT)
    if sequence:
        run_id = f"{run_id}-{sequence:02d}"
    return run_id


def is_run_id(value: str) -> bool:
    return bool(_RUN_ID_RE.match(value))


def parse_run_id(run_id: str) -> Optional[datetime]:
    """Recover the (UTC) start second encoded in a run id."""
    if not is_run_id(run_id):
        return None
    try:
        parsed = datetime.strptime(run_id[:19], RUN_ID_FORMAT)
    except ValueError:
        return None
    return parsed.replace(tzinfo=timezone.utc)
