from __future__ import annotations

import datetime
from collections.abc import Callable

# All persisted timestamps are integer epoch seconds (UTC).
Clock = Callable[[], int]

SECONDS_PER_DAY = 86_400


def utc_now() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())
