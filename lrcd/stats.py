"""Statistics tracking and reporting for the LRC hub."""

from __future__ import annotations

import threading
import time
from typing import Any


class StatsManager:
    """
    Lifetime counters for the hub.

    Tracks:
    - Connections accepted and closed
    - Bytes and lines in/out
    - Errors sent
    - Room joins/leaves and nick changes
    - Messages forwarded and private messages delivered
    - Connections closed for oversized lines or unread output backlog
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.started_wall_time: float | None = None
        self.started_monotonic: float | None = None

        self._counters: dict[str, int] = {
            "connections": 0,
            "disconnects": 0,
            "bytes_in": 0,
            "bytes_out": 0,
            "lines_in": 0,
            "errors_sent": 0,
            "joins": 0,
            "leaves": 0,
            "nick_changes": 0,
            "msgs_forwarded": 0,
            "privs_delivered": 0,
            "overflow_closes": 0,
            "backlog_drops": 0,
        }

    def set_start_time(self) -> None:
        """Set the start time for uptime calculations."""
        self.started_wall_time = time.time()
        self.started_monotonic = time.monotonic()

    def inc(self, key: str, delta: int = 1) -> None:
        with self._lock:
            self._counters[key] = int(self._counters.get(key, 0)) + int(delta)

    def get(self, key: str) -> int:
        with self._lock:
            return int(self._counters.get(key, 0))

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counters)

    def format_stats(
        self,
        *,
        session_stats: dict[str, Any],
        room_stats: dict[str, Any],
        nick_count: int,
    ) -> str:
        """Format current statistics as a human-readable string."""
        from . import __version__

        started_mono = self.started_monotonic
        uptime_s = (time.monotonic() - started_mono) if started_mono is not None else 0.0
        c = self.snapshot()

        lines: list[str] = []
        lines.append(f"lrcd {__version__} stats")
        lines.append(f"uptime_s={uptime_s:.1f}")
        lines.append(
            f"clients_total={session_stats.get('total', 0)} "
            f"init={session_stats.get('init', 0)} "
            f"outside={session_stats.get('outside', 0)} "
            f"inside={session_stats.get('inside', 0)} "
            f"nicks={nick_count}"
        )
        lines.append(
            f"rooms={room_stats.get('rooms_total', 0)} "
            f"memberships={room_stats.get('memberships', 0)}"
        )

        top_rooms = room_stats.get("top_rooms") or []
        if top_rooms:
            lines.append("top_rooms=" + ", ".join(f"{r}:{n}" for r, n in top_rooms))

        lines.append(
            "io: connections={} disconnects={} lines_in={} bytes_in={} bytes_out={}".format(
                c.get("connections", 0),
                c.get("disconnects", 0),
                c.get("lines_in", 0),
                c.get("bytes_in", 0),
                c.get("bytes_out", 0),
            )
        )
        lines.append(
            "events: joins={} leaves={} nick_changes={} msgs_fwd={} privs={} "
            "errors_sent={} overflow_closes={} backlog_drops={}".format(
                c.get("joins", 0),
                c.get("leaves", 0),
                c.get("nick_changes", 0),
                c.get("msgs_forwarded", 0),
                c.get("privs_delivered", 0),
                c.get("errors_sent", 0),
                c.get("overflow_closes", 0),
                c.get("backlog_drops", 0),
            )
        )

        return "\n".join(lines)
