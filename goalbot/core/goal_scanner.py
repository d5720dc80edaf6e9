"""
Goal Scanner - periodic due-date sweep.

Runs one scan immediately on start, then one every ``interval_seconds``
(default 10 minutes) on a background thread. Each scan lists every goal
through the GoalManager and posts a status line to the goal's channel:
pending if the due date is still ahead, overdue otherwise.

Scans are stateless: a goal that stays overdue is reported again on every
cycle. A channel the sink cannot resolve drops that goal's notification.
"""

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from goalbot.goals.goal_manager import Goal, GoalManager, as_utc

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 600

# sink(channel_id, text) -> True if delivered, False if the channel is unknown
NotificationSink = Callable[[str, str], bool]


class GoalStatus(Enum):
    """Due-date status reported by a scan."""

    PENDING = "pending"
    OVERDUE = "overdue"


@dataclass(frozen=True)
class GoalNotification:
    goal_id: int
    channel_id: str
    status: GoalStatus
    text: str
    delivered: bool


def format_due_date(due_date: datetime) -> str:
    """Long US-style date, e.g. 'October 19, 2026'."""
    return f"{due_date:%B} {due_date.day}, {due_date.year}"


def build_message(goal: Goal, status: GoalStatus) -> str:
    tail = "is yet to be completed." if status is GoalStatus.PENDING else "is overdue."
    return (
        f"Goal with ID: {goal.id}, description: {goal.description}, "
        f"and due date: {format_due_date(goal.due_date)} {tail}"
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GoalScanner:
    """Background loop that reports goal due-date status to each goal's channel."""

    def __init__(
        self,
        goal_manager: GoalManager,
        sink: NotificationSink,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """
        Args:
            goal_manager: Source of goals; the scanner never touches stores directly
            sink: Delivers text to a channel id, returns False if the channel is unknown
            interval_seconds: Pause between scans (default 10 min)
            clock: Returns the current time; defaults to aware UTC now
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.goal_manager = goal_manager
        self.sink = sink
        self.interval = float(interval_seconds)
        self._clock = clock or _utcnow

        self.is_scanning = False
        self.scan_count = 0
        self.last_scan_at: Optional[datetime] = None
        self.scan_thread: Optional[threading.Thread] = None
        self.stop_flag = threading.Event()

        logger.info("Goal scanner initialized (interval: %.0fs)", self.interval)

    def scan_goals(self, now: Optional[datetime] = None) -> List[GoalNotification]:
        """Run one scan and return the notifications it produced, in goal order."""
        now = as_utc(now) if now is not None else self._clock()
        goals = self.goal_manager.list_goals()

        notifications: List[GoalNotification] = []
        for goal in goals:
            status = GoalStatus.PENDING if goal.due_date > now else GoalStatus.OVERDUE
            text = build_message(goal, status)
            delivered = self._deliver(goal.channel_id, text)
            notifications.append(
                GoalNotification(
                    goal_id=goal.id,
                    channel_id=goal.channel_id,
                    status=status,
                    text=text,
                    delivered=delivered,
                )
            )

        self.scan_count += 1
        self.last_scan_at = now
        overdue = sum(1 for n in notifications if n.status is GoalStatus.OVERDUE)
        logger.info(
            "Goal scan %d: %d goals (%d pending, %d overdue, %d undelivered)",
            self.scan_count,
            len(notifications),
            len(notifications) - overdue,
            overdue,
            sum(1 for n in notifications if not n.delivered),
        )
        return notifications

    def _deliver(self, channel_id: str, text: str) -> bool:
        try:
            delivered = bool(self.sink(channel_id, text))
        except Exception as e:
            logger.warning("Notification to channel %s failed: %s", channel_id, e)
            return False
        if not delivered:
            logger.debug("Channel %s not resolved, dropping notification", channel_id)
        return delivered

    def start(self) -> None:
        """Start the background scan thread (first scan runs immediately)."""
        if self.scan_thread and self.scan_thread.is_alive():
            logger.warning("Goal scanner already running")
            return

        self.stop_flag.clear()
        self.scan_thread = threading.Thread(target=self._scan_loop, name="goal-scanner", daemon=True)
        self.scan_thread.start()
        logger.info("Goal scanner started")

    def stop(self, timeout: float = 5.0) -> None:
        """Stop scheduling scans. A scan already running is allowed to finish."""
        self.stop_flag.set()
        if self.scan_thread:
            self.scan_thread.join(timeout=timeout)
        logger.info("Goal scanner stopped")

    def _scan_loop(self) -> None:
        while not self.stop_flag.is_set():
            self._run_scan()
            if self.stop_flag.wait(self.interval):
                break

    def _run_scan(self) -> None:
        self.is_scanning = True
        try:
            self.scan_goals()
        except Exception as e:
            logger.error("Goal scan failed: %s", e, exc_info=True)
        finally:
            self.is_scanning = False

    def get_status(self) -> Dict[str, Any]:
        return {
            "running": bool(self.scan_thread and self.scan_thread.is_alive()),
            "is_scanning": self.is_scanning,
            "scan_count": self.scan_count,
            "last_scan_at": self.last_scan_at.isoformat() if self.last_scan_at else None,
            "interval_seconds": self.interval,
        }
