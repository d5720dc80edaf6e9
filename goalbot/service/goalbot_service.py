"""
GoalBot Service - main service wrapper.

Builds the stores, managers, bot façade and goal scanner from
config/goalbot.yaml, runs the Discord client, and shuts everything down
cleanly. The scanner starts once the bot is connected so its first scan can
actually reach the channels.
"""

import functools
import logging
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from goalbot.core.goal_scanner import GoalScanner
from goalbot.core.logger import ActionLogger
from goalbot.goals.evidence_manager import EvidenceManager
from goalbot.goals.goal_manager import GoalManager
from goalbot.goals.vote_manager import VoteManager
from goalbot.interfaces.discord_bot import GoalBot, run_bot, send_to_channel
from goalbot.storage.factory import create_stores
from goalbot.utils import config
from goalbot.utils.paths import base_path

logger = logging.getLogger(__name__)


class GoalBotService:
    """
    Main GoalBot service wrapper.

    ``build()`` wires the components without touching Discord, so the same
    object graph can be exercised in tests; ``start()`` builds and then runs
    the bot until shutdown.
    """

    def __init__(self, root: Optional[str] = None) -> None:
        self.root = root or base_path()
        self.running = False
        self.goal_manager: Optional[GoalManager] = None
        self.vote_manager: Optional[VoteManager] = None
        self.evidence_manager: Optional[EvidenceManager] = None
        self.goal_bot: Optional[GoalBot] = None
        self.scanner: Optional[GoalScanner] = None
        self.action_logger: Optional[ActionLogger] = None
        self._scanner_enabled = False
        logger.info("GoalBot service initialized (root=%s)", self.root)

    def build(self) -> "GoalBotService":
        """Create stores, managers, façade and scanner from configuration."""
        storage = config.get_storage_config()
        data_dir = storage["data_dir"]
        if not os.path.isabs(data_dir):
            data_dir = os.path.join(self.root, data_dir)
        goal_store, vote_store, evidence_store = create_stores(storage["backend"], data_dir)

        self.goal_manager = GoalManager(goal_store)
        self.vote_manager = VoteManager(vote_store, goal_manager=self.goal_manager)
        self.evidence_manager = EvidenceManager(evidence_store, goal_manager=self.goal_manager)
        self.action_logger = ActionLogger(base_path=self.root)
        self.goal_bot = GoalBot(
            self.goal_manager,
            self.vote_manager,
            self.evidence_manager,
            action_logger=self.action_logger,
        )

        scanner_cfg = config.get_scanner_config()
        discord_cfg = config.get_discord_config()
        self._scanner_enabled = scanner_cfg["enabled"]
        self.scanner = GoalScanner(
            self.goal_manager,
            sink=functools.partial(send_to_channel, timeout=discord_cfg["send_timeout_seconds"]),
            interval_seconds=scanner_cfg["interval_seconds"],
        )
        logger.info(
            "Components ready (backend=%s, scanner=%s)",
            storage["backend"],
            "on" if self._scanner_enabled else "off",
        )
        return self

    def start(self) -> None:
        """Start the service (blocks until the bot exits)."""
        logger.info("=" * 60)
        logger.info("Starting GoalBot Service")
        logger.info("=" * 60)

        self.running = True
        try:
            self._load_env()
            self.build()
            run_bot(
                self.goal_bot,
                token=os.environ.get("DISCORD_BOT_TOKEN"),
                on_ready=self._on_bot_ready,
                sync_commands=config.get_discord_config()["sync_commands"],
            )
        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received")
        finally:
            self.stop()

    def _on_bot_ready(self) -> None:
        if self.scanner and self._scanner_enabled:
            self.scanner.start()

    def _load_env(self) -> None:
        """Load .env from project root."""
        env_path = Path(self.root) / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            logger.info("Loaded .env")

    def stop(self) -> None:
        """Stop the service gracefully."""
        if not self.running:
            return
        self.running = False

        logger.info("Stopping GoalBot Service")
        if self.scanner:
            self.scanner.stop()
        if self.action_logger:
            self.action_logger.close()
        logger.info("GoalBot service stopped")


def main() -> None:
    """Main entry point."""
    root = Path(base_path())
    log_dir = root / "logs"
    log_dir.mkdir(exist_ok=True)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler(log_dir / "goalbot_service.log", encoding="utf-8"),
        ],
    )

    # Reduce noise from third-party libs
    for name in ("discord", "discord.http", "discord.gateway"):
        logging.getLogger(name).setLevel(logging.WARNING)

    service = GoalBotService(root=str(root))
    service.start()


if __name__ == "__main__":
    main()
