"""
Discord Bot Interface - goals, votes and evidence over slash commands.

``GoalBot`` is the façade the slash commands call into: one method per
action, plus ``dispatch`` which runs a parsed command and renders the reply
text. The discord.py client itself is thin glue around it.

Outbound messaging: the goal scanner calls send_to_channel(channel_id, text)
from its own thread to post status lines into a goal's channel.
"""

import asyncio
import concurrent.futures
import logging
import os
import time
from typing import Any, Callable, Dict, List, Mapping, Optional

from goalbot.core.goal_scanner import format_due_date
from goalbot.errors import CommandParseError, GoalBotError, StoreIOError
from goalbot.goals.evidence_manager import Evidence, EvidenceManager
from goalbot.goals.goal_manager import GoalManager
from goalbot.goals.vote_manager import VoteManager
from goalbot.interfaces.commands import (
    AddEvidenceCommand,
    CastVoteCommand,
    CheckGoalCommand,
    Command,
    CreateGoalCommand,
    ListEvidenceCommand,
    ListGoalsCommand,
    parse_command,
)

logger = logging.getLogger(__name__)

# Outbound messaging state (set when bot connects)
_bot_client: Optional[Any] = None
_bot_loop: Optional[asyncio.AbstractEventLoop] = None

STORAGE_FAILURE_REPLY = "Sorry, I couldn't save or read that right now. Please try again later."


def _truncate(text: str, max_len: int = 1900) -> str:
    """Truncate text for Discord (max 2000 chars per message)."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


class GoalBot:
    """Routes user actions to the goal, vote and evidence managers."""

    def __init__(
        self,
        goal_manager: GoalManager,
        vote_manager: VoteManager,
        evidence_manager: EvidenceManager,
        action_logger: Optional[Any] = None,
    ) -> None:
        self.goal_manager = goal_manager
        self.vote_manager = vote_manager
        self.evidence_manager = evidence_manager
        self.action_logger = action_logger
        self._handlers: Dict[type, Callable[[Any], str]] = {
            CreateGoalCommand: self._reply_goal,
            CastVoteCommand: self._reply_vote,
            CheckGoalCommand: self._reply_check,
            AddEvidenceCommand: self._reply_evidence,
            ListGoalsCommand: self._reply_list_goals,
            ListEvidenceCommand: self._reply_list_evidence,
        }

    # ── actions ──────────────────────────────────────────────────────

    def handle_goal_command(self, user_id: str, description: str, due_date: Any, channel_id: str) -> int:
        return self.goal_manager.create_goal(user_id, description, due_date, channel_id)

    def handle_vote_command(self, user_id: str, goal_id: int, vote: bool) -> None:
        self.vote_manager.cast_vote(user_id, goal_id, vote)

    def handle_check_command(self, user_id: str, goal_id: int) -> str:
        """Report the tally; raises GoalNotFoundError for unknown goals."""
        self.goal_manager.get_goal(goal_id)
        result = self.vote_manager.check_completion(goal_id)
        message = f"For: {result.for_count}, Against: {result.against_count}"
        return message if result.completed else f"Vote is not completed. {message}"

    def handle_evidence_command(self, user_id: str, goal_id: int, evidence: str) -> None:
        self.evidence_manager.add_evidence(user_id, goal_id, evidence)

    def list_goals(self) -> List[Dict[str, Any]]:
        """Every goal with its current tally, in goal order."""
        listing = []
        for goal in self.goal_manager.list_goals():
            for_count, against_count = self.vote_manager.tally_votes(goal.id)
            listing.append({"goal": goal, "votes": {"for": for_count, "against": against_count}})
        return listing

    def list_evidence(self, goal_id: int) -> List[Evidence]:
        return self.evidence_manager.get_evidences(goal_id)

    # ── dispatch ─────────────────────────────────────────────────────

    def dispatch(self, command: Command) -> str:
        """Run a parsed command and return reply text.

        GoalBotError failures become the reply (storage failures as a generic
        message); anything else propagates.
        """
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f"Unsupported command type: {type(command).__name__}")

        start = time.monotonic()
        try:
            reply = handler(command)
        except StoreIOError as e:
            # path and OS detail stay in the logs
            logger.error("Storage failure handling %s: %s", type(command).__name__, e)
            self._log(command, start, result="error", error=str(e))
            return STORAGE_FAILURE_REPLY
        except GoalBotError as e:
            self._log(command, start, result="rejected", error=str(e))
            return f"{e}."
        except Exception as e:
            self._log(command, start, result="error", error=str(e))
            raise
        self._log(command, start)
        return reply

    def _log(self, command: Command, start: float, result: str = "success", error: Optional[str] = None) -> None:
        if self.action_logger is None:
            return
        params = {k: v for k, v in vars(command).items() if k != "user_id"}
        self.action_logger.log_action(
            action_type=type(command).__name__,
            user_id=command.user_id,
            parameters=params,
            result=result,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
            error=error,
        )

    def _reply_goal(self, cmd: CreateGoalCommand) -> str:
        goal_id = self.handle_goal_command(cmd.user_id, cmd.description, cmd.due_date, cmd.channel_id)
        return f"Goal {goal_id} created: {cmd.description} (due {format_due_date(cmd.due_date)})."

    def _reply_vote(self, cmd: CastVoteCommand) -> str:
        self.handle_vote_command(cmd.user_id, cmd.goal_id, cmd.vote)
        return f"Vote recorded on goal {cmd.goal_id}: {'for' if cmd.vote else 'against'}."

    def _reply_check(self, cmd: CheckGoalCommand) -> str:
        return self.handle_check_command(cmd.user_id, cmd.goal_id)

    def _reply_evidence(self, cmd: AddEvidenceCommand) -> str:
        self.handle_evidence_command(cmd.user_id, cmd.goal_id, cmd.evidence)
        return f"Evidence added to goal {cmd.goal_id}."

    def _reply_list_goals(self, cmd: ListGoalsCommand) -> str:
        listing = self.list_goals()
        if not listing:
            return "No goals yet."
        lines = []
        for item in listing:
            goal, votes = item["goal"], item["votes"]
            lines.append(
                f"#{goal.id} {goal.description} (due {format_due_date(goal.due_date)}) "
                f"- For: {votes['for']}, Against: {votes['against']}"
            )
        return "\n".join(lines)

    def _reply_list_evidence(self, cmd: ListEvidenceCommand) -> str:
        self.goal_manager.get_goal(cmd.goal_id)
        entries = self.list_evidence(cmd.goal_id)
        if not entries:
            return f"No evidence for goal {cmd.goal_id} yet."
        return "\n".join(f"• <@{e.user_id}>: {e.evidence}" for e in entries)


# ──────────────────────────────────────────────────────────────────────
#  Outbound messaging: callable from ANY thread except the bot loop
# ──────────────────────────────────────────────────────────────────────

def send_to_channel(channel_id: str, text: str, timeout: float = 10.0) -> bool:
    """
    Post text to a channel by id.

    Returns False when the bot is not connected or the channel cannot be
    resolved. Send failures raise; the caller decides whether to drop them.
    """
    if not _bot_client or not _bot_loop:
        logger.debug("Discord outbound not ready (bot=%s, loop=%s)",
                     _bot_client is not None, _bot_loop is not None)
        return False

    try:
        channel = _bot_client.get_channel(int(channel_id))
    except (TypeError, ValueError):
        return False
    if channel is None:
        return False

    future = asyncio.run_coroutine_threadsafe(channel.send(_truncate(text)), _bot_loop)
    try:
        future.result(timeout=timeout)
    except concurrent.futures.TimeoutError:
        # the caller records this as undelivered, so it must not post later
        future.cancel()
        raise
    logger.debug("Discord message sent to %s: %s", channel_id, text[:80])
    return True


def is_outbound_ready() -> bool:
    return _bot_client is not None and _bot_loop is not None


# ──────────────────────────────────────────────────────────────────────
#  Slash-command glue
# ──────────────────────────────────────────────────────────────────────

async def handle_interaction(goal_bot: GoalBot, interaction: Any, name: str, args: Mapping[str, Any]) -> None:
    """Parse, dispatch off the event loop, and reply ephemerally."""
    payload = dict(args)
    payload["user_id"] = str(interaction.user.id)
    payload["channel_id"] = str(interaction.channel_id)

    await interaction.response.defer(ephemeral=True, thinking=True)
    try:
        command = parse_command(name, payload)
        reply = await asyncio.to_thread(goal_bot.dispatch, command)
    except CommandParseError as e:
        reply = str(e)
    except Exception as e:
        logger.error("Discord command /%s failed: %s", name, e, exc_info=True)
        reply = f"Sorry, I encountered an error: {str(e)}"
    await interaction.followup.send(_truncate(reply), ephemeral=True)


def create_bot(
    goal_bot: GoalBot,
    on_ready: Optional[Callable[[], None]] = None,
    sync_commands: bool = True,
) -> Any:
    """Create and return a configured Discord client with the slash commands registered."""
    try:
        import discord
        from discord import app_commands
    except ImportError:
        raise ImportError("discord.py is required. Run: pip install discord.py")

    intents = discord.Intents.default()

    class GoalBotClient(discord.Client):
        def __init__(self) -> None:
            super().__init__(intents=intents)
            self.tree = app_commands.CommandTree(self)

        async def setup_hook(self) -> None:
            if sync_commands:
                synced = await self.tree.sync()
                logger.info("Synced %d slash commands", len(synced))

        async def on_ready(self) -> None:
            global _bot_client, _bot_loop
            _bot_client = self
            _bot_loop = asyncio.get_running_loop()
            logger.info("Discord bot ready: %s", self.user)
            if on_ready is not None:
                on_ready()

    client = GoalBotClient()
    tree = client.tree

    @tree.command(name="goal", description="Declare a goal with a due date")
    @app_commands.describe(goal="What you commit to doing", duedate="Due date, e.g. 2026-11-01")
    async def goal_command(interaction: discord.Interaction, goal: str, duedate: str) -> None:
        await handle_interaction(goal_bot, interaction, "goal", {"goal": goal, "duedate": duedate})

    @tree.command(name="vote", description="Vote on whether a goal was met")
    @app_commands.describe(goal_id="Goal number", vote="True if the goal was met")
    async def vote_command(interaction: discord.Interaction, goal_id: int, vote: bool) -> None:
        await handle_interaction(goal_bot, interaction, "vote", {"goal_id": goal_id, "vote": vote})

    @tree.command(name="check", description="Show the vote tally for a goal")
    @app_commands.describe(goal_id="Goal number")
    async def check_command(interaction: discord.Interaction, goal_id: int) -> None:
        await handle_interaction(goal_bot, interaction, "check", {"goal_id": goal_id})

    @tree.command(name="evidence", description="Attach evidence to a goal")
    @app_commands.describe(goal_id="Goal number", evidence="What you did")
    async def evidence_command(interaction: discord.Interaction, goal_id: int, evidence: str) -> None:
        await handle_interaction(goal_bot, interaction, "evidence", {"goal_id": goal_id, "evidence": evidence})

    @tree.command(name="listgoals", description="List all goals with their tallies")
    async def listgoals_command(interaction: discord.Interaction) -> None:
        await handle_interaction(goal_bot, interaction, "listgoals", {})

    @tree.command(name="listevidence", description="List evidence for a goal")
    @app_commands.describe(goal_id="Goal number")
    async def listevidence_command(interaction: discord.Interaction, goal_id: int) -> None:
        await handle_interaction(goal_bot, interaction, "listevidence", {"goal_id": goal_id})

    return client


def run_bot(
    goal_bot: GoalBot,
    token: Optional[str] = None,
    on_ready: Optional[Callable[[], None]] = None,
    sync_commands: bool = True,
) -> None:
    """Run the Discord bot (blocking)."""
    token = token or os.environ.get("DISCORD_BOT_TOKEN")
    if not token:
        raise ValueError(
            "DISCORD_BOT_TOKEN not set. Create a bot at https://discord.com/developers/applications "
            "and add the token to .env"
        )

    bot = create_bot(goal_bot, on_ready=on_ready, sync_commands=sync_commands)
    bot.run(token, log_handler=None)
