"""
Command payload decoding.

Slash-command arguments arrive as a loose mapping. ``parse_command`` turns
them into one typed command object up front, so the bot façade never has to
inspect argument shapes. Anything that does not fit raises
CommandParseError with a message suitable for showing to the user.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Mapping, Union

from goalbot.errors import CommandParseError
from goalbot.goals.goal_manager import as_utc


@dataclass(frozen=True)
class CreateGoalCommand:
    user_id: str
    description: str
    due_date: datetime
    channel_id: str


@dataclass(frozen=True)
class CastVoteCommand:
    user_id: str
    goal_id: int
    vote: bool


@dataclass(frozen=True)
class CheckGoalCommand:
    user_id: str
    goal_id: int


@dataclass(frozen=True)
class AddEvidenceCommand:
    user_id: str
    goal_id: int
    evidence: str


@dataclass(frozen=True)
class ListGoalsCommand:
    user_id: str


@dataclass(frozen=True)
class ListEvidenceCommand:
    user_id: str
    goal_id: int


Command = Union[
    CreateGoalCommand,
    CastVoteCommand,
    CheckGoalCommand,
    AddEvidenceCommand,
    ListGoalsCommand,
    ListEvidenceCommand,
]

_TRUE_WORDS = {"true", "yes", "y", "1", "for", "yay"}
_FALSE_WORDS = {"false", "no", "n", "0", "against", "nay"}

# Fallback formats after ISO-8601
_DATE_FORMATS = ("%m/%d/%Y", "%B %d, %Y", "%b %d, %Y", "%d %B %Y")


def _normalize_key(key: str) -> str:
    """'goalId', 'goal_id' and 'GoalID' all become 'goalid'."""
    return key.replace("_", "").replace("-", "").lower()


def _require(args: Dict[str, Any], key: str) -> Any:
    value = args.get(_normalize_key(key))
    if value is None or (isinstance(value, str) and not value.strip()):
        raise CommandParseError(f"Missing argument '{key}'")
    return value


def parse_text(value: Any, name: str) -> str:
    if not isinstance(value, str):
        raise CommandParseError(f"'{name}' must be text")
    text = value.strip()
    if not text:
        raise CommandParseError(f"'{name}' must not be empty")
    return text


def parse_goal_id(value: Any, name: str = "goal_id") -> int:
    """Accept ints, integral floats and digit strings (optionally '#'-prefixed)."""
    if isinstance(value, bool):
        raise CommandParseError(f"'{name}' must be a goal number")
    if isinstance(value, int):
        goal_id = value
    elif isinstance(value, float) and value.is_integer():
        goal_id = int(value)
    elif isinstance(value, str) and value.strip().lstrip("#").isdecimal():
        # isdecimal, not isdigit: '²' and '①' are digits int() rejects
        goal_id = int(value.strip().lstrip("#"))
    else:
        raise CommandParseError(f"'{name}' must be a goal number, got {value!r}")
    if goal_id <= 0:
        raise CommandParseError(f"'{name}' must be positive")
    return goal_id


def parse_vote(value: Any, name: str = "vote") -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise CommandParseError(f"'{name}' must be yes/no (for/against), got {value!r}")


def parse_due_date(value: Any, name: str = "duedate") -> datetime:
    """Parse a due date; naive values are taken as UTC."""
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if not isinstance(value, str):
        raise CommandParseError(f"'{name}' must be a date")

    text = value.strip()
    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    raise CommandParseError(f"Could not understand date {value!r}; use YYYY-MM-DD")


def _parse_goal(user_id: str, args: Dict[str, Any]) -> CreateGoalCommand:
    return CreateGoalCommand(
        user_id=user_id,
        description=parse_text(_require(args, "goal"), "goal"),
        due_date=parse_due_date(_require(args, "duedate")),
        channel_id=str(_require(args, "channel_id")),
    )


def _parse_vote(user_id: str, args: Dict[str, Any]) -> CastVoteCommand:
    return CastVoteCommand(
        user_id=user_id,
        goal_id=parse_goal_id(_require(args, "goal_id")),
        vote=parse_vote(_require(args, "vote")),
    )


def _parse_check(user_id: str, args: Dict[str, Any]) -> CheckGoalCommand:
    return CheckGoalCommand(user_id=user_id, goal_id=parse_goal_id(_require(args, "goal_id")))


def _parse_evidence(user_id: str, args: Dict[str, Any]) -> AddEvidenceCommand:
    return AddEvidenceCommand(
        user_id=user_id,
        goal_id=parse_goal_id(_require(args, "goal_id")),
        evidence=parse_text(_require(args, "evidence"), "evidence"),
    )


def _parse_list_goals(user_id: str, args: Dict[str, Any]) -> ListGoalsCommand:
    return ListGoalsCommand(user_id=user_id)


def _parse_list_evidence(user_id: str, args: Dict[str, Any]) -> ListEvidenceCommand:
    return ListEvidenceCommand(user_id=user_id, goal_id=parse_goal_id(_require(args, "goal_id")))


_PARSERS: Dict[str, Callable[[str, Dict[str, Any]], Command]] = {
    "goal": _parse_goal,
    "vote": _parse_vote,
    "check": _parse_check,
    "evidence": _parse_evidence,
    "listgoals": _parse_list_goals,
    "listevidence": _parse_list_evidence,
}

# Older command names still registered by some guilds
_ALIASES = {
    "handlegoalcommand": "goal",
    "handlevotecommand": "vote",
    "handlecheckcommand": "check",
}

COMMAND_NAMES = tuple(_PARSERS)


def parse_command(name: str, args: Mapping[str, Any]) -> Command:
    """Decode a raw command into its typed form.

    ``args`` must carry ``user_id``; the remaining keys depend on the command.
    Key spelling is loose: ``goalId`` and ``goal_id`` are the same argument.
    """
    key = _normalize_key(name or "").lstrip("/")
    key = _ALIASES.get(key, key)
    parser = _PARSERS.get(key)
    if parser is None:
        raise CommandParseError(f"Unknown command '{name}'")

    normalized = {_normalize_key(str(k)): v for k, v in (args or {}).items()}
    user_id = str(_require(normalized, "user_id"))
    return parser(user_id, normalized)
