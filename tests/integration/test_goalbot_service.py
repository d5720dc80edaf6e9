"""
Integration test for GoalBotService.build(): config -> stores -> managers ->
façade -> scanner, without connecting to Discord.
"""

import json
import sys
from datetime import datetime, timezone
from pathlib import Path

_root = Path(__file__).resolve().parent.parent.parent
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

import pytest
from goalbot.core.goal_scanner import GoalStatus
from goalbot.interfaces.commands import parse_command
from goalbot.service.goalbot_service import GoalBotService
from goalbot.utils import config
from goalbot.utils.paths import reset_base_path


@pytest.fixture
def project_root(tmp_path, monkeypatch):
    (tmp_path / "config").mkdir()
    monkeypatch.setenv("GOALBOT_ROOT", str(tmp_path))
    reset_base_path()
    config.reload()
    yield tmp_path
    reset_base_path()
    config.reload()


def _write_config(root, backend):
    (root / "config" / "goalbot.yaml").write_text(
        f"storage:\n  backend: {backend}\n  data_dir: data\nscanner:\n  interval_seconds: 60\n",
        encoding="utf-8",
    )
    config.reload()


def _build(root):
    return GoalBotService(root=str(root)).build()


def _run(service, name, **args):
    args.setdefault("user_id", "u1")
    args.setdefault("channel_id", "c1")
    return service.goal_bot.dispatch(parse_command(name, args))


class TestServiceBuild:

    def test_json_backend_persists_across_rebuild(self, project_root):
        _write_config(project_root, "json")
        service = _build(project_root)
        try:
            assert _run(service, "goal", goal="Run 5k", duedate="2026-11-01").startswith("Goal 1 created")
            _run(service, "vote", goal_id=1, vote=True)
            _run(service, "vote", user_id="u2", goal_id=1, vote=True)
            _run(service, "vote", user_id="u3", goal_id=1, vote=False)
            _run(service, "evidence", goal_id=1, evidence="finished in 28:10")
        finally:
            service.action_logger.close()

        data = project_root / "data"
        assert sorted(p.name for p in data.iterdir()) == ["evidences.json", "goals.json", "votes.json"]
        assert len(json.loads((data / "votes.json").read_text(encoding="utf-8"))) == 3

        reopened = _build(project_root)
        try:
            assert _run(reopened, "check", goal_id=1) == "For: 2, Against: 1"
            assert _run(reopened, "listevidence", goal_id=1) == "• <@u1>: finished in 28:10"
            assert _run(reopened, "goal", goal="Swim", duedate="2026-12-01").startswith("Goal 2 created")
        finally:
            reopened.action_logger.close()

    def test_memory_backend_writes_no_data(self, project_root):
        _write_config(project_root, "memory")
        service = _build(project_root)
        try:
            _run(service, "goal", goal="Run 5k", duedate="2026-11-01")
            assert _run(service, "vote", goal_id=2, vote=True) == "Goal 2 does not exist."
        finally:
            service.action_logger.close()
        assert not (project_root / "data").exists()

    def test_scanner_is_wired_to_goals(self, project_root):
        _write_config(project_root, "memory")
        service = _build(project_root)
        try:
            _run(service, "goal", goal="Run 5k", duedate="2026-11-01")
            assert service.scanner.interval == 60.0
            assert service.scanner.scan_thread is None
            # bot not connected: the notification is computed but not delivered
            notes = service.scanner.scan_goals(now=datetime(2026, 11, 2, tzinfo=timezone.utc))
            assert [(n.goal_id, n.status, n.delivered) for n in notes] == [(1, GoalStatus.OVERDUE, False)]
        finally:
            service.action_logger.close()

    def test_stop_is_idempotent(self, project_root):
        _write_config(project_root, "memory")
        service = _build(project_root)
        service.running = True
        service.stop()
        service.stop()
        assert service.running is False
        assert service.action_logger._error_handler is None
