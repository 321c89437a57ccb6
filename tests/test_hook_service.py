"""Tests for HookRunner"""
import pytest

from git_workon.services.hook_service import HookRunner


@pytest.fixture
def runner():
    return HookRunner(timeout=0, show_progress=False)


class TestHookRunner:
    def test_runs_in_worktree_with_environment(self, runner, temp_dir):
        results = runner.run(
            ['echo "$WORKON_BRANCH_NAME:$WORKON_BASE_BRANCH" > hook.txt'],
            cwd=str(temp_dir),
            env={"WORKON_BRANCH_NAME": "feature/x", "WORKON_BASE_BRANCH": "main"},
        )
        assert [r.success for r in results] == [True]
        assert (temp_dir / "hook.txt").read_text().strip() == "feature/x:main"

    def test_commands_run_in_order(self, runner, temp_dir):
        runner.run(["echo one >> log.txt", "echo two >> log.txt"], cwd=str(temp_dir))
        assert (temp_dir / "log.txt").read_text().split() == ["one", "two"]

    def test_stops_after_first_failure(self, runner, temp_dir):
        results = runner.run(["true", "exit 3", "touch never.txt"], cwd=str(temp_dir))
        assert [r.success for r in results] == [True, False]
        assert results[1].returncode == 3
        assert "exit code 3" in results[1].error
        assert not (temp_dir / "never.txt").exists()

    def test_timeout(self, temp_dir):
        results = HookRunner(timeout=1, show_progress=False).run(["sleep 5", "true"], cwd=str(temp_dir))
        assert len(results) == 1
        assert results[0].timed_out
        assert not results[0].success

    def test_missing_working_directory_does_not_raise(self, runner, temp_dir):
        results = runner.run(["true"], cwd=str(temp_dir / "missing"))
        assert not results[0].success
        assert results[0].error

    def test_environment_is_not_mutated(self, runner, temp_dir, monkeypatch):
        import os

        monkeypatch.delenv("WORKON_WORKTREE_PATH", raising=False)
        runner.run(["true"], cwd=str(temp_dir), env={"WORKON_WORKTREE_PATH": str(temp_dir)})
        assert "WORKON_WORKTREE_PATH" not in os.environ

    def test_no_commands(self, runner, temp_dir):
        assert runner.run([], cwd=str(temp_dir)) == []
