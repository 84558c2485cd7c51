from __future__ import annotations

from pathlib import Path
from unittest.mock import patch
import subprocess
import unittest

from core.command_runner import CommandError, RecordingCommandRunner, SubprocessCommandRunner


class SubprocessCommandRunnerTests(unittest.TestCase):
    def test_captured_failure_raises(self) -> None:
        completed = subprocess.CompletedProcess(["docker"], 1, stdout="", stderr="boom")
        with patch("core.command_runner.subprocess.run", return_value=completed) as run:
            with self.assertRaises(CommandError) as exc_info:
                SubprocessCommandRunner().run(["docker", "buildx"], stream=False)
        self.assertIn("exit code 1", str(exc_info.exception))
        self.assertIn("stderr: boom", str(exc_info.exception))
        self.assertTrue(run.call_args.kwargs["capture_output"])

    def test_streamed_success(self) -> None:
        completed = subprocess.CompletedProcess(["docker"], 0)
        with patch("core.command_runner.subprocess.run", return_value=completed) as run:
            result = SubprocessCommandRunner().run(["docker"], cwd=Path("/tmp"))
        self.assertTrue(result.streamed)
        self.assertEqual(run.call_args.kwargs["cwd"], "/tmp")

    def test_unchecked_failure_returns_result(self) -> None:
        completed = subprocess.CompletedProcess(["false"], 2)
        with patch("core.command_runner.subprocess.run", return_value=completed):
            result = SubprocessCommandRunner().run(["false"], check=False)
        self.assertEqual(result.returncode, 2)


class RecordingCommandRunnerTests(unittest.TestCase):
    def test_formats_recorded_commands(self) -> None:
        runner = RecordingCommandRunner()
        runner.run(["docker", "buildx", "build", "--tag", "a b", "."], cwd=Path("/work"), note="Build target app")
        self.assertEqual(
            list(runner.iter_formatted()),
            ["[dry-run] Build target app (cwd=/work) docker buildx build --tag 'a b' ."],
        )


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
