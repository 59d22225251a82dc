from __future__ import annotations

from pathlib import Path
import tempfile
import unittest

from minimake.command_runner import (
    CommandError,
    CommandResult,
    RecordingCommandRunner,
    SubprocessCommandRunner,
)


class SubprocessCommandRunnerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.temp_dir = tempfile.TemporaryDirectory()
        self.workspace = Path(self.temp_dir.name)
        self.runner = SubprocessCommandRunner()

    def tearDown(self) -> None:
        self.temp_dir.cleanup()

    def test_captures_output_through_shell(self) -> None:
        result = self.runner.run("echo hello | tr a-z A-Z", stream=False)
        self.assertEqual(result.returncode, 0)
        self.assertEqual(result.stdout, "HELLO\n")
        self.assertFalse(result.streamed)

    def test_runs_in_given_directory(self) -> None:
        self.runner.run("echo data > out.txt", cwd=self.workspace)
        self.assertEqual((self.workspace / "out.txt").read_text(), "data\n")

    def test_env_is_merged_with_process_environment(self) -> None:
        result = self.runner.run('echo "$MINIMAKE_RUNNER_VALUE"', env={"MINIMAKE_RUNNER_VALUE": "42"}, stream=False)
        self.assertEqual(result.stdout.strip(), "42")

    def test_failure_raises_command_error(self) -> None:
        with self.assertRaises(CommandError) as ctx:
            self.runner.run("echo oops >&2; exit 4", stream=False)
        result = ctx.exception.result
        self.assertEqual(result.returncode, 4)
        self.assertEqual(result.stderr, "oops\n")
        self.assertIn("exit code 4", str(ctx.exception))
        self.assertIn("stderr: oops", str(ctx.exception))

    def test_failure_without_check_returns_result(self) -> None:
        result = self.runner.run("exit 5", check=False)
        self.assertEqual(result.returncode, 5)
        self.assertTrue(result.streamed)

    def test_streamed_error_message_omits_output(self) -> None:
        error = CommandError(CommandResult(command="false", returncode=1, streamed=True))
        self.assertEqual(str(error), "Command failed with exit code 1: false")


class RecordingCommandRunnerTests(unittest.TestCase):
    def test_records_without_running(self) -> None:
        runner = RecordingCommandRunner()
        result = runner.run("rm -rf /definitely/not/run", cwd=Path("/work"), note="clean")
        self.assertEqual(result.returncode, 0)
        records = list(runner.iter_commands())
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0].command, "rm -rf /definitely/not/run")
        self.assertEqual(records[0].cwd, "/work")
        self.assertEqual(records[0].note, "clean")

    def test_formatted_output(self) -> None:
        runner = RecordingCommandRunner()
        runner.run("make-it", note="app")
        runner.run("other", cwd=Path("/elsewhere"))
        lines = list(runner.iter_formatted(workspace=Path("/work")))
        self.assertEqual(lines, ["[dry-run] app (cwd=/work) make-it", "[dry-run] (cwd=/elsewhere) other"])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
