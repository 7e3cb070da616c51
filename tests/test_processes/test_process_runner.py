"""
Async process runner tests

Uses small real subprocesses of the current interpreter.
"""

import asyncio
import logging
import os
import sys

import psutil
import pytest

from buildstrap.errors import ProcessTimeoutError
from buildstrap.models import ExitCode
from buildstrap.processes import execute


def pid_writer_script(pid_file):
    """Child script publishing its pid atomically, then sleeping."""
    return (
        "import os, time; "
        f"path = {str(pid_file)!r}; "
        "open(path + '.tmp', 'w').write(str(os.getpid())); "
        "os.replace(path + '.tmp', path); "
        "time.sleep(30)"
    )


class TestExecute:
    """Process execution"""

    def test_success(self):
        exit_code = asyncio.run(execute(sys.executable, ["-c", "pass"]))
        assert exit_code is ExitCode.SUCCESS

    def test_failure(self):
        exit_code = asyncio.run(execute(sys.executable, ["-c", "import sys; sys.exit(3)"]))
        assert exit_code is ExitCode.FAILURE

    def test_output_is_logged(self, caplog):
        output_logger = logging.getLogger("test.output")
        script = "import sys; print('hello'); print('oops', file=sys.stderr)"

        with caplog.at_level(logging.INFO, logger="test.output"):
            asyncio.run(execute(sys.executable, ["-c", script], output_logger=output_logger))

        records = {(record.levelno, record.getMessage()) for record in caplog.records if record.name == "test.output"}
        assert (logging.INFO, "hello") in records
        assert (logging.ERROR, "oops") in records

    def test_cwd_and_env(self, tmp_path, caplog):
        output_logger = logging.getLogger("test.env")
        script = "import os; print(os.getcwd()); print(os.environ['BUILDSTRAP_TEST'])"
        env = {**os.environ, "BUILDSTRAP_TEST": "value"}

        with caplog.at_level(logging.INFO, logger="test.env"):
            exit_code = asyncio.run(
                execute(sys.executable, ["-c", script], cwd=tmp_path, env=env, output_logger=output_logger)
            )

        messages = [record.getMessage() for record in caplog.records if record.name == "test.env"]
        assert exit_code.is_success
        assert "value" in messages
        assert any(message.endswith(tmp_path.name) for message in messages)

    def test_timeout(self):
        with pytest.raises(ProcessTimeoutError) as exc_info:
            asyncio.run(execute(sys.executable, ["-c", "import time; time.sleep(30)"], timeout=0.5))
        assert exc_info.value.timeout_seconds == 0.5

    def test_missing_executable(self, tmp_path):
        with pytest.raises(OSError):
            asyncio.run(execute(tmp_path / "does-not-exist"))

    def test_timeout_reaps_child(self, tmp_path):
        pid_file = tmp_path / "child.pid"

        with pytest.raises(ProcessTimeoutError):
            asyncio.run(execute(sys.executable, ["-c", pid_writer_script(pid_file)], timeout=2.0))

        assert not psutil.pid_exists(int(pid_file.read_text()))

    def test_cancel_kills_and_reaps_child(self, tmp_path):
        pid_file = tmp_path / "child.pid"

        async def cancel_once_started():
            task = asyncio.ensure_future(execute(sys.executable, ["-c", pid_writer_script(pid_file)]))
            for _ in range(200):
                if pid_file.exists():
                    break
                await asyncio.sleep(0.05)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(cancel_once_started())

        assert not psutil.pid_exists(int(pid_file.read_text()))
