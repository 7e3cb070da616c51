"""
Async process runner

Runs an executable, streams its stdout/stderr lines to a logger and maps the
return code onto an ExitCode.

- execute(): optional timeout, raises ProcessTimeoutError when exceeded
- Cancelling the awaiting task kills and reaps the direct child process;
  descendants are left for the process tree sweep
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Mapping, Optional, Sequence, Union

from buildstrap.errors import ProcessTimeoutError
from buildstrap.models import ExitCode

logger = logging.getLogger(__name__)

KILL_WAIT_SECONDS = 5.0


async def _pump(stream: Optional[asyncio.StreamReader], output_logger: logging.Logger, level: int) -> None:
    """Forward each line of a child stream to the logger."""
    if stream is None:
        return
    while True:
        line = await stream.readline()
        if not line:
            return
        text = line.decode("utf-8", errors="replace").rstrip()
        if text:
            output_logger.log(level, text)


async def _communicate(
    process: asyncio.subprocess.Process,
    output_logger: logging.Logger,
    stdout_level: int,
    stderr_level: int,
) -> int:
    await asyncio.gather(
        _pump(process.stdout, output_logger, stdout_level),
        _pump(process.stderr, output_logger, stderr_level),
    )
    return await process.wait()


async def _kill(process: asyncio.subprocess.Process) -> None:
    """Kill the child and reap it, waiting at most KILL_WAIT_SECONDS."""
    if process.returncode is not None:
        return
    try:
        process.kill()
        logger.debug("Killed process with id %d", process.pid)
    except ProcessLookupError:
        logger.debug("Process with id %d already exited", process.pid)

    # Inherited pipes held by descendants can keep wait() pending
    try:
        await asyncio.wait_for(asyncio.shield(process.wait()), timeout=KILL_WAIT_SECONDS)
    except asyncio.TimeoutError:
        logger.warning(
            "Process with id %d did not exit within %s seconds after kill",
            process.pid,
            KILL_WAIT_SECONDS,
        )


async def execute(
    executable: Union[str, Path],
    arguments: Sequence[str] = (),
    *,
    cwd: Optional[Union[str, Path]] = None,
    env: Optional[Mapping[str, str]] = None,
    timeout: Optional[float] = None,
    output_logger: Optional[logging.Logger] = None,
    stdout_level: int = logging.INFO,
    stderr_level: int = logging.ERROR,
) -> ExitCode:
    """
    Run a process to completion.

    Args:
        executable: Executable path or name
        arguments: Command line arguments
        cwd: Working directory
        env: Complete environment for the child (inherits when None)
        timeout: Seconds to wait before killing the process
        output_logger: Logger receiving the child's output lines
        stdout_level: Log level for stdout lines
        stderr_level: Log level for stderr lines

    Returns:
        ExitCode of the process

    Raises:
        ProcessTimeoutError: If the process exceeds the timeout
        OSError: If the executable cannot be started
    """
    command = [str(executable), *(str(argument) for argument in arguments)]
    output_logger = output_logger or logger

    logger.debug("Executing %s", " ".join(command))
    start_time = time.monotonic()

    process = await asyncio.create_subprocess_exec(
        *command,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        cwd=str(cwd) if cwd is not None else None,
        env=dict(env) if env is not None else None,
    )

    try:
        if timeout is None:
            returncode = await _communicate(process, output_logger, stdout_level, stderr_level)
        else:
            returncode = await asyncio.wait_for(
                _communicate(process, output_logger, stdout_level, stderr_level),
                timeout=timeout,
            )
    except asyncio.TimeoutError:
        await _kill(process)
        raise ProcessTimeoutError(
            f"Process '{command[0]}' timed out after {timeout} seconds",
            timeout_seconds=timeout,
        ) from None
    except asyncio.CancelledError:
        await _kill(process)
        raise

    duration_ms = (time.monotonic() - start_time) * 1000
    exit_code = ExitCode.from_returncode(returncode)
    logger.debug(
        "Process '%s' exited with code %d after %.0fms",
        Path(command[0]).name,
        returncode,
        duration_ms,
    )
    return exit_code


__all__ = ["execute"]
