"""yt-dlp subprocess runner.

Hey future me - the subprocess path is for stream descriptors that are NOT plain
HTTP (spotify:track:<id>). We spawn the yt-dlp executable, read stdout line by line
for progress, keep stderr for diagnostics, and wait for the exit code.

Two things matter more than anything else here:
1. A missing executable raises ToolMissingError, never a generic failure.
   The fix is "install yt-dlp", not "retry".
2. Cancelling the awaiting task KILLS the process. A leaked yt-dlp keeps
   downloading and converting in the background forever.
"""

import asyncio
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field

from tunesource.domain.exceptions import ToolMissingError

logger = logging.getLogger(__name__)

# yt-dlp progress template used by every subprocess download
PROGRESS_TEMPLATE = "download:%(progress.downloaded_bytes)s/%(progress.total_bytes)s"

_PROGRESS_LINE = re.compile(r"^download:\s*(\d+)\s*/\s*(\d+)\s*$")


def parse_progress_line(line: str) -> tuple[int, int] | None:
    """Parse a `download:<downloaded>/<total>` progress line.

    yt-dlp prints "NA" when it doesn't know the total yet, those lines (and any
    other malformed ones) are simply ignored.

    Args:
        line: One stdout line

    Returns:
        (downloaded, total) or None if the line is not a valid progress line
    """
    match = _PROGRESS_LINE.match(line.strip())
    if match is None:
        return None
    return int(match.group(1)), int(match.group(2))


def progress_percentage(downloaded: int, total: int) -> int:
    """Whole percent for a progress line, 0 when total is unknown."""
    if total <= 0:
        return 0
    return downloaded * 100 // total


@dataclass
class ProcessResult:
    """Outcome of one yt-dlp run."""

    exit_code: int
    stdout_lines: list[str] = field(default_factory=list)
    stderr_lines: list[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


class YtDlpProcessRunner:
    """Runs the yt-dlp executable and streams its output."""

    TOOL_NAME = "yt-dlp"

    def __init__(self, executable: str = "yt-dlp") -> None:
        self.executable = executable

    async def run(
        self,
        args: list[str],
        on_stdout_line: Callable[[str], None] | None = None,
    ) -> ProcessResult:
        """Run yt-dlp with the given arguments.

        Args:
            args: Command line arguments (without the executable)
            on_stdout_line: Called for every non-empty stdout line, in order

        Returns:
            ProcessResult with exit code and captured output

        Raises:
            ToolMissingError: If the executable cannot be launched
            asyncio.CancelledError: After killing the process
        """
        logger.debug(f"Spawning {self.executable} {' '.join(args)}")
        try:
            process = await asyncio.create_subprocess_exec(
                self.executable,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError, NotADirectoryError) as e:
            raise ToolMissingError(self.TOOL_NAME, self.executable, e) from e

        result = ProcessResult(exit_code=-1)

        async def _pump_stdout() -> None:
            assert process.stdout is not None  # for mypy
            while True:
                raw = await process.stdout.readline()
                if not raw:
                    break
                line = raw.decode("utf-8", errors="replace").rstrip()
                if not line:
                    continue
                result.stdout_lines.append(line)
                if on_stdout_line is not None:
                    on_stdout_line(line)

        async def _pump_stderr() -> None:
            assert process.stderr is not None  # for mypy
            while True:
                raw = await process.stderr.readline()
                if not raw:
                    break
                line = raw.decode("utf-8", errors="replace").rstrip()
                if line:
                    result.stderr_lines.append(line)

        try:
            await asyncio.gather(_pump_stdout(), _pump_stderr())
            result.exit_code = await process.wait()
        except BaseException:
            # Cancellation (or a failing callback): never leave the process behind
            if process.returncode is None:
                logger.warning(f"Killing {self.TOOL_NAME} process {process.pid}")
                process.kill()
                await process.wait()
            raise

        logger.debug(f"{self.TOOL_NAME} exited with code {result.exit_code}")
        return result
