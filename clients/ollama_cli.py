"""
Ollama CLI client - fallback path for listing and pulling models.

Runs `ollama list` / `ollama pull <name>` as async subprocesses with their own
timeouts so a hung CLI never blocks the event loop. When the default `ollama`
executable cannot be run, the platform-specific install path is tried.
"""

import asyncio
import logging
import sys
from typing import List, Optional, Sequence

from clients.fallback import try_primary_then_secondary

logger = logging.getLogger(__name__)

DEFAULT_EXECUTABLE = "ollama"

PLATFORM_EXECUTABLES = {
    "win32": r"C:\Program Files\Ollama\ollama.exe",
    "darwin": "/Applications/Ollama.app/Contents/Resources/ollama",
    "linux": "/usr/local/bin/ollama",
}


class OllamaCLIError(Exception):
    """Raised when an ollama CLI invocation fails."""

    pass


def platform_executable(platform: str = None) -> Optional[str]:
    """Return the fallback ollama path for a platform, if one is known."""
    platform = platform or sys.platform
    for prefix, path in PLATFORM_EXECUTABLES.items():
        if platform.startswith(prefix):
            return path
    return None


def parse_list_output(stdout: str) -> List[str]:
    """
    Extract model names from `ollama list` output.

    The first whitespace-delimited token of each non-empty line is a model
    name. The first line is skipped when it is the NAME/ID/SIZE header.
    """
    lines = [line for line in stdout.splitlines() if line.strip()]
    if not lines:
        return []

    start = 1 if "NAME" in lines[0] else 0
    models = []
    for line in lines[start:]:
        token = line.split()[0].strip()
        if token:
            models.append(token)
    return models


class OllamaCLI:
    """Async wrapper around the ollama command-line tool."""

    def __init__(
        self,
        executable: str = DEFAULT_EXECUTABLE,
        fallback_executable: Optional[str] = None,
        list_timeout: float = 15.0,
        pull_timeout: float = 1800.0,
    ):
        self.executable = executable
        self.fallback_executable = fallback_executable or platform_executable()
        self.list_timeout = list_timeout
        self.pull_timeout = pull_timeout

    async def _exec(self, executable: str, args: Sequence[str], timeout: float) -> str:
        """Run one executable and return stdout. Raises OllamaCLIError on any failure."""
        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError, OSError) as e:
            raise OllamaCLIError(f"Could not start {executable}: {e}")

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{executable} {' '.join(args)} timed out after {timeout}s, killing")
            try:
                process.kill()
            except ProcessLookupError:
                pass  # Already exited
            await process.wait()
            raise OllamaCLIError(f"{executable} {' '.join(args)} timed out after {timeout}s")

        err_text = (stderr or b"").decode("utf-8", errors="replace").strip()
        if process.returncode != 0:
            raise OllamaCLIError(
                f"{executable} {' '.join(args)} exited with code {process.returncode}: {err_text}"
            )
        if err_text:
            logger.debug(f"Stderr from {executable} {' '.join(args)}: {err_text}")

        return (stdout or b"").decode("utf-8", errors="replace")

    async def run(self, *args: str, timeout: float = None) -> str:
        """
        Run an ollama subcommand, falling back to the platform install path.

        Raises:
            OllamaCLIError: If every executable failed
        """
        timeout = timeout or self.list_timeout

        async def default():
            return await self._exec(self.executable, args, timeout)

        if not self.fallback_executable or self.fallback_executable == self.executable:
            return await default()

        async def fallback():
            return await self._exec(self.fallback_executable, args, timeout)

        # Empty stdout is a valid answer (e.g. nothing installed)
        return await try_primary_then_secondary(
            default,
            fallback,
            description=f"ollama {' '.join(args)}",
            accept=lambda out: True,
        )

    async def list_models(self) -> List[str]:
        """Return installed models as reported by `ollama list`."""
        stdout = await self.run("list", timeout=self.list_timeout)
        models = parse_list_output(stdout)
        logger.info(f"Locally installed Ollama models from CLI: {models}")
        return models

    async def pull(self, model: str) -> str:
        """Pull a model with `ollama pull`. Returns the CLI output."""
        logger.info(f"Pulling model '{model}' using Ollama CLI...")
        output = await self.run("pull", model, timeout=self.pull_timeout)
        logger.info(f"Successfully pulled model '{model}' via CLI")
        return output
