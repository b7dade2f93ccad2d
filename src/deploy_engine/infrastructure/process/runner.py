"""Subprocess execution shared by the helm, terraform and kubectl adapters."""

from __future__ import annotations

import asyncio
import os
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from deploy_engine.domain.errors import CommandError
from deploy_engine.domain.models.environment import ToolEnvironment


logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one command."""

    cmd: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0

    @property
    def command_line(self) -> str:
        return " ".join(self.cmd)


class CommandRunner:
    """Runs binaries with the tool environment of a deployment target.

    Blocking ``subprocess.run`` calls go through ``asyncio.to_thread`` so that
    several services can be driven concurrently on one event loop.
    """

    def __init__(self, inherit_environment: bool = True) -> None:
        self._inherit_environment = inherit_environment

    def _process_env(self, env: ToolEnvironment) -> dict[str, str]:
        process_env = dict(os.environ) if self._inherit_environment else {}
        process_env.update(env.as_process_env())
        return process_env

    async def run(
        self,
        cmd: Sequence[str],
        env: ToolEnvironment,
        *,
        cwd: str | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run a command; a non-zero exit code is returned, not raised.

        Raises CommandError when the binary cannot be started or times out.
        """
        args = tuple(cmd)
        process_env = self._process_env(env)

        def _run() -> subprocess.CompletedProcess[str]:
            return subprocess.run(
                list(args),
                cwd=cwd,
                env=process_env,
                capture_output=True,
                text=True,
                timeout=timeout,
            )

        logger.debug("command_started", cmd=args[0], args=list(args[1:]), cwd=cwd)
        try:
            completed = await asyncio.to_thread(_run)
        except FileNotFoundError as e:
            raise CommandError(
                f"Cannot find binary `{args[0]}`.", str(e), env.env_vars
            ) from e
        except subprocess.TimeoutExpired as e:
            raise CommandError(
                f"Command `{args[0]} {args[1] if len(args) > 1 else ''}` timed out after {timeout}s.",
                str(e),
                env.env_vars,
            ) from e

        result = CommandResult(
            cmd=args,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        logger.debug("command_finished", cmd=args[0], returncode=result.returncode)
        return result

    async def run_checked(
        self,
        cmd: Sequence[str],
        env: ToolEnvironment,
        *,
        cwd: str | None = None,
        timeout: float | None = None,
    ) -> str:
        """Run a command and return its stdout, raising CommandError on failure."""
        result = await self.run(cmd, env, cwd=cwd, timeout=timeout)
        if not result.success:
            raise CommandError(
                f"Error while executing command `{result.cmd[0]}`.",
                f"{result.command_line}\n{result.stderr.strip()}",
                env.env_vars,
            )
        return result.stdout
