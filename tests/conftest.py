"""Pytest fixtures for docs-build-mcp tests."""

import asyncio
import os
import sys
from unittest.mock import AsyncMock, MagicMock

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from docs_build_mcp.build.process import ProcessExit  # noqa: E402
from docs_build_mcp.build.state import BuildRequest  # noqa: E402
from docs_build_mcp.config import Settings  # noqa: E402


class FakeHandle:
    """Stand-in for ProcessHandle whose exit the test controls."""

    def __init__(self, pid: int, exit_info: ProcessExit | None = None):
        self.pid = pid
        self.kill_calls = 0
        self._future = asyncio.get_running_loop().create_future()
        if exit_info is not None:
            self._future.set_result(exit_info)

    @property
    def done(self) -> bool:
        return self._future.done()

    def kill(self) -> bool:
        self.kill_calls += 1
        if self._future.done():
            return False
        self._future.set_result(ProcessExit(exit_code=None, signal="SIGKILL"))
        return True

    def finish(self, exit_code: int) -> None:
        if not self._future.done():
            self._future.set_result(ProcessExit(exit_code=exit_code))

    async def wait(self) -> ProcessExit:
        return await asyncio.shield(self._future)


class FakeRunner:
    """Runner that hands out FakeHandles following a script.

    Each script entry is a ProcessExit (process ends immediately), None
    (process runs until killed or finished by the test), or an exception
    raised by run().
    """

    def __init__(self, *script):
        self.script = list(script)
        self.calls: list[dict] = []
        self.handles: list[FakeHandle] = []

    async def run(self, args, cwd=None, env=None, stdin_text="", on_exit=None):
        self.calls.append(
            {"args": list(args), "cwd": cwd, "env": dict(env or {}), "stdin_text": stdin_text}
        )
        step = self.script.pop(0) if self.script else ProcessExit(exit_code=0)
        if isinstance(step, Exception):
            raise step
        handle = FakeHandle(pid=1000 + len(self.calls), exit_info=step)
        self.handles.append(handle)
        return handle

    @property
    def subcommands(self) -> list[str]:
        return [call["args"][1] for call in self.calls]


def exited(code: int) -> ProcessExit:
    return ProcessExit(exit_code=code)


@pytest.fixture
def settings():
    """Settings isolated from the test environment."""
    return Settings(binary="docfx", environment="PROD")


@pytest.fixture
def tree_killer():
    """Tree killer that reports it is needed and records calls."""
    killer = MagicMock()
    killer.required = True
    killer.kill_tree = AsyncMock(return_value=0)
    return killer


@pytest.fixture
def build_request(tmp_path):
    """Anonymous, non dry-run build request."""
    repo = tmp_path / "my docs repo"
    repo.mkdir()
    return BuildRequest(
        correlation_id="corr-1",
        local_repository_path=str(repo),
        output_folder_path=str(tmp_path / "out dir"),
        log_path=str(tmp_path / "logs" / ".errors.log"),
        original_repository_url="https://github.com/contoso/docs",
    )
