"""MCP Server for documentation builds."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import uuid
from typing import Any

from mcp.server.fastmcp import Context, FastMCP

from .build import (
    BuildCompleted,
    BuildEvent,
    BuildExecutor,
    BuildRequest,
    BuildStarted,
    RestoreCompleted,
    RestoreStarted,
)
from .config import Settings

logger = logging.getLogger(__name__)

# Default locations inside the repository when the client does not pass them
DEFAULT_OUTPUT_DIR = os.path.join(".docsbuild", "output")
DEFAULT_LOG_FILE = os.path.join(".docsbuild", ".errors.log")

# Progress reported to the client per lifecycle event
PROGRESS_STEPS: dict[type[BuildEvent], tuple[float, str]] = {
    RestoreStarted: (0, "Restoring dependencies..."),
    RestoreCompleted: (40, "Restore finished"),
    BuildStarted: (50, "Building..."),
    BuildCompleted: (100, "Build finished"),
}

# Global executor (single client mode)
_executor: BuildExecutor | None = None
_settings: Settings | None = None


def get_executor() -> BuildExecutor:
    """Get or create the build executor.

    Note: Single client mode - one executor, so restore runs once per server.
    """
    global _executor
    if _executor is None:
        _executor = BuildExecutor(settings=_settings or Settings.from_env())
    return _executor


def new_correlation_id() -> str:
    return str(uuid.uuid4())


def make_request(
    repository_path: str,
    repository_url: str = "",
    output_path: str | None = None,
    log_path: str | None = None,
    dry_run: bool = False,
    auth_token: str | None = None,
    correlation_id: str | None = None,
) -> BuildRequest:
    """Build a request, filling in default output and log locations."""
    if not repository_path:
        raise ValueError("repository_path is required")
    repository_path = os.path.abspath(repository_path)
    if not os.path.isdir(repository_path):
        raise ValueError(f"Repository not found: {repository_path}")
    return BuildRequest(
        correlation_id=correlation_id or new_correlation_id(),
        local_repository_path=repository_path,
        output_folder_path=output_path or os.path.join(repository_path, DEFAULT_OUTPUT_DIR),
        log_path=log_path or os.path.join(repository_path, DEFAULT_LOG_FILE),
        original_repository_url=repository_url,
        dry_run=dry_run,
        auth_token=auth_token or None,
    )


def state_to_dict(executor: BuildExecutor) -> dict[str, Any]:
    last = executor.last_outcome
    return {
        "state": executor.state.value,
        "running": executor.is_running,
        "restoreSkipped": executor.restore_skipped,
        "environment": executor.settings.environment,
        "lastOutcome": last.to_dict() if last else None,
    }


def create_server(settings: Settings | None = None) -> FastMCP:
    """Create and configure the MCP server.

    Args:
        settings: Orchestrator settings (loaded from environment if not provided)
    """
    global _executor, _settings
    if settings is not None:
        _settings = settings
        _executor = None
    mcp = FastMCP("docs-build-mcp")
    executor = get_executor()

    from pydantic import AnyUrl

    async def notify_state_changed(ctx: Context) -> None:
        """Notify client that build://state resource has changed."""
        try:
            if ctx.session:
                await ctx.session.send_resource_updated(AnyUrl("build://state"))
        except Exception:
            logger.debug("Resource update notification failed", exc_info=True)

    # ============== Build Tools ==============

    @mcp.tool()
    async def run_build(
        ctx: Context,
        repository_path: str,
        repository_url: str = "",
        output_path: str | None = None,
        log_path: str | None = None,
        dry_run: bool = False,
        auth_token: str | None = None,
    ) -> dict:
        """
        Validate a documentation repository by running restore and build.

        Restore runs only on the first successful build of this server; later
        builds reuse it. Without auth_token the build sees published content
        only (the "live" branch).

        Args:
            repository_path: Local path of the documentation repository
            repository_url: Original remote URL of the repository
            output_path: Output folder (default: .docsbuild/output in the repository)
            log_path: Report file (default: .docsbuild/.errors.log in the repository)
            dry_run: Validate without writing output
            auth_token: Build user token for authenticated builds
        """
        try:
            request = make_request(
                repository_path,
                repository_url=repository_url,
                output_path=output_path,
                log_path=log_path,
                dry_run=dry_run,
                auth_token=auth_token,
            )
        except ValueError as e:
            return {"success": False, "error": str(e)}

        pending: list[asyncio.Task] = []

        def report(event: BuildEvent) -> None:
            step = PROGRESS_STEPS.get(type(event))
            if step is not None:
                progress, message = step
                pending.append(
                    asyncio.create_task(
                        ctx.report_progress(progress=progress, total=100, message=message)
                    )
                )

        unsubscribe = executor.events.subscribe(report)
        try:
            outcome = await executor.run_build(request)
        except Exception as e:
            return {"success": False, "error": str(e)}
        finally:
            unsubscribe()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        await notify_state_changed(ctx)
        return {
            "success": outcome.succeeded,
            "data": outcome.to_dict(),
            "summary": outcome.to_summary(),
            "outputPath": request.output_folder_path,
            "logPath": request.log_path,
        }

    @mcp.tool()
    async def cancel_build(ctx: Context) -> dict:
        """Cancel the running restore or build. Does nothing when idle."""
        try:
            cancelled = await executor.cancel()
            await notify_state_changed(ctx)
            return {"success": True, "data": {"cancelled": cancelled}}
        except Exception as e:
            return {"success": False, "error": str(e)}

    @mcp.tool()
    async def get_build_state() -> dict:
        """Get the current build state and the outcome of the last build."""
        return {"success": True, "data": state_to_dict(executor)}

    @mcp.tool()
    async def reset_restore_cache() -> dict:
        """Make the next build run restore again (e.g. after dependencies changed)."""
        if executor.is_running:
            return {"success": False, "error": "Cannot reset while a build is running"}
        executor.reset_restore_cache()
        return {"success": True, "data": {"restoreSkipped": executor.restore_skipped}}

    # ============== Resources ==============

    @mcp.resource("build://state", mime_type="application/json")
    async def build_state_resource() -> str:
        """Current build state (JSON).

        Contains: state, running, restoreSkipped, lastOutcome.
        Updates when: a build starts, finishes or is cancelled.
        """
        return json.dumps(state_to_dict(executor), indent=2)

    logger.info("Docs Build MCP Server initialized")
    return mcp
