"""Observer bridge — hand finished exchanges to the external summarizer.

Learn: Recording is fire-and-forget. The invoker calls
schedule_record_exchange() and moves on; the summarizer runs in its own
asyncio task with its own failure channel (the log). Nothing here ever
raises into, or delays, the invocation that triggered it.

Per recording:
1. Normalize the exchange (flatten blocks, truncate tool payloads,
   strip queue artifacts)
2. Write it to pending_{agent}_{millis}_{rand}.json in the agent's
   observer dir (random suffix: concurrent recordings for the same
   agent never collide)
3. Run `python3 -m switchboard.observer.hook --messages-file ...`
4. Delete the pending file, whatever happened
"""

import asyncio
import json
import os
import secrets
import time
from pathlib import Path
from typing import Optional

import structlog

from tinyclaw.observer.filters import normalize_messages
from tinyclaw.observer.state import state_dir

logger = structlog.get_logger()

SUMMARIZER_MODULE = "switchboard.observer.hook"

# Strong refs so pending recordings aren't garbage-collected mid-flight
_background_tasks: set[asyncio.Task] = set()


def pending_file_path(agent_id: str, workspace_root: str | Path) -> Path:
    """Collision-resistant transient file name for one exchange."""
    millis = int(time.time() * 1000)
    suffix = secrets.token_hex(3)
    return state_dir(agent_id, workspace_root) / f"pending_{agent_id}_{millis}_{suffix}.json"


def build_summarizer_command(
    runtime: str,
    messages_file: Path,
    agent_id: str,
    project_root: Path,
    provider: str,
    token_threshold: int,
    reflection_threshold: int,
) -> list[str]:
    return [
        runtime,
        "-m",
        SUMMARIZER_MODULE,
        "--messages-file",
        str(messages_file),
        "--agent-id",
        agent_id,
        "--project-root",
        str(project_root),
        "--provider",
        provider,
        "--token-threshold",
        str(token_threshold),
        "--reflection-threshold",
        str(reflection_threshold),
    ]


async def record_exchange(
    agent_id: str,
    messages: list[dict],
    workspace_root: str | Path,
    provider: str,
    token_threshold: int,
    reflection_threshold: int,
    summarizer_path: str,
    summarizer_runtime: str = "python3",
) -> bool:
    """Run the summarizer over one exchange. Returns True on success.

    Never raises; every failure is logged and reported as False.
    """
    pending: Optional[Path] = None
    try:
        normalized = normalize_messages(messages)
        if not normalized:
            logger.debug("observer.record_skipped", agent_id=agent_id, reason="empty")
            return False

        pending = pending_file_path(agent_id, workspace_root)
        pending.parent.mkdir(parents=True, exist_ok=True)
        pending.write_text(json.dumps(normalized), encoding="utf-8")

        project_root = Path(workspace_root) / agent_id
        cmd = build_summarizer_command(
            summarizer_runtime,
            pending,
            agent_id,
            project_root,
            provider,
            token_threshold,
            reflection_threshold,
        )
        env = {**os.environ, "PYTHONPATH": str(Path(summarizer_path) / "src")}

        proc = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=str(project_root),
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
            env=env,
        )
        _, stderr_bytes = await proc.communicate()

        if proc.returncode != 0:
            stderr = stderr_bytes.decode("utf-8", errors="replace").strip()
            logger.warning(
                "observer.summarizer_failed",
                agent_id=agent_id,
                exit_code=proc.returncode,
                stderr=stderr[-500:],
            )
            return False

        logger.info(
            "observer.recorded", agent_id=agent_id, messages=len(normalized)
        )
        return True

    except Exception as e:
        logger.warning("observer.record_error", agent_id=agent_id, error=str(e))
        return False

    finally:
        if pending is not None:
            try:
                pending.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(
                    "observer.pending_cleanup_failed", path=str(pending), error=str(e)
                )


def _on_record_done(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("observer.record_task_failed", error=str(exc))


def schedule_record_exchange(
    agent_id: str,
    messages: list[dict],
    workspace_root: str | Path,
    provider: str,
    token_threshold: int,
    reflection_threshold: int,
    summarizer_path: str,
    summarizer_runtime: str = "python3",
) -> Optional[asyncio.Task]:
    """Spawn record_exchange() in the background and return immediately.

    Returns the task (for tests/shutdown), or None when no summarizer is
    configured. Callers must not await it on the invocation path.
    """
    if not summarizer_path:
        logger.debug("observer.disabled", agent_id=agent_id)
        return None

    task = asyncio.create_task(
        record_exchange(
            agent_id,
            messages,
            workspace_root,
            provider,
            token_threshold,
            reflection_threshold,
            summarizer_path,
            summarizer_runtime,
        ),
        name=f"observer-record-{agent_id}",
    )
    _background_tasks.add(task)
    task.add_done_callback(_on_record_done)
    logger.info("observer.scheduled", agent_id=agent_id, messages=len(messages))
    return task
