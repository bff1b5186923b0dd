"""Built-in tools: confined workspace file access and allow-listed commands."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Sequence

from .base import Tool, ToolContext, ToolResult
from .registry import ToolRegistry


def _run_command(args: Sequence[str], *, timeout: float = 30.0, cwd: Path | None = None) -> Dict[str, Any]:
    try:
        proc = subprocess.run(list(args), cwd=cwd, capture_output=True, text=True, timeout=timeout)
        return {"code": proc.returncode, "stdout": proc.stdout.strip(), "stderr": proc.stderr.strip()}
    except FileNotFoundError:
        return {"code": 127, "stdout": "", "stderr": f"{args[0]} not found"}
    except subprocess.TimeoutExpired:
        return {"code": -1, "stdout": "", "stderr": f"timeout after {timeout}s"}


class WorkspaceTool(Tool):
    """Reads and writes files inside the agent workspace directory."""

    parameters = {
        "operation": "one of read, write, append, exists, list",
        "path": "path relative to the workspace root",
        "content": "text to write or append",
    }

    def __init__(self, name: str, root: str | os.PathLike[str] = "workspace", **kwargs: Any) -> None:
        super().__init__(name, **kwargs)
        self.root = Path(root).expanduser().resolve()

    def _resolve(self, relative: Any) -> Path:
        if not isinstance(relative, str) or not relative.strip():
            raise ValueError("path must be a non-empty string")
        candidate = (self.root / relative).resolve()
        if candidate != self.root and self.root not in candidate.parents:
            raise PermissionError(f"Path '{relative}' escapes the workspace")
        return candidate

    def run(self, *, arguments: Mapping[str, Any], context: ToolContext) -> ToolResult:
        operation = arguments.get("operation", "read")
        if operation == "list":
            target = self._resolve(arguments.get("path") or ".")
            names = sorted(entry.name for entry in target.iterdir()) if target.is_dir() else []
            return ToolResult(content=names)
        path = self._resolve(arguments.get("path"))
        if operation == "read":
            return ToolResult(content=path.read_text(encoding="utf-8"))
        if operation == "exists":
            return ToolResult(content=path.exists())
        if operation in ("write", "append"):
            text = str(arguments.get("content", ""))
            path.parent.mkdir(parents=True, exist_ok=True)
            mode = "a" if operation == "append" else "w"
            with path.open(mode, encoding="utf-8") as handle:
                handle.write(text)
            relative = str(path.relative_to(self.root))
            return ToolResult(content={"path": relative, "written": len(text)}, metadata={"task": str(context.task_name)})
        raise ValueError(f"Unsupported workspace operation '{operation}'")


class CommandTool(Tool):
    """Runs an allow-listed executable without a shell."""

    parameters = {
        "argv": "command and arguments as a list of strings",
        "timeout": "seconds before the command is stopped (optional)",
    }

    def __init__(
        self,
        name: str,
        allow: Iterable[str] = (),
        timeout: float = 30.0,
        cwd: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(name, **kwargs)
        self.allow = frozenset(allow)
        self.timeout = float(timeout)
        self.cwd = Path(cwd) if cwd else None

    def run(self, *, arguments: Mapping[str, Any], context: ToolContext) -> ToolResult:
        argv = arguments.get("argv")
        if isinstance(argv, str) or not isinstance(argv, Sequence) or not argv:
            raise ValueError("argv must be a non-empty list of strings")
        argv = [str(part) for part in argv]
        executable = os.path.basename(argv[0])
        if executable not in self.allow:
            raise PermissionError(f"Command '{executable}' is not allow-listed")
        timeout = float(arguments.get("timeout") or self.timeout)
        result = _run_command(argv, timeout=timeout, cwd=self.cwd)
        return ToolResult(content=result, metadata={"code": str(result["code"])})


def register_builtin_tools(
    registry: ToolRegistry,
    *,
    workspace_root: str | os.PathLike[str] = "workspace",
    allowed_commands: Iterable[str] = (),
) -> None:
    """Register built-in tool factories."""

    allowed = tuple(allowed_commands)
    registry.register_factory(
        "workspace", lambda: WorkspaceTool(name="workspace", root=workspace_root), overwrite=True
    )
    registry.register_factory("command", lambda: CommandTool(name="command", allow=allowed), overwrite=True)
