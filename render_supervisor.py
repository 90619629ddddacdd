"""Launch and supervise the external video renderer process."""
from __future__ import annotations

import codecs
import subprocess
import sys
import threading
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import IO, Any, Dict, List, Optional, Sequence, TextIO

from config_loader import AppConfig
from logging_utils import get_logger
from pipeline_errors import RenderProcessFailed

logger = get_logger(__name__)

_READ_CHUNK = 4096


class RenderState(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class RenderCommand:
    executable: str
    composition: str
    project_path: Path
    output_path: Path

    def to_args(self) -> List[str]:
        return [
            "-comp",
            self.composition,
            "-project",
            str(self.project_path),
            "-output",
            str(self.output_path),
        ]

    @classmethod
    def from_config(cls, config: AppConfig) -> "RenderCommand":
        renderer_cfg = config.section("renderer")
        project = renderer_cfg.get("template_path")
        project_path = (
            (config.project_root / str(project)).resolve()
            if project
            else config.templates_dir / "1" / "template.aep"
        )
        output_name = str(renderer_cfg.get("output_file", "output.mov"))
        return cls(
            executable=str(renderer_cfg.get("executable", "aerender")),
            composition=str(renderer_cfg.get("composition", "main")),
            project_path=project_path,
            output_path=config.content_dir / output_name,
        )


class ProcessLauncher:
    def spawn(self, executable: str, args: Sequence[str]) -> subprocess.Popen:
        return subprocess.Popen(
            [executable, *args],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            bufsize=0,
        )


class ExternalProcessSupervisor:
    """Run the renderer, stream its output and turn its exit into success or failure.

    The wait is bounded by ``timeout_seconds``; on expiry, or when the caller
    unwinds for any other reason, the process is terminated before the error
    propagates.
    """

    def __init__(
        self,
        *,
        launcher: Optional[ProcessLauncher] = None,
        sink: Optional[TextIO] = None,
        timeout_seconds: Optional[float] = 3600.0,
        fail_on_nonzero_exit: bool = True,
        terminate_grace_seconds: float = 5.0,
    ) -> None:
        self.launcher = launcher or ProcessLauncher()
        self.sink = sink
        self.timeout_seconds = timeout_seconds
        self.fail_on_nonzero_exit = fail_on_nonzero_exit
        self.terminate_grace_seconds = terminate_grace_seconds
        self.state = RenderState.NOT_STARTED
        self.exit_code: Optional[int] = None

    @classmethod
    def from_config(cls, raw: Dict[str, Any], **kwargs: Any) -> "ExternalProcessSupervisor":
        renderer_cfg = raw.get("renderer", {}) if isinstance(raw, dict) else {}
        timeout = renderer_cfg.get("timeout_seconds", 3600)
        return cls(
            timeout_seconds=float(timeout) if timeout else None,
            fail_on_nonzero_exit=bool(renderer_cfg.get("fail_on_nonzero_exit", True)),
            terminate_grace_seconds=float(renderer_cfg.get("terminate_grace_seconds", 5.0)),
            **kwargs,
        )

    def run(self, command: RenderCommand) -> int:
        if self.state is RenderState.RUNNING:
            raise RuntimeError("Render process already running")

        args = command.to_args()
        logger.info("Starting renderer: %s %s", command.executable, " ".join(args))
        self.exit_code = None
        try:
            process = self.launcher.spawn(command.executable, args)
        except OSError as exc:
            self.state = RenderState.FAILED
            raise RenderProcessFailed(reason=f"could not start {command.executable}: {exc}") from exc
        self.state = RenderState.RUNNING

        reader = threading.Thread(target=self._pump, args=(process.stdout,), daemon=True)
        reader.start()
        try:
            exit_code = process.wait(timeout=self.timeout_seconds)
        except subprocess.TimeoutExpired as exc:
            self._terminate(process)
            reader.join(self.terminate_grace_seconds)
            self.state = RenderState.FAILED
            # 強制終了時のシグナル値は終了コードとして扱わない
            self.exit_code = None
            raise RenderProcessFailed(
                exit_code=None,
                reason=f"timed out after {self.timeout_seconds:g}s",
            ) from exc
        except BaseException:
            self._terminate(process)
            self.state = RenderState.FAILED
            raise
        reader.join(self.terminate_grace_seconds)

        self.exit_code = exit_code
        logger.info("Renderer closed with exit code %s", exit_code)
        if exit_code != 0 and self.fail_on_nonzero_exit:
            self.state = RenderState.FAILED
            raise RenderProcessFailed(exit_code=exit_code)
        if exit_code != 0:
            logger.warning("Renderer exited with %s; treating as success", exit_code)
        self.state = RenderState.SUCCEEDED
        return exit_code

    def _pump(self, stream: Optional[IO[bytes]]) -> None:
        if stream is None:
            return
        sink = self.sink or sys.stdout
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        # 改行を待たずに届いた分だけ流す (aerender は進捗を同じ行に上書きする)
        try:
            while True:
                chunk = stream.read(_READ_CHUNK)
                if not chunk:
                    break
                text = decoder.decode(chunk)
                if text:
                    sink.write(text)
                    sink.flush()
            tail = decoder.decode(b"", final=True)
            if tail:
                sink.write(tail)
                sink.flush()
        except (ValueError, OSError):
            # stream closed underneath us after termination
            pass
        finally:
            stream.close()

    def _terminate(self, process: subprocess.Popen) -> None:
        if process.poll() is not None:
            return
        logger.warning("Terminating renderer (pid=%s)", process.pid)
        process.terminate()
        try:
            process.wait(timeout=self.terminate_grace_seconds)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()
