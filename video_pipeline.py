"""Top-level orchestration for the text and rendering invocations."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from config_loader import AppConfig
from content_state import Content, StateStore
from image_stage import ImageStageResult, ImageStageRunner
from logging_utils import get_logger
from render_supervisor import ExternalProcessSupervisor, RenderCommand
from sentence_templates import SentenceTemplateTable
from text_stage import TextStage

logger = get_logger(__name__)


@dataclass
class RenderResult:
    content: Content
    images: ImageStageResult
    script_path: Path
    video_path: Path
    exit_code: int


class PipelineCoordinator:
    """Run each invocation's stages in order, persisting content only after the last one.

    The first error from any stage propagates unchanged and skips the rest, so
    a failed run leaves the previous snapshot in place.
    """

    def __init__(
        self,
        *,
        store: StateStore,
        text_stage: Optional[TextStage] = None,
        image_runner: Optional[ImageStageRunner] = None,
        supervisor: Optional[ExternalProcessSupervisor] = None,
        render_command: Optional[RenderCommand] = None,
    ) -> None:
        self.store = store
        self.text_stage = text_stage
        self.image_runner = image_runner
        self.supervisor = supervisor
        self.render_command = render_command

    @classmethod
    def from_config(cls, config: AppConfig) -> "PipelineCoordinator":
        templates = SentenceTemplateTable.from_config(config.raw)
        return cls(
            store=StateStore(config.state_file, config.script_file),
            text_stage=TextStage.from_config(config.raw),
            image_runner=ImageStageRunner(
                content_dir=config.content_dir,
                templates=templates,
                config=config.raw,
            ),
            supervisor=ExternalProcessSupervisor.from_config(config.raw),
            render_command=RenderCommand.from_config(config),
        )

    def run_text_stage(self) -> Content:
        if self.text_stage is None:
            raise RuntimeError("Text stage is not configured")
        logger.info("> [text] Starting...")
        content = self.store.load()
        self.text_stage.run(content)
        self.store.save(content)
        logger.info("> [text] Done: %d sentences saved", len(content.sentences))
        return content

    def run_rendering_stage(self) -> RenderResult:
        if self.image_runner is None or self.supervisor is None or self.render_command is None:
            raise RuntimeError("Rendering stage is not configured")
        logger.info("> [video] Starting...")
        content = self.store.load()

        self.image_runner.templates.ensure_covers(len(content.sentences))
        images = self.image_runner.run([sentence.text for sentence in content.sentences])
        for assets in images.sentences:
            content.sentences[assets.index].images = assets.references()

        # 描画スクリプトはレンダラー起動前に書き出す。content の保存は成功後のみ
        script_path = self.store.save_script(content)
        exit_code = self.supervisor.run(self.render_command)

        self.store.save(content)
        logger.info("> [video] Done: %s", self.render_command.output_path)
        return RenderResult(
            content=content,
            images=images,
            script_path=script_path,
            video_path=self.render_command.output_path,
            exit_code=exit_code,
        )
