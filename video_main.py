"""Command line entry for the topic video pipeline."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

from config_loader import AppConfig, load_config
from content_state import StateStore
from logging_utils import configure_logging, get_logger
from pipeline_errors import PipelineError
from video_pipeline import PipelineCoordinator

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Topic-to-video pipeline")
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Create the initial content snapshot")
    init_parser.add_argument("search_term", help="Topic to search on Wikipedia")
    init_parser.add_argument(
        "--max-sentences",
        type=int,
        default=7,
        help="Number of sentences to keep (default: 7)",
    )
    init_parser.add_argument(
        "--lang",
        default=None,
        help="Wikipedia/NLU language code (default: text.lang in config, else pt)",
    )

    subparsers.add_parser("text", help="Fetch text, split sentences and extract keywords")
    subparsers.add_parser("video", help="Render images, write the render script and run the renderer")
    return parser


def _run_init(config: AppConfig, args: argparse.Namespace) -> None:
    if args.max_sentences < 0:
        raise ValueError("--max-sentences must be >= 0")
    text_cfg = config.section("text")
    lang = args.lang or str(text_cfg.get("lang", "pt"))
    store = StateStore(config.state_file, config.script_file)
    content = store.initialize(args.search_term, args.max_sentences, lang)
    logger.info(
        "Content initialised: '%s' (max %d sentences, lang=%s) -> %s",
        content.search_term,
        content.maximum_sentences,
        content.lang,
        config.state_file,
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config, project_root=Path.cwd())
    configure_logging(config.logging_level, config.log_file)
    logger.debug("Resolved paths: %s", config.dumps())

    try:
        if args.command == "init":
            _run_init(config, args)
        else:
            coordinator = PipelineCoordinator.from_config(config)
            if args.command == "text":
                coordinator.run_text_stage()
            else:
                result = coordinator.run_rendering_stage()
                logger.info("Video rendered: %s", result.video_path)
    except ValueError as exc:
        parser.error(str(exc))
    except PipelineError as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
