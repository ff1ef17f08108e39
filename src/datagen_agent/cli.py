"""Command-line interface for the synthetic dataset generator."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from .config import AppConfig
from .exceptions import GenerationError, RequestValidationError
from .generation.openai_provider import OpenAILLMSettings, OpenAIProviderError, OpenAITextClient
from .retrieval.formatting import format_context_for_prompt
from .runtime.services import build_services
from .utils.filesystem import write_json

# Enables .env-based credentials in local development.
load_dotenv()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=str(args.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = AppConfig.from_env()
    if args.db_path:
        config.paths.db_path = Path(args.db_path)
    if getattr(args, "sources", None):
        config.fetch_policy.sources = [x.strip().lower() for x in args.sources.split(",") if x.strip()]

    if args.command == "serve":
        return cmd_serve(args, config)

    if args.command == "build-context":
        services = build_services(config)
        context = services.generator.get_reference_context(args.topic, args.description)
        payload: dict[str, Any] = {"used": not context.is_empty, "context": context.model_dump(mode="json")}
        if args.show_prompt:
            payload["prompt_block"] = format_context_for_prompt(context)
        _print_json(payload)
        return 0

    if args.command == "generate":
        request = json.loads(Path(args.input).read_text(encoding="utf-8"))
        if not isinstance(request, dict):
            raise ValueError("Generation input must be a JSON object")
        if args.no_reference:
            config.generation_policy.use_reference_context = False

        settings = OpenAILLMSettings.from_env()
        if args.llm_model:
            settings.model = args.llm_model
        services = build_services(config)
        try:
            services.generator.text_generator = OpenAITextClient(settings=settings)
            result = services.generator.generate_dataset(request)
        except RequestValidationError as exc:
            _print_json({"error": "validation_error", "message": str(exc), "errors": exc.errors}, stream=sys.stderr)
            return 2
        except GenerationError as exc:
            _print_json({"error": exc.code, "message": str(exc)}, stream=sys.stderr)
            return 2
        except OpenAIProviderError as exc:
            _print_json({"error": "openai_provider_error", "message": str(exc)}, stream=sys.stderr)
            return 2

        if args.output:
            write_json(Path(args.output), result.rows)
        _print_json(
            {
                "ok": True,
                "dataset_id": result.dataset_id,
                "rows": len(result.rows),
                "reference_used": result.reference_used,
                "sources": [s.name for s in result.sources],
                "output": args.output,
            }
        )
        return 0

    if args.command == "list-datasets":
        services = build_services(config)
        total = services.store.count_datasets()
        rows = services.store.find_datasets(
            skip=(args.page - 1) * args.limit,
            limit=args.limit,
            sort_by=args.sort_by,
            sort_order=args.sort_order,
        )
        _print_json({"total": total, "page": args.page, "datasets": rows})
        return 0

    if args.command == "show-dataset":
        services = build_services(config)
        record = services.store.get_dataset(args.dataset_id)
        if record is None:
            _print_json({"error": "not_found", "dataset_id": args.dataset_id}, stream=sys.stderr)
            return 1
        _print_json(record.model_dump(mode="json"))
        return 0

    if args.command == "delete-dataset":
        services = build_services(config)
        deleted = services.store.delete_dataset(args.dataset_id)
        _print_json({"deleted": deleted, "dataset_id": args.dataset_id})
        return 0 if deleted else 1

    parser.print_help()
    return 1


def cmd_serve(args: argparse.Namespace, config: AppConfig) -> int:
    import uvicorn

    from .server.app import create_app

    app = create_app(config=config)
    uvicorn.run(app, host=args.host, port=args.port, log_level=str(args.log_level).lower())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Synthetic dataset generator CLI")
    parser.add_argument("--log-level", default=str(os.getenv("DATAGEN_LOG_LEVEL") or "info"))
    parser.add_argument("--db-path", default=None, help="SQLite path (overrides DATAGEN_DB_PATH)")
    sub = parser.add_subparsers(dest="command")

    p_serve = sub.add_parser("serve", help="Serve the FastAPI app")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=5000)

    p_ctx = sub.add_parser("build-context", help="Build reference context for a topic")
    p_ctx.add_argument("topic")
    p_ctx.add_argument("--description", default=None)
    p_ctx.add_argument("--sources", default=None, help="Comma-separated source priority list")
    p_ctx.add_argument("--show-prompt", action="store_true", help="Include the formatted prompt block")

    p_gen = sub.add_parser("generate", help="Generate a dataset from a request JSON file")
    p_gen.add_argument("--input", required=True, help="Path to request JSON (topic, description, columns, row_count)")
    p_gen.add_argument("--output", default=None, help="Optional path for the generated rows JSON")
    p_gen.add_argument("--sources", default=None, help="Comma-separated source priority list")
    p_gen.add_argument("--no-reference", action="store_true", help="Skip reference context")
    p_gen.add_argument("--llm-model", default=None)

    p_list = sub.add_parser("list-datasets", help="List stored datasets without rows")
    p_list.add_argument("--page", type=int, default=1)
    p_list.add_argument("--limit", type=int, default=10)
    p_list.add_argument("--sort-by", choices=["created_at", "topic", "row_count"], default="created_at")
    p_list.add_argument("--sort-order", choices=["asc", "desc"], default="desc")

    p_show = sub.add_parser("show-dataset", help="Print one stored dataset with rows")
    p_show.add_argument("dataset_id")

    p_del = sub.add_parser("delete-dataset", help="Delete one stored dataset")
    p_del.add_argument("dataset_id")

    return parser


def _print_json(payload: Any, *, stream: Any = None) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2), file=stream or sys.stdout)


if __name__ == "__main__":
    raise SystemExit(main())
