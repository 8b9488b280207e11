#!/usr/bin/env python3
"""
Lesson Plan Prompt Preview
Prints the prompt built for a topic and, with --call, the table the
configured LLM returns for it (after repair/fallback).
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.config import get_settings
from app.core.logging import logger, setup_logging
from app.services.llm_service import LLMService
from app.services.prompt_builder import SYSTEM_PROMPT, build_prompt, detect_level
from app.services.table_parser import parse_table, table_warnings


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--materia", required=True)
    parser.add_argument("--nivel", required=True)
    parser.add_argument("--tema", required=True)
    parser.add_argument("--duracion", type=int, default=50)
    parser.add_argument("--subtema")
    parser.add_argument("--sesiones", type=int)
    parser.add_argument("--call", action="store_true", help="send the prompt to the configured LLM")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    setup_logging(settings)

    prompt = build_prompt(
        materia=args.materia,
        nivel=args.nivel,
        tema=args.tema,
        duracion=args.duracion,
        subtema=args.subtema,
        sesiones=args.sesiones,
    )
    print(f"# level branch: {detect_level(args.nivel)}")
    print(prompt)

    if not args.call:
        return 0

    logger.info(f"Calling {settings.llm_provider}/{settings.llm_model}...")
    result = LLMService(settings).complete(SYSTEM_PROMPT, prompt)
    outcome = parse_table(result.text, args.duracion)

    print("\n# table")
    print(json.dumps(outcome.table, ensure_ascii=False, indent=2))
    print(f"\n# json_ok={outcome.json_ok} error_tipo={outcome.error_tipo}")
    print(f"# tokens: prompt={result.prompt_tokens} completion={result.completion_tokens} total={result.total_tokens}")
    for warning in table_warnings(outcome.table, args.duracion):
        print(f"# warning: {warning}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
