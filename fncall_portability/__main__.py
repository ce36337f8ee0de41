"""
エントリーポイント

    python -m fncall_portability
    python -m fncall_portability --backends openai,anthropic --usage
    python -m fncall_portability --env-file application.env --prompt "Status of 002?"
"""

import argparse
import dataclasses
import logging
import sys
from typing import Optional

from .config import load_config, parse_backends, validate_credentials
from .exceptions import LLMError
from .runner import build_backends, run
from .tools import default_registry
from . import usage_tracker

logger = logging.getLogger("fncall_portability")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="fncall-portability",
        description="Ask every configured chat backend the same payment-status question "
                    "through the paymentStatus function.",
    )
    parser.add_argument("--env-file", help="key=value config file (default: .env)")
    parser.add_argument("--prompt", help="override FCP_PROMPT")
    parser.add_argument("--backends", help="comma separated backends, e.g. openai,mistral")
    parser.add_argument("--no-stream", action="store_true", help="skip streaming calls")
    parser.add_argument("--usage", action="store_true", help="print token usage summary")
    parser.add_argument("--save-usage", metavar="PATH", help="write token usage JSON to PATH")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    # 呼び出し前に設定と認証情報をすべて検証
    try:
        config = load_config(args.env_file)
        if args.prompt:
            config = dataclasses.replace(config, prompt=args.prompt)
        if args.backends:
            config = dataclasses.replace(config, backends=parse_backends(args.backends))
        if args.no_stream:
            config = dataclasses.replace(config, streaming=[])
        registry = default_registry(config.functions)
        validate_credentials(config)
    except LLMError as e:
        logger.error("Configuration error: %s", e)
        return 1

    logger.info("Registered functions: %s", ", ".join(registry.names()))
    logger.info("Backends: %s", ", ".join(config.backends))

    results = run(config.prompt, build_backends(config, registry))

    if args.usage:
        usage_tracker.print_usage_summary()
    if args.save_usage:
        usage_tracker.save_usage(args.save_usage)

    return 0 if all(r.ok for r in results) else 1


if __name__ == "__main__":
    sys.exit(main())
