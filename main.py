"""
Slice Entry Point
Extract a budget-bounded dependency slice around a symbol
"""
import argparse
import os
import sys

from dotenv import load_dotenv

from graphslice.config import SliceConfig
from graphslice.exceptions import GraphSliceError
from graphslice.llm_integration.llm_client import LLMConfig
from graphslice.slicer import Slicer, SliceRequest
from graphslice.utils.logging_setup import setup_logging
from graphslice.utils.report_printer import ReportPrinter

# Load environment variables from .env file
load_dotenv()


def build_parser():
    parser = argparse.ArgumentParser(description='Extract a dependency slice around a symbol')
    parser.add_argument('path', help='File containing the target, relative to the repository')
    parser.add_argument('line', type=int, help='1-based line of the target')
    parser.add_argument('column', type=int, nargs='?', default=0, help='0-based column of the target')
    parser.add_argument('--repo-path', default='.', help='Path to local repository (default: .)')
    parser.add_argument('--budget', type=int, help='Token budget (default: GRAPHSLICE_TOKEN_BUDGET or 8000)')
    parser.add_argument('--include-tests', action='store_true', help='Follow tests edges')
    parser.add_argument('--intent', default='', help='What you plan to change, for the completeness check')
    parser.add_argument('--modified', help='Modified version of the file, to certify control-flow equivalence')
    parser.add_argument('--llm-provider', choices=['groq', 'openai', 'anthropic', 'local'],
                        help='LLM provider for files that do not compile (or set LLM_PROVIDER)')
    parser.add_argument('--llm-model', help='LLM model name')
    parser.add_argument('--api-key', help='API key for LLM provider (or set in .env file)')
    parser.add_argument('--output', help='Write the rendered slice to this file instead of stdout')
    parser.add_argument('--stats', action='store_true', help='Print repository statistics first')
    parser.add_argument('--log-level', default='WARNING', help='Logging level (default: WARNING)')
    return parser


def main(argv=None):
    """Main entry point for slicing"""
    args = build_parser().parse_args(argv)
    setup_logging('graphslice', args.log_level)

    config = SliceConfig.from_env()
    if args.include_tests:
        config.include_tests = True

    llm_config = None
    provider = args.llm_provider or os.getenv('LLM_PROVIDER')
    if provider:
        llm_config = LLMConfig.from_env(provider, args.llm_model)
        if args.api_key:
            llm_config.api_key = args.api_key

    print(f"📁 Repository: {args.repo_path}")
    print(f"🎯 Target: {args.path}:{args.line}:{args.column}")
    if llm_config:
        print(f"🤖 Model: {llm_config.provider} / {llm_config.model}")

    modified_source = None
    if args.modified:
        with open(args.modified, 'r', encoding='utf-8') as f:
            modified_source = f.read()

    try:
        slicer = Slicer.for_repository(args.repo_path, llm_config=llm_config, config=config)
        if args.stats:
            ReportPrinter.print_summary(slicer.provider.scanner.get_statistics())

        result = slicer.slice(SliceRequest(
            path=args.path,
            line=args.line - 1,
            column=args.column,
            budget=args.budget,
            include_tests=config.include_tests,
            intent=args.intent,
            modified_source=modified_source
        ))
    except GraphSliceError as e:
        print(f"\n❌ {e}")
        return 1

    ReportPrinter.print_slice_summary(result)

    rendered = result.render()
    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            f.write(rendered)
        print(f"\n✅ Slice written to {args.output}")
    else:
        print("\n" + rendered)
    return 0


if __name__ == "__main__":
    sys.exit(main())
