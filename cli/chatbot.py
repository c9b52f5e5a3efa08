#!/usr/bin/env python3
"""
Terminal client for the cold-call property interview
"""

import argparse
import json
import os
import sys
import logging
from typing import Dict, Any

from dotenv import load_dotenv

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from core.config import load_settings
from core.conversation_engine import create_engine
from core.errors import GraphConfigError
from graph.graph_builder import GraphBuilder

load_dotenv()


def setup_logging(verbose: bool = False):
    """Setup logging configuration"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler('chatbot.log')
        ]
    )

    logging.getLogger('openai._base_client').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('openai').setLevel(logging.INFO)


def print_state_summary(summary: Dict[str, Any]):
    """Print conversation state"""
    if not summary.get('active'):
        print("\n No active conversation.")
        return
    print(f"\n Conversation:")
    print(f"   Current Node: {summary.get('currentNode')}")
    print(f"   Messages: {summary.get('messageCount', 0)}")
    print(f"   Status: {'Complete' if summary.get('isComplete') else 'Active'}")

    answers = summary.get('answers') or {}
    if answers:
        print(f"   Answers:")
        for node, raw in answers.items():
            print(f"     - {node}: {raw}")


def validate_only() -> bool:
    """Build and validate the interview graph without chatting"""
    builder = GraphBuilder()
    ok = builder.build_graph()
    report = builder.report
    if ok:
        print("✅ Interview graph validation completed successfully!")
        print(f"   Total nodes: {builder.graph.number_of_nodes()}")
        print(f"   Question order: {' -> '.join(builder.detect_cycles()['order'])}")
    else:
        print("❌ Interview graph validation failed:")
        for err in (report.errors if report else []):
            print(f"   - {err}")
    for warning in (report.warnings if report else []):
        print(f"   ⚠️ {warning}")
    return ok


def export_graph(output_png: str) -> bool:
    builder = GraphBuilder()
    if not builder.build_graph():
        print("❌ Interview graph is invalid; nothing exported")
        return False

    info = builder.export_graph_info()
    print(f"\nTotal nodes: {info['graph_stats']['nodes']}")
    print(f"Total edges: {info['graph_stats']['edges']}")
    print(f"DAG: {info['graph_stats']['is_dag']}")

    try:
        builder.visualize_graph(output_png)
        print(f"\n✅ Graph image saved: {output_png}")
    except Exception as e:
        print(f"\n⚠️ Graph visualization skipped: {e}")
        return False
    return True


def main():
    """Main CLI function"""
    parser = argparse.ArgumentParser(
        description="Cold-call property interview chatbot",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Basic usage
  python cli/chatbot.py --user alice

  # Validation only
  python cli/chatbot.py --validate-only

  # Offline, file-backed, no LLM
  python cli/chatbot.py --user bob --backend file --heuristic
        """
    )

    parser.add_argument(
        '--user', '--session-id',
        dest='user',
        default='cli-user',
        help='Caller identity (state is resumed for a known identity)'
    )

    parser.add_argument(
        '--backend',
        choices=['memory', 'file', 'redis'],
        help='Conversation state storage (default: STORAGE_BACKEND or file)'
    )

    parser.add_argument(
        '--heuristic',
        action='store_true',
        help='Use keyword extraction only, no LLM calls'
    )

    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    parser.add_argument(
        '--info',
        action='store_true',
        help='Show conversation state and exit'
    )

    parser.add_argument(
        '--validate-only',
        action='store_true',
        help='Validate the interview graph and exit'
    )

    parser.add_argument(
        '--export-graph',
        metavar='PNG',
        help='Render the interview graph to an image and exit'
    )

    args = parser.parse_args()

    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    if args.validate_only:
        sys.exit(0 if validate_only() else 1)

    if args.export_graph:
        sys.exit(0 if export_graph(args.export_graph) else 1)

    overrides: Dict[str, Any] = {}
    if args.backend:
        overrides['storage_backend'] = args.backend
    if args.heuristic:
        overrides['extraction_mode'] = 'heuristic'
        overrides['paraphrase_questions'] = False

    try:
        settings = load_settings(**overrides)
        engine = create_engine(settings)
    except GraphConfigError as e:
        print(f"Interview graph is invalid: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Initialization failed: {e}")
        print(f"Initialization failed: {e}")
        sys.exit(1)

    user = args.user
    summary = engine.get_state_summary(user)
    if args.info:
        print_state_summary(summary)
        return

    if summary.get('active'):
        print(f"Resuming conversation: {user}")
        print_state_summary(summary)
    else:
        print(f"Starting new conversation: {user}")

    print("\n" + "="*60)
    print("Interview started")
    print("   Commands:")
    print("   - 'quit', 'exit', 'q': exit")
    print("   - 'reset': start over")
    print("   - 'info': show conversation state")
    print("="*60)

    # The first turn of a new conversation only emits the opening question
    if not summary.get('active'):
        print(f"\nCaller> {engine.chat(user, '')}")

    while True:
        try:
            user_input = input("\n You> ").strip()

            if not user_input:
                continue

            if user_input.lower() in ['quit', 'exit', 'q']:
                print("\n Goodbye.")
                break

            elif user_input.lower() == 'reset':
                engine.reset(user)
                print("Conversation reset.")
                print(f"\nCaller> {engine.chat(user, '')}")
                continue

            elif user_input.lower() == 'info':
                print_state_summary(engine.get_state_summary(user))
                continue

            result = engine.process_turn(user, user_input)
            print(f"\nCaller> {result['response']}")

            if args.verbose:
                print(f"   [Debug] Node: {result.get('current_node')}")
                print(f"   [Debug] Answers: {json.dumps(result.get('answers', {}), ensure_ascii=False)}")

            if result.get('is_complete'):
                print("\nInterview complete")
                restart = input("\nStart a new conversation? (y/n): ").strip().lower()
                if restart in ['y', 'yes']:
                    engine.reset(user)
                    print(f"\nCaller> {engine.chat(user, '')}")
                else:
                    break

        except KeyboardInterrupt:
            print("\n\n Goodbye.")
            break
        except EOFError:
            print("\n\nInput closed.")
            break


if __name__ == "__main__":
    main()
