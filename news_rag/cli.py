"""
Command-Line Interface for the News RAG Query System

Provides CLI commands for:
- Building the article index from a documents file
- Asking a single question
- Interactive multi-turn chat
- System statistics and health
"""

import sys
import argparse
import json
import logging
from pathlib import Path

from .errors import InitializationError
from .main_pipeline import NewsQuerySystem


def setup_logging(verbose: bool = False):
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def _ready_system() -> NewsQuerySystem:
    """Build the system from the saved index, exiting if there is none."""
    system = NewsQuerySystem()
    if not system.load_existing_index():
        system.shutdown()
        print("✗ No saved index found. Run 'ingest --file <articles.json>' first.")
        sys.exit(1)
    return system


def _print_answer(status: int, body: dict, show_sources: bool = True):
    if status != 200:
        print(f"✗ {body['error']}")
        return

    print("Answer:")
    print(body['message'])
    print()

    if show_sources and body['relevantArticles']:
        print("Sources:")
        for i, source in enumerate(body['relevantArticles'], 1):
            print(f"  [{i}] {source['title']} (score: {source['score']:.3f})")
            print(f"      {source['url']}")
        print()


def cmd_ingest(args):
    """Handle the ingest command."""
    if not Path(args.file).exists():
        print(f"✗ Error: File not found: {args.file}")
        sys.exit(1)

    system = NewsQuerySystem()
    system.config.update(documents_file=args.file)

    print(f"Ingesting articles from: {args.file}")
    try:
        try:
            result = system.initialize(replace_existing=not args.accumulate)
        except InitializationError as e:
            print(f"✗ Failed to ingest articles: {e}")
            sys.exit(1)

        print(f"✓ Successfully ingested {result['articlesCount']} articles")
        print(f"  Index: {system.vector_store.index_path}")
        print(f"  Total vectors: {system.vector_store.count()}")
    finally:
        system.shutdown()


def cmd_ask(args):
    """Handle the ask command."""
    system = _ready_system()
    try:
        session_id = system.create_session()

        print(f"Question: {args.question}")
        print()

        status, body = system.chat(session_id, args.question)
        _print_answer(status, body, show_sources=not args.no_sources)
    finally:
        system.shutdown()

    if status != 200:
        sys.exit(1)


def cmd_chat(args):
    """Handle the interactive chat command."""
    system = _ready_system()
    try:
        _chat_loop(system, show_sources=not args.no_sources)
    finally:
        system.shutdown()


def _chat_loop(system: NewsQuerySystem, show_sources: bool):
    session_id = system.create_session()

    print(f"Session ID: {session_id}")
    print("Type 'history' to show the conversation, 'sessions' to list live sessions, 'exit' to quit.")
    print()

    while True:
        try:
            message = input("You: ").strip()
        except EOFError:
            break

        if not message:
            continue
        if message.lower() in ('exit', 'quit'):
            break
        if message.lower() == 'history':
            _, body = system.get_history(session_id)
            print(json.dumps(body, indent=2))
            continue
        if message.lower() == 'sessions':
            _, body = system.list_sessions()
            print(json.dumps(body, indent=2))
            continue

        status, body = system.chat(session_id, message)
        _print_answer(status, body, show_sources=show_sources)
        system.purge_expired()

    system.delete_session(session_id)


def cmd_stats(args):
    """Handle the stats command."""
    system = NewsQuerySystem()
    try:
        system.load_existing_index()
        stats = system.get_stats()
    finally:
        system.shutdown()

    print("="*60)
    print("System Statistics")
    print("="*60)
    print(f"State: {stats['state']}")
    print()

    print("Vector Store:")
    vs_stats = stats['vector_store_stats']
    print(f"  Collection: {vs_stats['collection']}")
    print(f"  Dimension: {vs_stats['dimension']}")
    print(f"  Metric: {vs_stats['metric']}")
    print(f"  Total Vectors: {vs_stats['total_vectors']}")
    print()

    print("Response Cache:")
    cache_stats = stats['cache_stats']
    print(f"  Size: {cache_stats['size']}")
    print(f"  TTL: {cache_stats['ttl']}s")
    print("="*60)


def cmd_health(args):
    """Handle the health command."""
    system = NewsQuerySystem()
    try:
        system.load_existing_index()
        health = system.health_check()
    finally:
        system.shutdown()

    print(json.dumps(health, indent=2))

    if health['rag']['status'] != 'healthy':
        sys.exit(1)


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description='News RAG Query System - grounded answers over ingested news articles',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Build the index from scraped articles
  python -m news_rag.cli ingest --file data/articles.json

  # Ask a question
  python -m news_rag.cli ask "What happened in the markets today?"

  # Start an interactive chat
  python -m news_rag.cli chat

  # View statistics
  python -m news_rag.cli stats
        """
    )

    # Global arguments
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Ingest command
    ingest_parser = subparsers.add_parser(
        'ingest',
        help='Build the article index from a documents file'
    )
    ingest_parser.add_argument(
        '--file',
        required=True,
        help='JSON or JSON Lines file of articles'
    )
    ingest_parser.add_argument(
        '--accumulate',
        action='store_true',
        help='Keep previously stored articles instead of replacing them'
    )
    ingest_parser.set_defaults(func=cmd_ingest)

    # Ask command
    ask_parser = subparsers.add_parser(
        'ask',
        help='Ask a question and get an AI-generated answer'
    )
    ask_parser.add_argument(
        'question',
        help='Question to ask'
    )
    ask_parser.add_argument(
        '--no-sources',
        action='store_true',
        help='Disable source citations'
    )
    ask_parser.set_defaults(func=cmd_ask)

    # Chat command
    chat_parser = subparsers.add_parser(
        'chat',
        help='Start an interactive multi-turn conversation'
    )
    chat_parser.add_argument(
        '--no-sources',
        action='store_true',
        help='Disable source citations'
    )
    chat_parser.set_defaults(func=cmd_chat)

    # Stats command
    stats_parser = subparsers.add_parser(
        'stats',
        help='Display system statistics'
    )
    stats_parser.set_defaults(func=cmd_stats)

    # Health command
    health_parser = subparsers.add_parser(
        'health',
        help='Report pipeline and session store health'
    )
    health_parser.set_defaults(func=cmd_health)

    # Parse arguments
    args = parser.parse_args()

    # Setup logging
    setup_logging(args.verbose)

    # Execute command
    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        print(f"\n✗ Error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == '__main__':
    main()
