"""
HarScout CLI

Command-line interface for finding a described API call in a HAR trace.

Commands:
    rank    - Show the top-ranked candidate requests
    find    - Pick the best match and print it as curl
    curl    - Print a curl command for one entry
    exec    - Replay one entry against the live server
    serve   - Start the HTTP API server

Examples:
    # Top candidates for a description
    harscout rank session.har -d "the endpoint that returns weather for a city"

    # Stream a large trace in chunks, let Claude pick, print curl
    harscout find session.har -d "weather for a city" --chunk-size 500

    # curl for entry 42
    harscout curl session.har --index 42

    # Replay entry 42 and print the live response
    harscout exec session.har --index 42

    # API server with a YAML config
    harscout serve --config harscout.yaml --port 3001
"""

import argparse
import logging
import sys
import uuid
from typing import List, Optional

from .analyze import (
    AnalyzeService,
    ClaudeDisambiguator,
    HarRanker,
    RelevanceScorer,
    RequestExecutor,
    RequestFingerprint,
    TraceEntry,
    extract_fingerprints,
    extract_keywords,
    shape_from_fingerprint,
)
from .common import TraceLoader, create_anthropic_client


def _load_entries(path: str) -> List[dict]:
    try:
        return TraceLoader(path).load()
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Failed to load trace: {e}")
        sys.exit(1)


def _chunks(items: List[RequestFingerprint], size: int):
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _stream_rank(service: AnalyzeService, fingerprints: List[RequestFingerprint],
                 description: str, chunk_size: int) -> str:
    """Feed fingerprints through a streaming session; returns the session id."""
    session_id = uuid.uuid4().hex
    service.init_session(session_id, description)
    for chunk in _chunks(fingerprints, chunk_size):
        service.submit_chunk(session_id, chunk)
    return session_id


def cmd_rank(args):
    """
    Print the top-ranked candidates.

    Args:
        args: Parsed command-line arguments
    """
    entries = _load_entries(args.har_file)
    fingerprints = extract_fingerprints(entries)

    ranker = HarRanker(top_n=args.top)
    service = AnalyzeService(ranker=ranker)

    if args.chunk_size:
        session_id = _stream_rank(service, fingerprints, args.description, args.chunk_size)
        ranked = list(service.store.get(session_id).top_candidates)
        service.cleanup_session(session_id)
    else:
        ranked = service.rank_one_shot(fingerprints, args.description)

    print(f"🔎 {len(ranked)} candidate(s) out of {len(fingerprints)} request(s)")
    print(f"   Description: {args.description or '(none)'}")
    print()

    scorer = RelevanceScorer()
    keywords = extract_keywords(args.description) if args.description.strip() else []
    text = args.description if args.description.strip() else ''

    for position, fp in enumerate(ranked, 1):
        breakdown = scorer.breakdown(shape_from_fingerprint(fp), text, keywords)
        print(f"{position:>3}. [{fp.id}] {breakdown.total:>3}  {fp.method} {fp.pathname}")
        if args.explain:
            print(f"        keywords={breakdown.keyword_score} segments={breakdown.segment_score} "
                  f"query={breakdown.query_score} body={breakdown.body_score} "
                  f"bonus={breakdown.bonus_score} size={breakdown.size_score} "
                  f"depth=-{breakdown.depth_penalty}")
            for reason in breakdown.reasons:
                print(f"        - {reason}")


def cmd_find(args):
    """
    Pick the best-matching request and print it as curl.

    Args:
        args: Parsed command-line arguments
    """
    entries = _load_entries(args.har_file)
    fingerprints = extract_fingerprints(entries)

    disambiguator = None
    if not args.no_ai:
        client, available, message = create_anthropic_client(verbose=args.verbose)
        if available:
            disambiguator = ClaudeDisambiguator(client, model=args.model)
        else:
            print("⚠️  AI disambiguation unavailable, using heuristic rank only")

    service = AnalyzeService(disambiguator=disambiguator)

    print(f"🔎 Searching {len(fingerprints)} request(s) for: {args.description}")
    session_id = _stream_rank(service, fingerprints, args.description, args.chunk_size)
    result = service.finalize_session(session_id)

    if result.request_id is None:
        print(f"❌ {result.error}")
        sys.exit(1)

    entry = TraceEntry.from_dict(entries[int(result.request_id)])
    curl = service.synthesize_command(entry)
    if curl.curl is None:
        print(f"❌ {curl.error}")
        sys.exit(1)

    print(f"✓ Best match: entry {result.request_id} "
          f"({entry.request.method.upper()} {entry.request.pathname})")
    print()
    print(curl.curl)


def cmd_curl(args):
    """
    Print a curl command for a single entry.

    Args:
        args: Parsed command-line arguments
    """
    print(_entry_curl(AnalyzeService(), args.har_file, args.index))


def _entry_curl(service: AnalyzeService, har_file: str, index: int) -> str:
    entries = _load_entries(har_file)

    if not 0 <= index < len(entries):
        print(f"❌ Index {index} out of range (trace has {len(entries)} entries)")
        sys.exit(1)

    result = service.synthesize_command(entries[index])
    if result.curl is None:
        print(f"❌ {result.error}")
        sys.exit(1)

    return result.curl


def cmd_exec(args):
    """
    Replay a single entry against the live server and print the response.

    Args:
        args: Parsed command-line arguments
    """
    service = AnalyzeService(executor=RequestExecutor(timeout=args.timeout, verify_ssl=not args.insecure))
    curl = _entry_curl(service, args.har_file, args.index)
    print(curl)
    print()

    result = service.execute_curl(curl)
    if not result.ok:
        print(f"❌ {result.error}")
        sys.exit(1)

    print(f"✓ {result.status} {result.status_text}")
    if args.include:
        for name, value in result.headers.items():
            print(f"{name}: {value}")
    print()
    print(result.body)


def cmd_serve(args):
    """
    Start the HTTP API server.

    Args:
        args: Parsed command-line arguments
    """
    from .server import create_server

    try:
        server = create_server(
            config_file=args.config,
            host=args.host,
            port=args.port,
            ai_enabled=False if args.no_ai else None
        )
    except (OSError, ValueError) as e:
        print(f"❌ Failed to load config: {e}")
        sys.exit(1)
    except ImportError as e:
        print(f"❌ {e}")
        sys.exit(1)

    server.start()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='harscout',
        description='Find the API call you described inside a HAR trace and reproduce it with curl'
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    rank_parser = subparsers.add_parser('rank', help='Show top-ranked candidate requests')
    rank_parser.add_argument('har_file', help='HAR file')
    rank_parser.add_argument('-d', '--description', default='', help='Description of the wanted endpoint')
    rank_parser.add_argument('--top', type=int, default=20, help='Number of candidates to show (default: 20)')
    rank_parser.add_argument('--chunk-size', type=int, default=0,
                             help='Rank through a streaming session with this chunk size')
    rank_parser.add_argument('--explain', action='store_true', help='Show the score breakdown per candidate')
    rank_parser.set_defaults(func=cmd_rank)

    find_parser = subparsers.add_parser('find', help='Pick the best match and print curl')
    find_parser.add_argument('har_file', help='HAR file')
    find_parser.add_argument('-d', '--description', required=True, help='Description of the wanted endpoint')
    find_parser.add_argument('--chunk-size', type=int, default=500, help='Fingerprints per chunk (default: 500)')
    find_parser.add_argument('--no-ai', action='store_true', help='Skip Claude disambiguation')
    find_parser.add_argument('--model', default='claude-sonnet-4-5-20250929', help='Claude model for disambiguation')
    find_parser.set_defaults(func=cmd_find)

    curl_parser = subparsers.add_parser('curl', help='Print curl for one entry')
    curl_parser.add_argument('har_file', help='HAR file')
    curl_parser.add_argument('--index', type=int, required=True, help='0-based entry index')
    curl_parser.set_defaults(func=cmd_curl)

    exec_parser = subparsers.add_parser('exec', help='Replay one entry against the live server')
    exec_parser.add_argument('har_file', help='HAR file')
    exec_parser.add_argument('--index', type=int, required=True, help='0-based entry index')
    exec_parser.add_argument('--timeout', type=int, default=30, help='Request timeout in seconds (default: 30)')
    exec_parser.add_argument('--insecure', action='store_true', help='Skip TLS certificate verification')
    exec_parser.add_argument('-i', '--include', action='store_true', help='Print response headers')
    exec_parser.set_defaults(func=cmd_exec)

    serve_parser = subparsers.add_parser('serve', help='Start the HTTP API server')
    serve_parser.add_argument('--config', help='YAML config file')
    serve_parser.add_argument('--host', help='Host to bind to')
    serve_parser.add_argument('--port', type=int, help='Port to bind to')
    serve_parser.add_argument('--no-ai', action='store_true', help='Disable Claude disambiguation')
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[List[str]] = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format='%(asctime)s [%(levelname)s] %(name)s: %(message)s')

    if not getattr(args, 'func', None):
        parser.print_help()
        sys.exit(1)

    chunk_size = getattr(args, 'chunk_size', 0)
    if chunk_size < 0 or (args.command == 'find' and chunk_size == 0):
        parser.error('--chunk-size must be positive')

    args.func(args)


if __name__ == '__main__':
    main()
