#!/usr/bin/env python3
"""
Build a knowledge graph from a blog-post corpus.

Usage:
    python -m substack_kg.build_graph build posts.json
    python -m substack_kg.build_graph build ./posts --author "Jane Doe" --fresh
    python -m substack_kg.build_graph resume
    python -m substack_kg.build_graph status
    python -m substack_kg.build_graph discard

Ctrl-C stops after the current document, saves a checkpoint and writes the
partial graph.
"""

import argparse
import json
import logging
import signal
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

# Load environment variables FIRST
from dotenv import load_dotenv
load_dotenv()

from .config.settings import settings
from .extractors.document_extractor import DocumentExtractor
from .extractors.integration_verifier import IntegrationVerifier
from .extractors.llm_client import CredentialError, LLMClient
from .ingestion.document_loader import load_documents
from .knowledge_graph.graph_store import export_graph, get_graph_stats
from .pipeline.checkpoint import CheckpointStore
from .pipeline.processor import ProcessingPipeline
from .pipeline.state import ProcessingState, ProgressReport

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def log_progress(report: ProgressReport) -> None:
    eta = f", ~{report.remaining} remaining" if report.remaining else ""
    logger.info(
        f"📊 {report.processed}/{report.total} ({report.percent}%) | "
        f"{report.entities} entities, {report.concepts} concepts, "
        f"{report.relationships} relationships, {report.errors} errors | "
        f"elapsed {report.elapsed}{eta}"
    )


def write_graph(state: ProcessingState, output_dir: Path) -> Path:
    """Write the graph export as JSON and return its path"""
    output_dir.mkdir(parents=True, exist_ok=True)
    suffix = "" if state.status == "complete" else "_partial"
    output_file = output_dir / f"knowledge_graph{suffix}.json"

    with open(output_file, 'w') as f:
        json.dump(export_graph(state.graph), f, indent=2)

    logger.info(f"💾 Graph written to {output_file}")
    return output_file


def build_pipeline(args: argparse.Namespace, store: CheckpointStore) -> ProcessingPipeline:
    client = LLMClient(provider=args.provider)
    pipeline = ProcessingPipeline(
        extractor=DocumentExtractor(client),
        verifier=IntegrationVerifier(client),
        checkpoint_store=store,
        progress_callback=log_progress,
    )

    def handle_interrupt(signum, frame):
        logger.info("Interrupt received, stopping after the current document...")
        pipeline.stop()

    signal.signal(signal.SIGINT, handle_interrupt)
    return pipeline


def finish(pipeline: ProcessingPipeline, state: Optional[ProcessingState], output_dir: Path) -> int:
    if state is None:
        return 1

    if pipeline.export_ready:
        write_graph(state, output_dir)
    elif state.status == "paused":
        logger.info("Run paused. Continue with 'resume'.")

    stats = get_graph_stats(state.graph)
    logger.info(
        f"Graph: {stats['total_entities']} entities ({stats['major_entities']} major), "
        f"{stats['total_concepts']} concepts ({stats['major_concepts']} major), "
        f"{stats['total_relationships']} relationships"
    )
    if state.errors:
        logger.warning(f"{len(state.errors)} documents or integration rounds failed:")
        for error in state.errors:
            logger.warning(f"  [{error.stage}] {error.document_title}: {error.error}")
    return 0


def cmd_build(args: argparse.Namespace, store: CheckpointStore) -> int:
    if store.exists() and not args.fresh:
        logger.error(
            f"A saved run exists at {store.path}. Use 'resume', 'discard', or pass --fresh to start over."
        )
        return 1
    if store.exists():
        store.delete()

    documents = load_documents(args.corpus, min_words=args.min_words)
    if not documents:
        logger.error(f"No documents with content found in {args.corpus}")
        return 1

    pipeline = build_pipeline(args, store)
    state = pipeline.start(documents, author_name=args.author)
    return finish(pipeline, state, args.output_dir)


def cmd_resume(args: argparse.Namespace, store: CheckpointStore) -> int:
    if not store.exists():
        logger.error(f"No saved run found at {store.path}")
        return 1

    pipeline = build_pipeline(args, store)
    state = pipeline.resume()
    if state is None:
        logger.error("Saved run could not be loaded")
    return finish(pipeline, state, args.output_dir)


def cmd_status(args: argparse.Namespace, store: CheckpointStore) -> int:
    state = store.load()
    if state is None:
        print("No saved run.")
        return 0

    saved = datetime.fromtimestamp(state.paused_at).isoformat() if state.paused_at else "n/a"
    print(f"Status:       {state.status}")
    print(f"Progress:     {state.current_document_index}/{state.total_documents} documents")
    print(f"Last title:   {state.current_document_title or '-'}")
    print(f"Paused at:    {saved}")
    print(f"Entities:     {len(state.graph.entities)}")
    print(f"Concepts:     {len(state.graph.concepts)}")
    print(f"Relationships: {len(state.graph.relationships)}")
    print(f"Errors:       {len(state.errors)}")
    return 0


def cmd_discard(args: argparse.Namespace, store: CheckpointStore) -> int:
    if not store.exists():
        print("No saved run.")
        return 0
    store.delete()
    print("Saved run discarded.")
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Build a knowledge graph from a blog-post corpus")
    parser.add_argument(
        "--checkpoint-dir", type=Path, default=settings.checkpoint_dir,
        help="Directory for saved runs"
    )
    parser.add_argument(
        "--output-dir", type=Path, default=settings.output_dir,
        help="Directory for the exported graph"
    )
    parser.add_argument(
        "--provider", choices=["anthropic", "openai"], default=None,
        help="LLM provider (default: LLM_PROVIDER)"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser("build", help="Start a new run")
    build.add_argument("corpus", type=Path, help="JSON file or directory of Markdown/text posts")
    build.add_argument("--author", default=None, help="Author name recorded in graph metadata")
    build.add_argument("--min-words", type=int, default=0, help="Skip posts shorter than this")
    build.add_argument("--fresh", action="store_true", help="Discard any saved run first")

    subparsers.add_parser("resume", help="Continue a saved run")
    subparsers.add_parser("status", help="Show the saved run")
    subparsers.add_parser("discard", help="Delete the saved run")

    args = parser.parse_args(argv)
    store = CheckpointStore(args.checkpoint_dir)

    commands = {
        "build": cmd_build,
        "resume": cmd_resume,
        "status": cmd_status,
        "discard": cmd_discard,
    }

    try:
        return commands[args.command](args, store)
    except CredentialError as e:
        logger.error(f"❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
