#!/usr/bin/env python3
"""
Index regulatory (labor law) articles into the vector store.

Usage:
    python scripts/index_regulations.py [path/to/articles.json]

Articles are upserted by id, so re-running the script refreshes them in place.
"""
import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Make the project root importable when run as a script
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from config import settings
from infrastructure.vector_stores import ChromaRegulationIndex
from services.factory import get_chroma_client, get_embedding_service
from services.logger_config import setup_logging
from services.regulation_indexer import RegulationIndexer, load_articles

logger = logging.getLogger(settings.LOGGER_NAME)


async def run(path: Path) -> None:
    articles = load_articles(path)
    logger.info(f"Loaded {len(articles)} article(s) from {path}")

    indexer = RegulationIndexer(
        get_embedding_service(settings),
        ChromaRegulationIndex(get_chroma_client(settings), settings.REGULATION_COLLECTION_NAME),
    )
    written = await indexer.index(articles)
    logger.info(f"Regulation index now holds {await indexer.regulation_index.count()} entries "
                f"({', '.join(f'{lang.value}={n}' for lang, n in written.items())})")


def main():
    parser = argparse.ArgumentParser(description="Index labor law articles")
    parser.add_argument(
        "path",
        nargs="?",
        default=str(project_root / "data" / "labor_law_articles.json"),
        help="JSON array of bilingual articles"
    )
    args = parser.parse_args()
    setup_logging()

    try:
        asyncio.run(run(Path(args.path)))
    except Exception as e:
        logger.error(f"Indexing failed: {type(e).__name__}: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
