"""
Document Ingestion Script for Legal Eagle.

This script:
1. Finds every PDF in a directory
2. Extracts its text
3. Segments it into articles (or fixed-size parts)
4. Saves the sections to the Supabase document library

Usage:
    python ingest_documents.py [docs_directory]
"""
import sys
import logging
from pathlib import Path
from typing import Dict

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from services.document_loader import DocumentLoader
from services.chunking_engine import ChunkingEngine
from services.document_library import DocumentLibrary
from config import LOG_LEVEL
from logger import setup_logging

logger = logging.getLogger(__name__)


def ingest_directory(
    docs_directory: str,
    document_loader: DocumentLoader,
    chunking_engine: ChunkingEngine,
    document_library: DocumentLibrary
) -> Dict[str, int]:
    """
    Segment every PDF in a directory and save it to the library.

    Files that can't be read are logged and skipped.

    Args:
        docs_directory: Directory containing PDF files
        document_loader: Text extraction service
        chunking_engine: Segmentation service
        document_library: Library the documents are saved to

    Returns:
        Mapping of filename to number of sections saved
    """
    ingested: Dict[str, int] = {}

    for filepath in document_loader.list_pdfs(docs_directory):
        file_name = Path(filepath).name
        try:
            text = document_loader.extract_file(filepath)
        except (OSError, ValueError) as e:
            logger.error(f"Skipping {file_name}: {str(e)}")
            continue

        chunks = chunking_engine.segment(text)
        if not chunks:
            logger.warning(f"No text extracted from {file_name}, saving it with no sections")

        document_library.save_document(file_name, chunks)
        ingested[file_name] = len(chunks)
        logger.info(f"  ✓ {file_name}: {len(chunks)} sections")

    return ingested


def main():
    """Main ingestion process."""
    setup_logging(LOG_LEVEL)

    docs_directory = sys.argv[1] if len(sys.argv) > 1 else str(Path(__file__).parent.parent / "docs")

    try:
        logger.info("Starting Legal Eagle document ingestion")

        ingested = ingest_directory(
            docs_directory,
            document_loader=DocumentLoader(),
            chunking_engine=ChunkingEngine(),
            document_library=DocumentLibrary()
        )

        if not ingested:
            logger.error(f"No documents ingested! Check that {docs_directory} exists and contains PDFs")
            sys.exit(1)

        logger.info(
            f"Ingestion complete: {len(ingested)} documents, "
            f"{sum(ingested.values())} sections"
        )

    except KeyboardInterrupt:
        logger.warning("Ingestion interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Ingestion failed: {str(e)}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
