"""Document library that persists segmented documents in Supabase."""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from supabase import create_client, Client

from models.chunk import Chunk
from config import SUPABASE_URL, SUPABASE_KEY, DOCUMENTS_TABLE

logger = logging.getLogger(__name__)


class DocumentLibrary:
    """
    Stores each document's chunk sequence under its filename.

    Saving a filename that already exists replaces the stored chunks
    entirely, so two different files uploaded under the same name collide.
    """

    def __init__(
        self,
        supabase_url: Optional[str] = SUPABASE_URL,
        supabase_key: Optional[str] = SUPABASE_KEY,
        table_name: str = DOCUMENTS_TABLE
    ):
        """
        Initialize the library with a Supabase client.

        Args:
            supabase_url: Supabase project URL
            supabase_key: Supabase API key
            table_name: Table holding one row per document

        Raises:
            ValueError: If Supabase credentials are missing
        """
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set in environment variables")

        self.table_name = table_name
        self.client: Client = create_client(supabase_url, supabase_key)
        logger.info(f"DocumentLibrary initialized with table: {table_name}")

    def save_document(self, file_name: str, chunks: Sequence[Chunk]) -> None:
        """
        Save a document's chunks, replacing any previous version.

        Args:
            file_name: Name the document was uploaded under
            chunks: Full chunk sequence in document order

        Raises:
            ValueError: If the filename is empty
        """
        if not file_name:
            raise ValueError("file_name cannot be empty")

        record = {
            "file_name": file_name,
            "chunks": [chunk.to_dict() for chunk in chunks],
            "updated_at": datetime.now(timezone.utc).isoformat()
        }

        try:
            self.client.table(self.table_name).upsert(record, on_conflict="file_name").execute()
            logger.info(f"Saved document {file_name!r} with {len(chunks)} chunks")
        except Exception as e:
            logger.error(f"Error saving document {file_name!r}: {e}")
            raise

    def delete_document(self, file_name: str) -> None:
        """
        Remove a document from the library. Unknown filenames are ignored.

        Args:
            file_name: Name of the document to delete
        """
        try:
            self.client.table(self.table_name).delete().eq("file_name", file_name).execute()
            logger.info(f"Deleted document {file_name!r}")
        except Exception as e:
            logger.error(f"Error deleting document {file_name!r}: {e}")
            raise

    def get_saved_documents(self) -> Dict[str, List[Chunk]]:
        """
        Load every saved document.

        Returns:
            Mapping of filename to chunk sequence, empty if the library can't be read
        """
        try:
            result = self.client.table(self.table_name).select("file_name, chunks").order("file_name").execute()
        except Exception as e:
            logger.error(f"Error retrieving saved documents: {e}")
            return {}

        documents = {
            row["file_name"]: self._parse_chunks(row.get("chunks"))
            for row in (result.data or [])
        }
        logger.debug(f"Loaded {len(documents)} documents from library")
        return documents

    def get_document(self, file_name: str) -> Optional[List[Chunk]]:
        """
        Load a single document.

        Args:
            file_name: Name of the document

        Returns:
            The document's chunks, or None if it is not in the library
        """
        try:
            result = (
                self.client.table(self.table_name)
                .select("file_name, chunks")
                .eq("file_name", file_name)
                .execute()
            )
        except Exception as e:
            logger.error(f"Error retrieving document {file_name!r}: {e}")
            return None

        if not result.data:
            return None
        return self._parse_chunks(result.data[0].get("chunks"))

    @staticmethod
    def _parse_chunks(raw_chunks) -> List[Chunk]:
        return [Chunk.from_dict(item) for item in (raw_chunks or [])]
