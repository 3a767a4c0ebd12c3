"""filehub - De-duplicated, tagged and semantically searchable file catalog."""

__version__ = "0.1.0"

from filehub._core import FileHub
from filehub.config import FileHubConfig
from filehub.db import Database
from filehub.errors import (
    ExtractionFailed,
    FileHubError,
    IndexingFailed,
    InvalidTransition,
    NotFound,
    SearchDegraded,
    StorageError,
    TaggingFailed,
)
from filehub.models.job import JobStatus
from filehub.providers.embedding import EmbeddingProvider
from filehub.providers.llm import LLMProvider
from filehub.providers.local_embedding import LocalHashEmbedding
from filehub.providers.openai_embedding import OpenAIEmbedding
from filehub.providers.openai_llm import OpenAILLM
from filehub.result import Err, Issue, Issues, Ok, Result
from filehub.services.catalog import FileFilters
from filehub.services.ingestion import BulkOutcome, FileDraft
from filehub.services.search import SearchHit
from filehub.services.tagging import LLMTagger, LocalTagger, Tagger
from filehub.storage.base import ObjectStorage
from filehub.storage.s3 import S3Storage

__all__ = [
    "FileHub",
    "FileHubConfig",
    "Database",
    "FileHubError",
    "NotFound",
    "StorageError",
    "ExtractionFailed",
    "TaggingFailed",
    "IndexingFailed",
    "SearchDegraded",
    "InvalidTransition",
    "JobStatus",
    "EmbeddingProvider",
    "LLMProvider",
    "LocalHashEmbedding",
    "OpenAIEmbedding",
    "OpenAILLM",
    "Result",
    "Issue",
    "Issues",
    "Ok",
    "Err",
    "FileFilters",
    "FileDraft",
    "BulkOutcome",
    "SearchHit",
    "Tagger",
    "LocalTagger",
    "LLMTagger",
    "ObjectStorage",
    "S3Storage",
]
