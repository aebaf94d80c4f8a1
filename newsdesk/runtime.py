"""Wire stores, services and job handlers together from configuration."""

import logging
from typing import Dict, List, Optional, Union

from .batch import BatchProcessor, CleanContentOperation, SyncOperation, WordCountOperation
from .batch.processor import ProgressCallback
from .config import Config, SourceConfig, load_sources
from .db import MemoryStore, PostgresStore
from .dedup import DeduplicationIndex
from .ingestion import (
    CandidateSource,
    FeedSource,
    IngestCandidateOperation,
    SearchPromptSource,
    WordPressClient,
)
from .jobs import BackfillHandler, JobHandler, JobRegistry, JobScheduler, NewsImportHandler
from .workflow import WorkflowStateMachine

logger = logging.getLogger(__name__)

Store = Union[PostgresStore, MemoryStore]


class Runtime:
    """Everything a command needs, built from one :class:`Config`.

    Use as an async context manager; a Postgres pool opened on entry is
    closed on exit. Passing ``store`` skips the database entirely.
    """

    def __init__(
        self,
        config: Config,
        store: Optional[Store] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.config = config
        self.store = store
        self._owns_store = store is None
        self.on_progress = on_progress

    async def __aenter__(self) -> "Runtime":
        if self.store is None:
            self.store = await PostgresStore.connect(self.config.get_db_config())
        self._build()
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._owns_store and isinstance(self.store, PostgresStore):
            await self.store.close()

    def _build(self) -> None:
        settings = self.config.config
        batch = settings.batch

        self.dedup = DeduplicationIndex(self.store)
        self.processor = BatchProcessor(on_progress=self.on_progress)
        self.workflow = WorkflowStateMachine(self.store)
        self.wordpress = self._wordpress_client()
        self.sources = self._candidate_sources()

        self.operations = {
            "word-count": WordCountOperation(self.store, batch_size=batch.word_count),
            "clean-content": CleanContentOperation(
                self.store, dedup=self.dedup, batch_size=batch.clean_content
            ),
        }
        if self.wordpress is not None:
            self.operations["sync"] = SyncOperation(
                self.store,
                self.wordpress.fetch_post_content,
                dedup=self.dedup,
                batch_size=batch.sync,
            )

        handlers: Dict[str, JobHandler] = {
            "news_import": NewsImportHandler(
                self.store,
                self.dedup,
                self.processor,
                self.sources,
                default_source="search" if "search" in self.sources else "feeds",
                batch_size=batch.ingest,
            ),
            "word_count_backfill": BackfillHandler(
                "word_count_backfill", self.store, self.processor, self.operations["word-count"]
            ),
            "clean_content_backfill": BackfillHandler(
                "clean_content_backfill", self.store, self.processor, self.operations["clean-content"]
            ),
        }
        if "sync" in self.operations:
            handlers["wordpress_sync"] = BackfillHandler(
                "wordpress_sync", self.store, self.processor, self.operations["sync"]
            )

        self.registry = JobRegistry(self.store, handlers)
        self.scheduler = JobScheduler(self.registry, settings.scheduler.timezone)

    def _wordpress_client(self) -> Optional[WordPressClient]:
        wp = self.config.config.wordpress
        if not wp.base_url:
            return None
        return WordPressClient(
            wp.base_url,
            auth=self.config.get_wordpress_auth(),
            timeout=wp.timeout,
            per_page=wp.per_page,
        )

    def _feed_sources(self) -> List[SourceConfig]:
        if not self.config.sources_path.exists():
            return []
        return load_sources(self.config.sources_path)

    def _candidate_sources(self) -> Dict[str, CandidateSource]:
        sources: Dict[str, CandidateSource] = {"feeds": FeedSource(self._feed_sources())}

        ingestion = self.config.get_ingestion_config()
        if ingestion.get("api_key"):
            sources["search"] = SearchPromptSource(
                ingestion["api_key"],
                base_url=ingestion["base_url"],
                model=ingestion["model"],
                timeout=ingestion["timeout"],
                prompts=self.store,
            )
        else:
            logger.debug("No search API key configured; search imports disabled")

        if self.wordpress is not None:
            sources["wordpress"] = self.wordpress
        return sources

    def ingest_operation(self, min_score: Optional[float] = None) -> IngestCandidateOperation:
        settings = self.config.config
        return IngestCandidateOperation(
            self.store,
            self.dedup,
            min_score=settings.ingestion.min_score if min_score is None else min_score,
            batch_size=settings.batch.ingest,
        )
