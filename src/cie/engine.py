"""Engine facade wiring the components together."""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any

from .classification import ContentClassifier
from .config import load_config, load_vocabulary
from .errors import AnalysisError
from .extraction import TextFeatureExtractor
from .extraction.backends import NlpBackend
from .graph import KnowledgeGraph
from .models import (
    AnalysisResult,
    ContentRecord,
    GeneratedTask,
    GraphStructure,
    RankedResult,
    SearchFilters,
    SearchSuggestion,
    SemanticTag,
)
from .search import SearchEngine, SearchIndex
from .search.index import RecordSource
from .tagging import SemanticTagger
from .tasks import TaskGenerator

logger = logging.getLogger(__name__)


@dataclass
class IngestReport:
    """Outcome of running the full pipeline over a batch."""
    analyses: dict[str, AnalysisResult] = field(default_factory=dict)
    tags: dict[str, list[SemanticTag]] = field(default_factory=dict)
    failed: list[str] = field(default_factory=list)
    graph: GraphStructure | None = None


class ContentIntelligenceEngine:
    """Entry point for the capture/storage layer.

    Components are passed in explicitly; from_config() builds a standard set.
    """

    def __init__(
        self,
        extractor: TextFeatureExtractor,
        classifier: ContentClassifier,
        tagger: SemanticTagger,
        graph: KnowledgeGraph,
        index: SearchIndex,
        search_engine: SearchEngine,
        task_generator: TaskGenerator,
    ):
        self.extractor = extractor
        self.classifier = classifier
        self.tagger = tagger
        self.graph = graph
        self.index = index
        self.search_engine = search_engine
        self.task_generator = task_generator

    @classmethod
    def from_config(
        cls,
        config: dict[str, Any] | None = None,
        vocabulary: dict[str, Any] | None = None,
        record_source: RecordSource | None = None,
        backend: NlpBackend | None = None,
    ) -> "ContentIntelligenceEngine":
        config = config or load_config()
        vocabulary = vocabulary or load_vocabulary()

        extractor = TextFeatureExtractor(config, backend=backend)
        classifier = ContentClassifier(vocabulary)
        tagger = SemanticTagger(config, vocabulary, extractor=extractor, classifier=classifier)
        graph = KnowledgeGraph(config)
        index = SearchIndex(extractor=extractor, record_source=record_source)
        search_engine = SearchEngine(index, extractor=extractor, tagger=tagger, graph=graph, config=config)
        task_generator = TaskGenerator(config, extractor=extractor, classifier=classifier)
        return cls(extractor, classifier, tagger, graph, index, search_engine, task_generator)

    def analyze(self, record: ContentRecord) -> AnalysisResult:
        """Extract features and classify a record.

        Raises:
            AnalysisError: if the NLP backend cannot process the text.
        """
        analysis = self.extractor.analyze(record.body, record.type, record.ocr_text)
        analysis.content_id = record.id
        analysis.category = self.classifier.classify(record, analysis)
        logger.info(
            f"Analyzed {record.id}: {analysis.category.value}, "
            f"{len(analysis.keywords)} keywords, priority {analysis.priority.value}"
        )
        return analysis

    def tag(self, record: ContentRecord, analysis: AnalysisResult | None = None) -> list[SemanticTag]:
        if analysis is None:
            return self.tagger.tag_record(record)
        return self.tagger.tag(record, analysis)

    def insert_into_graph(
        self,
        records: list[ContentRecord],
        analyses: dict[str, AnalysisResult] | None = None,
        cancel: threading.Event | None = None,
    ) -> GraphStructure:
        return self.graph.insert_batch(records, analyses=analyses, cancel=cancel)

    def search(self, query: str, filters: SearchFilters | dict | None = None) -> list[RankedResult]:
        return self.search_engine.search(query, filters)

    def suggest(self, partial: str) -> list[SearchSuggestion]:
        return self.search_engine.suggest(partial)

    def generate_tasks(self, record: ContentRecord, analysis: AnalysisResult | None = None) -> list[GeneratedTask]:
        if analysis is None:
            return self.task_generator.generate_for_record(record)
        return self.task_generator.generate(record, analysis)

    def ingest(self, records: list[ContentRecord], cancel: threading.Event | None = None) -> IngestReport:
        """Analyze, tag, then insert into the graph and the index concurrently.

        Raises:
            GraphIntegrityError: before any component changes, if an id is
                repeated in the batch or already in the graph.
        """
        self.graph.check_new_ids([r.id for r in records])
        report = IngestReport()
        for record in records:
            try:
                analysis = self.analyze(record)
            except AnalysisError as e:
                logger.warning(f"Analysis failed for {record.id}, using fallback tags: {e}")
                report.failed.append(record.id)
                tags = self.tagger.fallback_tags(record)
            else:
                report.analyses[record.id] = analysis
                tags = self.tagger.tag(record, analysis)
            self.tagger.apply_tags(record.id, tags)
            report.tags[record.id] = tags

        def index_all():
            for record in records:
                self.index.upsert(
                    record.id, record,
                    analysis=report.analyses.get(record.id),
                    tags=report.tags[record.id],
                )

        with ThreadPoolExecutor(max_workers=2) as pool:
            graph_future = pool.submit(self.graph.insert_batch, records, report.analyses, cancel)
            index_future = pool.submit(index_all)
            report.graph = graph_future.result()
            index_future.result()

        logger.info(
            f"Ingested {len(records)} records ({len(report.failed)} without analysis), "
            f"{len(report.graph.connections)} new connections"
        )
        return report

    def remove(self, content_id: str) -> None:
        """Purge a record from the index, the graph and the applied tags."""
        self.index.remove(content_id)
        if content_id in self.graph:
            self.graph.remove(content_id)
        self.tagger.forget(content_id)
