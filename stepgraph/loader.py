"""Loading case studies from JSON record files."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .errors import DataLoadError, RecordError
from .models import CaseStudy, Document, Edge, Node, Step

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

logger = logging.getLogger(__name__)

BUNDLED_DATASET = "bell_labs"


@dataclass
class RetryPolicy:
    """How often and how patiently to retry a failing read."""

    attempts: int = 3
    base_delay: float = 1.0
    backoff: float = 2.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError(f"attempts must be at least 1, got {self.attempts}")
        if self.base_delay < 0 or self.backoff < 1:
            raise ValueError("base_delay must be >= 0 and backoff >= 1")

    def delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return self.base_delay * self.backoff ** (attempt - 1)


def _read_json(path: Path, retry: RetryPolicy, sleep: Callable[[float], None]) -> Any:
    last_error: Exception | None = None
    for attempt in range(1, retry.attempts + 1):
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            last_error = e
            logger.warning("Attempt %d/%d to load %s failed: %s", attempt, retry.attempts, path, e)
            if attempt < retry.attempts:
                sleep(retry.delay(attempt))
    raise DataLoadError(str(path), retry.attempts, last_error)


def load_json_records(
    path: str | Path,
    retry: RetryPolicy | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> list[dict[str, Any]]:
    """Read a JSON array of records.

    Failed reads are retried with exponential backoff. Once every attempt
    has failed the error is logged and an empty list comes back; a payload
    that is not a list is treated the same way.
    """
    path = Path(path)
    retry = retry or RetryPolicy()
    try:
        payload = _read_json(path, retry, sleep)
    except DataLoadError as e:
        logger.error("%s", e)
        return []

    if not isinstance(payload, list):
        logger.error("Expected a list of records in %s, got %s", path, type(payload).__name__)
        return []
    logger.info("Loaded %d records from %s", len(payload), path.name)
    return payload


def _convert(factory: Callable[[Any], Any], records: Iterable[Any]) -> list[Any]:
    converted = []
    for record in records:
        try:
            converted.append(factory(record))
        except RecordError as e:
            logger.warning("Skipping record: %s", e)
    return converted


def case_study_from_records(
    nodes: Iterable[Any],
    edges: Iterable[Any],
    steps: Iterable[Any],
    documents: Iterable[Any] = (),
    name: str = "case study",
) -> CaseStudy:
    """Build and validate a case study from raw JSON records.

    Malformed records are skipped with a warning; dangling references are
    reported by ``CaseStudy.validate`` but kept.
    """
    study = CaseStudy.from_entities(
        _convert(Node.from_record, nodes),
        _convert(Edge.from_record, edges),
        _convert(Step.from_record, steps),
        _convert(Document.from_record, documents),
        name=name,
    )
    study.validate()
    return study


def load_case_study(
    directory: str | Path,
    retry: RetryPolicy | None = None,
    sleep: Callable[[float], None] = time.sleep,
    fallback: bool = True,
) -> CaseStudy:
    """Load ``nodes.json``, ``edges.json``, ``steps.json`` and ``documents.json``.

    ``documents.json`` is optional. When no nodes could be loaded and
    ``fallback`` is set, the bundled case study is returned instead.
    """
    directory = Path(directory)
    logger.info("Loading case study from %s", directory)

    nodes = load_json_records(directory / "nodes.json", retry, sleep)
    edges = load_json_records(directory / "edges.json", retry, sleep)
    steps = load_json_records(directory / "steps.json", retry, sleep)

    documents_path = directory / "documents.json"
    documents = load_json_records(documents_path, retry, sleep) if documents_path.exists() else []

    study = case_study_from_records(nodes, edges, steps, documents, name=directory.name)
    if not study.nodes and fallback:
        logger.warning("No nodes loaded from %s; falling back to the bundled case study", directory)
        return load_bundled_case_study()
    return study


def load_bundled_case_study() -> CaseStudy:
    """The Bell Labs case study shipped with the package."""
    from importlib.resources import files

    base = files("stepgraph").joinpath("data").joinpath(BUNDLED_DATASET)

    def records(filename: str) -> list[Any]:
        return json.loads(base.joinpath(filename).read_text(encoding="utf-8"))

    return case_study_from_records(
        records("nodes.json"),
        records("edges.json"),
        records("steps.json"),
        name=BUNDLED_DATASET,
    )
