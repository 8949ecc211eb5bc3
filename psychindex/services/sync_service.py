"""Content Synchronizer - JSON content tree -> entities mirror table.

The JSON tree stays the source of truth; the table is a queryable copy.
Runs are idempotent: rows are upserted on (type, slug) and carry no
per-run values, so syncing an unchanged tree twice leaves identical rows.
Rows for documents deleted from the tree are left in place.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from psychindex.content.normalizer import ContentValidationError, canonical_category, has_contract, normalize_resource
from psychindex.core.logging import get_logger
from psychindex.ingestion.base import FetchResult
from psychindex.ingestion.json_source import JsonTreeSource
from psychindex.ingestion.rules import determine_entity_type, extract_category
from psychindex.services.entity_store import EntityStore
from psychindex.services.sync_runs import SyncRunTracker

log = get_logger("sync_service")

# (report key, directory under DATA_DIR)
SYNC_JOBS: Sequence[Tuple[str, str]] = (
    ("treatments", "treatments"),
    ("conditions", "conditions"),
    ("resources", "resources"),
)
CONTENT_TYPES = tuple(name for name, _ in SYNC_JOBS)

DEFAULT_BATCH_SIZE = 50
DEFAULT_CONCURRENCY = 5


class RowNormalizationError(ValueError):
    """A document cannot be turned into an entity row."""


@dataclass
class SyncOptions:
    dry_run: bool = False
    type_filter: Optional[str] = None
    verbose: bool = False


@dataclass
class SyncStats:
    total: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    batches: int = 0
    failed_batches: int = 0
    error_details: List[Dict[str, str]] = field(default_factory=list)

    @property
    def synced(self) -> int:
        return self.created + self.updated

    def add_error(self, file: str, error: str, count: int = 1) -> None:
        self.errors += count
        self.error_details.append({"file": file, "error": error})


@dataclass
class SyncReport:
    dry_run: bool
    stats: Dict[str, SyncStats] = field(default_factory=dict)
    elapsed_seconds: float = 0.0

    @property
    def total_synced(self) -> int:
        return sum(s.synced for s in self.stats.values())

    @property
    def total_errors(self) -> int:
        return sum(s.errors for s in self.stats.values())

    @property
    def exit_code(self) -> int:
        return 1 if self.total_errors > 0 else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.total_errors == 0,
            "dry_run": self.dry_run,
            "elapsed_seconds": round(self.elapsed_seconds, 3),
            "total_synced": self.total_synced,
            "total_errors": self.total_errors,
            "stats": {name: {**asdict(s), "synced": s.synced} for name, s in self.stats.items()},
        }


def _relative(path: Path, base: Path) -> str:
    try:
        return Path(path).resolve().relative_to(Path(base).resolve().parent).as_posix()
    except ValueError:
        return Path(path).as_posix()


def build_entity_row(
    path: Path,
    content: Dict[str, Any],
    data_dir: Path,
    validate_resources: bool = True,
) -> Dict[str, Any]:
    """Flatten one source document into an ``entities`` row.

    Raises RowNormalizationError for a missing slug, missing name/title,
    an underivable category, or a resource failing its shape contract.
    """
    entity_type = determine_entity_type(path, content)
    category = extract_category(path, data_dir)

    if not content.get("slug"):
        raise RowNormalizationError("Missing required field: slug")
    if not content.get("name") and not content.get("title"):
        raise RowNormalizationError("Missing required field: name or title")

    source_metadata = content.get("metadata") if isinstance(content.get("metadata"), dict) else {}
    metadata: Dict[str, Any] = {
        "category": category or content.get("category") or source_metadata.get("category"),
        "file_path": _relative(path, data_dir),
    }
    metadata.update(source_metadata)
    metadata["source"] = "json-file"

    if not metadata.get("category"):
        raise RowNormalizationError("Missing category: not in document and file is not inside a category directory")

    if entity_type == "medication" and content.get("brand_names"):
        metadata["brand_names"] = content["brand_names"]

    if entity_type == "condition":
        if content.get("dsm5_code"):
            metadata["dsm5_code"] = content["dsm5_code"]
        if content.get("icd10_code"):
            metadata["icd10_code"] = content["icd10_code"]

    if entity_type == "resource":
        metadata["category"] = canonical_category(metadata["category"])
        if content.get("pillar"):
            metadata["pillar"] = content["pillar"]
        if validate_resources and has_contract(metadata["category"]):
            try:
                normalize_resource(content, category_hint=canonical_category(category), file_path=str(path))
            except ContentValidationError as exc:
                raise RowNormalizationError(str(exc)) from exc

    return {
        "slug": content["slug"],
        "type": entity_type,
        "title": content.get("name") or content.get("title"),
        "description": content.get("description") or content.get("summary") or None,
        "content": content,
        "metadata": metadata,
        "status": content.get("status") or "active",
    }


def chunk(rows: List[Dict[str, Any]], size: int) -> List[List[Dict[str, Any]]]:
    return [rows[i : i + size] for i in range(0, len(rows), size)]


class ContentSyncService:
    """Walks the content tree, normalizes documents and batch-upserts them.

    Responsibilities:
    - Read every JSON document per content type (treatments, conditions, resources)
    - Normalize to entity rows, collecting per-file errors without aborting
    - Upsert in fixed-size batches with bounded concurrency
    - Report per-type statistics
    """

    def __init__(
        self,
        store: Optional[EntityStore],
        data_dir: Path,
        batch_size: int = DEFAULT_BATCH_SIZE,
        concurrency: int = DEFAULT_CONCURRENCY,
        tracker: Optional[SyncRunTracker] = None,
    ):
        self.store = store
        self.data_dir = Path(data_dir)
        self.batch_size = batch_size
        self.concurrency = concurrency
        self.tracker = tracker

    async def sync(self, options: Optional[SyncOptions] = None) -> SyncReport:
        options = options or SyncOptions()
        jobs = [job for job in SYNC_JOBS if not options.type_filter or job[0] == options.type_filter]
        if not jobs:
            raise ValueError(f"Unknown type: {options.type_filter}. Valid types: {', '.join(CONTENT_TYPES)}")
        if not options.dry_run and self.store is None:
            raise ValueError("An entity store is required unless running in dry-run mode")

        report = SyncReport(dry_run=options.dry_run)
        start = time.perf_counter()

        # Content types run one after another; batches within a type run concurrently.
        for name, directory in jobs:
            report.stats[name] = await self.sync_content_type(name, self.data_dir / directory, options)

        report.elapsed_seconds = time.perf_counter() - start
        log.info(
            f"Sync finished | synced={report.total_synced} errors={report.total_errors} "
            f"elapsed={report.elapsed_seconds:.2f}s dry_run={options.dry_run}"
        )
        return report

    async def sync_content_type(self, name: str, directory: Path, options: SyncOptions) -> SyncStats:
        log.info(f"Syncing {name} from {directory}")
        run = self.tracker.start(name, options.dry_run) if self.tracker else None
        stats = SyncStats()

        try:
            fetched = await JsonTreeSource(name, directory).fetch()
            rows = self._normalize(fetched, stats, options.verbose)
            if rows:
                await self._dispatch(rows, name, stats, options)
            elif stats.total:
                log.warning(f"No valid {name} to sync")
        except Exception as exc:
            if run is not None:
                self.tracker.fail(run, stats, str(exc))
            raise

        if run is not None:
            self.tracker.finish(run, stats)
        log.info(f"Completed {name}: {stats.synced} synced, {stats.skipped} skipped, {stats.errors} errors")
        return stats

    def _normalize(self, fetched: FetchResult, stats: SyncStats, verbose: bool) -> List[Dict[str, Any]]:
        stats.total = fetched.total
        for err in fetched.errors:
            stats.add_error(_relative(err.path, self.data_dir), err.error)

        # One row per (type, slug); a single upsert statement cannot touch the same key twice
        rows: Dict[Tuple[str, str], Dict[str, Any]] = {}
        for document in fetched.documents:
            if not isinstance(document.payload, dict) or not document.payload:
                stats.skipped += 1
                log.warning(f"Skipping empty or non-object document: {document.path}")
                continue
            try:
                row = build_entity_row(document.path, document.payload, self.data_dir)
            except RowNormalizationError as exc:
                stats.add_error(_relative(document.path, self.data_dir), str(exc))
                if verbose:
                    log.error(f"Failed to normalize {document.path}: {exc}")
                continue

            key = (row["type"], row["slug"])
            if key in rows:
                stats.skipped += 1
                log.warning(f"Duplicate {key[0]} '{key[1]}' in {document.path} replaces {rows[key]['metadata'].get('file_path')}")
            rows[key] = row
        return list(rows.values())

    async def _dispatch(self, rows: List[Dict[str, Any]], name: str, stats: SyncStats, options: SyncOptions) -> None:
        batches = chunk(rows, self.batch_size)
        stats.batches = len(batches)
        semaphore = asyncio.Semaphore(self.concurrency)
        log.info(f"Processing {len(batches)} {name} batches ({self.batch_size} per batch)")

        async def run_batch(index: int, batch: List[Dict[str, Any]]) -> None:
            async with semaphore:
                if options.dry_run:
                    log.info(f"[DRY RUN] Would upsert {len(batch)} {name}")
                    stats.created += len(batch)
                    return
                try:
                    outcome = await self.store.upsert_entities(batch)
                except Exception as exc:  # noqa: BLE001
                    log.error(f"Batch {index + 1} of {name} failed ({len(batch)} records): {exc}")
                    stats.failed_batches += 1
                    stats.add_error(f"{name} batch {index + 1}", str(exc), count=len(batch))
                    return
                stats.created += outcome.created
                stats.updated += outcome.updated
                if options.verbose:
                    log.info(f"Upserted batch {index + 1}/{len(batches)} of {name} ({len(batch)} records)")

        await asyncio.gather(*(run_batch(i, batch) for i, batch in enumerate(batches)))
