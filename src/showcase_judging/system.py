"""Wiring for the judging services."""

from __future__ import annotations

import structlog
from sqlalchemy import Engine

from showcase_judging.core.clock import Clock
from showcase_judging.core.config import JudgingConfig
from showcase_judging.services.aggregation import AggregationEngine
from showcase_judging.services.collaborators import (
    AlertSink,
    ContentCatalog,
    InMemoryContentCatalog,
    LoggingAlertSink,
    NotesCounter,
)
from showcase_judging.services.criteria import CriteriaCatalog
from showcase_judging.services.export import ScoreExporter
from showcase_judging.services.groups import GroupAccessControl
from showcase_judging.services.judges import JudgeRegistry
from showcase_judging.services.notes import NotesService
from showcase_judging.services.scores import ScoreStore
from showcase_judging.services.status import SubmissionStatusTracker
from showcase_judging.services.storage import create_db_engine
from showcase_judging.services.submissions import SubmissionRegistry

logger = structlog.get_logger()


class JudgingSystem:
    """All judging components sharing one engine, catalog and clock."""

    def __init__(
        self,
        config: JudgingConfig,
        engine: Engine,
        catalog: ContentCatalog,
        alerts: AlertSink,
        clock: Clock | None = None,
        notes_counter: NotesCounter | None = None,
    ) -> None:
        """Initialize the system.

        Args:
            config: Judging configuration.
            engine: SQLAlchemy engine with tables created.
            catalog: Content lookup for story titles, slugs and owners.
            alerts: Sink for "judged" notifications.
            clock: Time source; defaults to UTC now.
            notes_counter: Note counts for judge rollups; defaults to the
                database-backed notes service.
        """
        self.config = config
        self.engine = engine
        self.catalog = catalog
        self.alerts = alerts

        self.groups = GroupAccessControl(engine, config, catalog, clock)
        self.judges = JudgeRegistry(engine, config, catalog, clock)
        self.criteria = CriteriaCatalog(engine, clock)
        self.status = SubmissionStatusTracker(engine, catalog, alerts, clock)
        self.scores = ScoreStore(engine, config, catalog, self.status, clock)
        self.submissions = SubmissionRegistry(engine, config, catalog, clock)
        self.notes = NotesService(engine, clock)
        self.aggregation = AggregationEngine(
            engine, config, catalog, notes_counter or self.notes, clock
        )
        self.exporter = ScoreExporter(engine, catalog, clock)

    def close(self) -> None:
        self.engine.dispose()


def create_system(
    config: JudgingConfig | None = None,
    catalog: ContentCatalog | None = None,
    alerts: AlertSink | None = None,
    clock: Clock | None = None,
) -> JudgingSystem:
    """Build a system on the configured database URL."""
    config = config or JudgingConfig()
    engine = create_db_engine(config.get_database_url())
    system = JudgingSystem(
        config,
        engine,
        catalog if catalog is not None else InMemoryContentCatalog(),
        alerts if alerts is not None else LoggingAlertSink(),
        clock,
    )
    logger.debug("system_ready", database=engine.url.get_backend_name())
    return system
