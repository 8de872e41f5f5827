"""Document engine wiring.

Assembles the binary store, path resolver, isolation guard and audit runner
over one unit of work, from explicit arguments or from the environment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from dealdocs.audit.runner import AuditRunner
from dealdocs.config import EngineConfig
from dealdocs.isolation.guard import DealIsolationGuard
from dealdocs.persistence.unit_of_work import (
    InMemoryUnitOfWork,
    SqlUnitOfWork,
    get_unit_of_work,
)
from dealdocs.resolution.resolver import PathResolver
from dealdocs.storage.binary_store import BinaryStore
from dealdocs.storage.validation import PayloadRules

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentEngine:
    """The assembled engine components sharing one unit of work."""

    config: EngineConfig
    uow: SqlUnitOfWork | InMemoryUnitOfWork
    resolver: PathResolver
    guard: DealIsolationGuard
    store: BinaryStore

    @classmethod
    def build(
        cls,
        config: EngineConfig,
        uow: SqlUnitOfWork | InMemoryUnitOfWork,
    ) -> DocumentEngine:
        """Assemble the engine from a configuration and a unit of work."""
        resolver = PathResolver.from_config(config)
        guard = DealIsolationGuard(uow)
        store = BinaryStore(uow, resolver, guard, rules=PayloadRules.from_config(config))
        return cls(config=config, uow=uow, resolver=resolver, guard=guard, store=store)

    @classmethod
    def from_env(cls) -> DocumentEngine:
        """Assemble the engine from environment variables.

        Raises:
            ConfigError: If a configuration value is invalid.
        """
        config = EngineConfig.from_env()
        engine = cls.build(config, get_unit_of_work())
        logger.info(
            "Document engine ready (%s, %d search roots)",
            type(engine.uow).__name__,
            len(engine.resolver.search_roots),
        )
        return engine

    def audit_runner(self, workers: int | None = None) -> AuditRunner:
        """Create an audit runner; workers defaults to the configured pool size."""
        return AuditRunner(
            self.uow,
            self.store,
            self.resolver,
            workers=workers if workers is not None else self.config.audit_workers,
        )
