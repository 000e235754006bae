# coding=utf-8
import logging

from kubernetes.client import ApiException

from pvmigrate_core import keys, pvc
from pvmigrate_core.exceptions import AllStrategiesExhaustedError, ConfigurationError, StrategyError
from pvmigrate_core.instance import MigrationInstance
from pvmigrate_core.models.migration import MigrationRequest, MigrationSummary, ResolvedRequest, StrategyOutcome
from pvmigrate_core.strategies import DEFAULT_STRATEGIES, STRATEGIES

logger = logging.getLogger(__name__)


class Engine:
    """Tries strategies one at a time, in order, until one of them succeeds."""

    def __init__(self, strategies=None, default_order=None, instance_factory=MigrationInstance):
        self.strategies = strategies if strategies is not None else STRATEGIES
        self.default_order = default_order if default_order is not None else DEFAULT_STRATEGIES
        self.instance_factory = instance_factory

    def build_candidates(self, names):
        names = list(names) if names else list(self.default_order)
        unknown = [n for n in names if n not in self.strategies]
        if unknown:
            raise ConfigurationError(
                f"unknown strategies: {', '.join(unknown)}, available: {', '.join(self.strategies)}")
        return [self.strategies[n]() for n in names]

    def resolve(self, request):
        ignore_mounted = request.options.ignore_mounted
        source = pvc.resolve(request.source, ignore_mounted=ignore_mounted)
        dest = pvc.resolve(request.dest, ignore_mounted=ignore_mounted)
        logger.debug(f"Resolved source {source} and destination {dest}")
        return ResolvedRequest(source=source, dest=dest, options=request.options)

    def run(self, request: MigrationRequest) -> MigrationSummary:
        # options are checked before anything is read from or written to a cluster
        candidates = self.build_candidates(request.options.strategies)
        keys.validate_algorithm(request.options.key_algorithm)

        resolved = self.resolve(request)

        instance = self.instance_factory()
        logger.info(f"Starting migration {instance.id}: {request.source} -> {request.dest}")
        outcomes = []
        try:
            for strategy in candidates:
                if not strategy.is_applicable(resolved):
                    logger.info(f"Strategy '{strategy.name}' is not applicable, skipping")
                    outcomes.append(StrategyOutcome(strategy.name, skipped=True))
                    continue

                logger.info(f"Trying strategy '{strategy.name}'")
                attempt = instance.new_attempt(strategy.name)
                try:
                    strategy.execute(attempt, resolved)
                except (StrategyError, ApiException) as e:
                    logger.warning(f"Strategy '{strategy.name}' failed: {e}")
                    outcomes.append(StrategyOutcome(strategy.name, error=e))
                    continue
                except Exception as e:
                    logger.exception(f"Strategy '{strategy.name}' failed unexpectedly")
                    outcomes.append(StrategyOutcome(strategy.name, error=e))
                    continue
                finally:
                    attempt.cleanup(timeout=request.options.deletion_timeout,
                                    interval=request.options.poll_interval)

                logger.info(f"Migration {instance.id} succeeded using strategy '{strategy.name}'")
                return MigrationSummary(instance_id=instance.id, strategy=strategy.name, outcomes=outcomes)
        finally:
            instance.cleanup()

        raise AllStrategiesExhaustedError(outcomes)


def run_migration(source, dest, options, engine=None):
    """The single entry point the command line calls."""
    engine = engine or Engine()
    return engine.run(MigrationRequest(source=source, dest=dest, options=options))
