class MigrationError(Exception):
    def __init__(self, message):
        self.message = message
        super().__init__(message)


class ResolutionError(MigrationError):
    """A volume could not be located or is in a state no strategy can handle."""


class ConfigurationError(MigrationError):
    """Invalid options, detected before any cluster object is touched."""


class StrategyError(MigrationError):
    """Base of all errors the engine recovers from by trying the next strategy."""


class KeyGenerationError(StrategyError):
    pass


class ProvisioningError(StrategyError):
    def __init__(self, step, message):
        self.step = step
        super().__init__(f"{step}: {message}")


class CreationError(StrategyError):
    pass


class WaitTimeoutError(StrategyError, TimeoutError):
    pass


class WatchError(StrategyError):
    pass


class ExposureError(StrategyError):
    pass


class StrategyExecutionError(StrategyError):
    pass


class AllStrategiesExhaustedError(MigrationError):
    def __init__(self, outcomes):
        self.outcomes = outcomes
        super().__init__(self._create_message())

    def _create_message(self):
        lines = ["all strategies failed:"]
        lines.extend(f"  {outcome}" for outcome in self.outcomes)
        return "\n".join(lines)
