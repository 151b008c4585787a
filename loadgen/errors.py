"""Exception hierarchy for the load generator."""


class LoadGenError(Exception):
    """Base class for load generator failures."""


class StartupError(LoadGenError):
    """The target API could not be verified before the run started."""


class ConfigError(LoadGenError):
    """A scenario name or scenario file could not be resolved."""
