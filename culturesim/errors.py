"""Structured error hierarchy for culturesim."""


class CultureSimError(Exception):
    """Base for all culturesim errors."""

    pass


class ConfigurationError(CultureSimError):
    """Invalid parameter detected before any simulation work starts."""

    pass


class DegenerateDistribution(CultureSimError):
    """Sampling was requested from a set whose weights are all zero."""

    def __init__(self, size: int, context: str = ""):
        self.size = size
        self.context = context
        where = f" ({context})" if context else ""
        super().__init__(f"All {size} sampling weights are zero{where}")

    def __reduce__(self):
        return (type(self), (self.size, self.context))


class LabelExhaustion(CultureSimError):
    """Innovation needed more trait labels than the configured capacity."""

    def __init__(self, capacity: int, requested: int):
        self.capacity = capacity
        self.requested = requested
        super().__init__(
            f"Innovation needs label {requested} but label capacity is {capacity}"
        )

    def __reduce__(self):
        return (type(self), (self.capacity, self.requested))


class InvariantViolation(CultureSimError):
    """A runtime invariant of the simulation was broken."""

    pass


class PopulationStateError(CultureSimError):
    """Population in invalid state for requested operation."""

    pass


class ExperimentError(CultureSimError):
    """A single (cell, replicate) task of an experiment failed."""

    def __init__(self, cell: str, replicate: int, cause: BaseException):
        self.cell = cell
        self.replicate = replicate
        self.cause = cause
        super().__init__(
            f"Run {cell} replicate {replicate} failed: {type(cause).__name__}: {cause}"
        )

    def __reduce__(self):
        return (type(self), (self.cell, self.replicate, self.cause))
