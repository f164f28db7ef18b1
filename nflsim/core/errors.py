"""Exception taxonomy for the simulator.

Every error subclasses :class:`ValueError` so callers that already guard
contract violations with ``except ValueError`` keep working.  The three
leaf types are deliberately distinct: a caller must be able to tell
"cannot run: missing input" apart from "cannot parse: malformed source
data".
"""


class NFLSimError(ValueError):
    """Base class for all simulator errors."""


class SimulationInputError(NFLSimError):
    """A required input is missing or malformed (team selection, market line).

    Raised before any sampling begins.
    """


class ConfigurationError(NFLSimError):
    """An operation was configured with an unusable value (e.g. trial count ≤ 0)."""


class SourceDataError(NFLSimError):
    """Tabular source data could not be parsed (no team column, no rows)."""
