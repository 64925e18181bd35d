"""Exception types raised by the darcyflow pipeline."""


class DarcyFlowError(Exception):
    """Base class for all errors raised by darcyflow."""


class ConfigurationError(DarcyFlowError):
    """Inconsistent problem setup: dimension mismatch, conflicting
    boundary prescriptions, malformed mesh/element pairing."""


class AssemblyError(DarcyFlowError):
    """Inconsistent data passed between the coefficient functions and the
    element evaluation during assembly."""


class SolverError(DarcyFlowError):
    """The linear system could not be factored or solved."""
