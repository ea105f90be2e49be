"""Errors raised while turning a deployment configuration into a resource plan."""


class FunctionConfigError(ValueError):
    """Base class for invalid deployment configurations."""
    pass


class ConfigurationConflict(FunctionConfigError):
    """Two mutually exclusive options are set, or a required value resolves to nothing."""
    pass


class DuplicateKey(FunctionConfigError):
    """A key that must be unique (e.g. an IAM role) appears more than once."""
    pass


class UnresolvedReference(RuntimeError):
    """A plan descriptor refers to a resource that is not part of the plan.

    This is an internal invariant violation, not a user error.
    """
    pass
