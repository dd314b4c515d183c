"""Exception types shared across the engine."""


class InputError(ValueError):
    """A request the caller got wrong (blank query, unknown site, ...).

    Raised before any state is touched; the API layer reports it as 400.
    """
