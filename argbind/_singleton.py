class Singleton:
    # Singleton pattern.
    # https://www.python.org/download/releases/2.2/descrintro/#__new__
    def __new__(cls, *args, **kwds):
        it = cls.__dict__.get("__it__")
        if it is not None:
            return it
        cls.__it__ = it = object.__new__(cls)
        it.init(*args, **kwds)
        return it

    def init(self, *args, **kwds):
        pass


class HandlerLostType(Singleton):
    """Type for the :data:`argbind.HANDLER_LOST` singleton."""

    def __repr__(self) -> str:
        return "argbind.HANDLER_LOST"

    def __bool__(self) -> bool:
        # A lost handler is still "declared"; only its executable form is gone.
        return True


class FromPositionalType(Singleton):
    """Type for the :data:`argbind.FROM_POSITIONAL` singleton."""

    def __repr__(self) -> str:
        return "argbind.FROM_POSITIONAL"


HANDLER_LOST = HandlerLostType()
"""Marker for an alias `code` handler that arrived as a non-callable value, typically
because the metadata was serialized across a process or network boundary."""

FROM_POSITIONAL = FromPositionalType()
"""Passed as `opt=` to getopt hooks when a value was bound from a positional argument
instead of an option."""
