"""The :mod:`argbind.conf` submodule contains markers for attaching binding-specific
configuration to parameters via [PEP 593](https://peps.python.org/pep-0593/) runtime
annotations. They are read by :func:`argbind.meta_from_callable`.
"""

from ._markers import Flag, Greedy, Positional

__all__ = [
    "Flag",
    "Greedy",
    "Positional",
]
