"""Language adapters — python."""

from osintvm.adapters.languages.python import PythonAdapter

__all__ = ["PythonAdapter"]
