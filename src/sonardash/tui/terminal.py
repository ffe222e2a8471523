"""Terminal compatibility shim scoped to one UI session."""

import os
from contextlib import contextmanager
from typing import Iterator


@contextmanager
def compat_term(term: str | None) -> Iterator[None]:
  """Run with TERM overridden, restoring the previous value on exit.

  Some terminfo entries advertise capabilities the renderer cannot parse;
  `--term xterm` works around them without touching the parent shell.
  """
  if not term:
    yield
    return

  previous = os.environ.get("TERM")
  os.environ["TERM"] = term
  try:
    yield
  finally:
    if previous is None:
      os.environ.pop("TERM", None)
    else:
      os.environ["TERM"] = previous
