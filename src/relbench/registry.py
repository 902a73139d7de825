"""Candidate registry.

A :class:`CandidateRegistry` holds the named computations compared in
one benchmark.  Registries are plain objects created and passed around
by the caller; there is no module-level default registry.

Fair comparison is the caller's responsibility: every candidate in a
registry must work on logically equivalent input (same size, same seed,
same state), and any data a candidate captures must not change between
replications.  Computations are opaque callables, so this cannot be
checked here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterator

from relbench.errors import DuplicateName, InvalidArgument
from relbench.logging import get_logger

log = get_logger("registry")


@dataclass(frozen=True)
class Candidate:
    """A named computation under comparison."""

    name: str
    computation: Callable[[], Any] = field(compare=False)
    description: str = ""


class CandidateRegistry:
    """Ordered collection of uniquely named candidates.

    Usage::

        registry = CandidateRegistry()
        registry.register("sqrt", lambda: [math.sqrt(v) for v in data])

        @registry.candidate("exp_log")
        def exp_log():
            return [math.exp(math.log(v) / 2) for v in data]
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._candidates: dict[str, Candidate] = {}

    def register(
        self,
        name: str,
        computation: Callable[[], Any],
        *,
        description: str = "",
    ) -> Candidate:
        """Register *computation* under *name*.

        Raises:
            InvalidArgument: If *name* is empty or *computation* is not callable.
            DuplicateName: If *name* is already registered.  The registry
                is left unchanged.
        """
        if not isinstance(name, str) or not name.strip():
            raise InvalidArgument("Candidate names must be non-empty strings.")
        if not callable(computation):
            raise InvalidArgument(f"Computation for candidate '{name}' is not callable.")
        if name in self._candidates:
            raise DuplicateName(name)

        cand = Candidate(name=name, computation=computation, description=description)
        self._candidates[name] = cand
        log.debug("Registered candidate '%s'", name)
        return cand

    def candidate(
        self,
        name: str | None = None,
        *,
        description: str = "",
    ) -> Callable[[Callable[[], Any]], Callable[[], Any]]:
        """Decorator form of :meth:`register`.

        The candidate name defaults to the function's ``__name__`` and
        its description to the first docstring line.  The function is
        returned unchanged.
        """

        def decorator(func: Callable[[], Any]) -> Callable[[], Any]:
            doc = (func.__doc__ or "").strip().splitlines()
            self.register(
                name or func.__name__,
                func,
                description=description or (doc[0] if doc else ""),
            )
            return func

        return decorator

    def list(self) -> tuple[Candidate, ...]:
        """All candidates in registration order."""
        return tuple(self._candidates.values())

    def get(self, name: str) -> Candidate | None:
        """Look up a candidate by name."""
        return self._candidates.get(name)

    @property
    def names(self) -> list[str]:
        """Candidate names in registration order."""
        return list(self._candidates)

    def __len__(self) -> int:
        return len(self._candidates)

    def __iter__(self) -> Iterator[Candidate]:
        return iter(self.list())

    def __contains__(self, name: object) -> bool:
        return name in self._candidates

    def __repr__(self) -> str:
        return f"CandidateRegistry(name={self.name!r}, candidates={self.names!r})"
