"""Ok/Err values for operations that can fail.

Config loading, git calls and pipeline steps return a Result instead of
raising. Callers narrow with `isinstance` or `match`:

    match load_config(path):
        case Ok(config):
            ...
        case Err(error):
            console.error(error.pretty())
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["Err", "Ok", "Result"]


@dataclass(frozen=True, slots=True)
class Ok[T]:
    value: T

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Err[E]:
    error: E

    def unwrap(self) -> None:
        raise ValueError(f"called unwrap on Err: {self.error}")


type Result[T, E] = Ok[T] | Err[E]
