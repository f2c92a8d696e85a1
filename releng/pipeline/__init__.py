"""Release pipeline: shared context, steps, registry and executor."""

from __future__ import annotations
