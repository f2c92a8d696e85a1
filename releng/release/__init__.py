"""Release domain: versions, channels, commit classification and decisions."""

from __future__ import annotations
