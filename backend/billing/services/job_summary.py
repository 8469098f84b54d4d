"""Shared shape for batch job results."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List


@dataclass
class JobError:
    entity: str
    entity_id: str
    error: str


@dataclass
class JobSummary:
    """Base summary: per-entity failures never abort the batch, they land in ``errors``."""

    errors: List[JobError] = field(default_factory=list)

    def add_error(self, entity: str, entity_id: Any, exc: BaseException) -> None:
        self.errors.append(JobError(entity=entity, entity_id=str(entity_id), error=str(exc) or exc.__class__.__name__))

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["success"] = not self.has_errors
        return payload
