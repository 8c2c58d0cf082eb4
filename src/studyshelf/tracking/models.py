"""Study progress data models."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import List, Set

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_serializer

from studyshelf.library.models import utcnow


class StudyProgress(BaseModel):
    """Accumulated study metrics for one document.

    Attributes:
        id: Record identifier, distinct from the document id.
        document_id: Identifier of the tracked file or whiteboard.
        progress: Completion estimate between 0.0 and 1.0.
        total_time_spent: Minutes studied so far.
        last_studied: Timestamp of the latest study session.
        completed_sections: Opaque identifiers of finished sections.
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()).upper())
    document_id: str = Field(min_length=1)
    progress: float = Field(default=0.0, ge=0.0, le=1.0)
    total_time_spent: float = Field(default=0.0, ge=0.0)
    last_studied: datetime = Field(default_factory=utcnow)
    completed_sections: Set[str] = Field(default_factory=set)

    @field_serializer("completed_sections")
    def _sorted_sections(self, sections: Set[str]) -> list[str]:
        return sorted(sections)


ProgressList = TypeAdapter(List[StudyProgress])

__all__ = ["StudyProgress", "ProgressList"]
