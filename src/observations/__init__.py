"""Observation log: rendered, subject-scoped views of raw records."""

from .linking import infer_chat_subjects, parse_linked_subject_ids
from .materializer import ObservationMaterializer
from .models import MaterializeStats, Observation, ObservationKey
from .rendering import render_record
from .store import ObservationStore

__all__ = [
    "Observation",
    "ObservationKey",
    "MaterializeStats",
    "ObservationMaterializer",
    "ObservationStore",
    "infer_chat_subjects",
    "parse_linked_subject_ids",
    "render_record",
]
