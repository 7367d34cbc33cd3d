"""Relationship facts: extraction, validation and reconciliation."""

from .errors import ExtractionError
from .extractor import FactExtractor
from .models import BatchValidation, CandidateFact, Fact, ReconcileStats, ValidationResult
from .pipeline import FactPipeline, RunAllResult
from .reconciler import FactReconciler
from .store import FactStore
from .validator import deduplicate_facts, validate_fact, validate_facts

__all__ = [
    "CandidateFact",
    "Fact",
    "ValidationResult",
    "BatchValidation",
    "ReconcileStats",
    "ExtractionError",
    "FactExtractor",
    "FactStore",
    "FactReconciler",
    "FactPipeline",
    "RunAllResult",
    "validate_fact",
    "validate_facts",
    "deduplicate_facts",
]
