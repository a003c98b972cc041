"""
Validation metrics for an import run.

Pure accumulator: counts valid/invalid records per entity, keeps a capped
list of error details and reports the validation rate against the
acceptance threshold.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class ValidationMetrics:
    total_fetched: int
    valid_records: int
    invalid_records: int
    duplicates_skipped: int
    validation_rate: float
    errors_by_entity: Dict[str, int] = field(default_factory=dict)


@dataclass
class ValidationSummary:
    validation_rate: float
    meets_threshold: bool
    total_records: int
    valid_records: int
    invalid_records: int
    duplicates_skipped: int
    errors_by_entity: Dict[str, int] = field(default_factory=dict)


@dataclass
class ValidationErrorEntry:
    entity: str
    message: str
    context: Optional[Dict[str, Any]] = None


def _rate(valid: int, invalid: int) -> float:
    total = valid + invalid
    if total == 0:
        return 0.0
    return round(valid / total * 100, 2)


class ValidationMetricsTracker:
    """
    Tracks validation outcomes for one run.
    
    total_fetched always equals valid_records + invalid_records;
    duplicates are counted separately and do not affect the rate.
    """
    
    def __init__(self, threshold: float = 98.0, max_stored_errors: int = 100):
        self.threshold = threshold
        self.max_stored_errors = max_stored_errors
        self.reset()
    
    def reset(self) -> None:
        self.valid_records = 0
        self.invalid_records = 0
        self.duplicates_skipped = 0
        self._valid_by_entity: Dict[str, int] = {}
        self._invalid_by_entity: Dict[str, int] = {}
        self._errors: List[ValidationErrorEntry] = []
    
    @property
    def total_fetched(self) -> int:
        return self.valid_records + self.invalid_records
    
    def record_valid(self, entity: str) -> None:
        self.valid_records += 1
        self._valid_by_entity[entity] = self._valid_by_entity.get(entity, 0) + 1
    
    def record_invalid(self, entity: str, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        self.invalid_records += 1
        self._invalid_by_entity[entity] = self._invalid_by_entity.get(entity, 0) + 1
        if len(self._errors) < self.max_stored_errors:
            self._errors.append(ValidationErrorEntry(entity=entity, message=message, context=context))
    
    def record_duplicate_skipped(self) -> None:
        self.duplicates_skipped += 1
    
    def get_validation_rate_by_entity(self, entity: str) -> float:
        return _rate(self._valid_by_entity.get(entity, 0), self._invalid_by_entity.get(entity, 0))
    
    def get_errors(self) -> List[ValidationErrorEntry]:
        return list(self._errors)
    
    def get_metrics(self) -> ValidationMetrics:
        return ValidationMetrics(
            total_fetched=self.total_fetched,
            valid_records=self.valid_records,
            invalid_records=self.invalid_records,
            duplicates_skipped=self.duplicates_skipped,
            validation_rate=_rate(self.valid_records, self.invalid_records),
            errors_by_entity=dict(self._invalid_by_entity),
        )
    
    def get_summary(self) -> ValidationSummary:
        rate = _rate(self.valid_records, self.invalid_records)
        return ValidationSummary(
            validation_rate=rate,
            meets_threshold=rate >= self.threshold,
            total_records=self.total_fetched,
            valid_records=self.valid_records,
            invalid_records=self.invalid_records,
            duplicates_skipped=self.duplicates_skipped,
            errors_by_entity=dict(self._invalid_by_entity),
        )
