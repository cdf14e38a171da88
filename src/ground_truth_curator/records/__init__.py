"""Record models and lifecycle rules.

This module provides:
- The two record kinds (ground truth entries and legal documents)
- Internal identity generation
- Required-field validation
- Atomic approval stamping
"""

from ground_truth_curator.records.envelope import DatasetEnvelope
from ground_truth_curator.records.models import (
    APPROVAL_FIELDS,
    DocumentMetadata,
    GroundTruthEntry,
    LegalDocument,
    Record,
    RecordKind,
    approve,
    assign_identity,
    generate_id,
    hydrate_record,
    record_model,
    revoke_approval,
    utc_now_iso,
    validate_record,
)
from ground_truth_curator.records.sample import sample_dataset

__all__ = [
    # Models
    "DatasetEnvelope",
    "APPROVAL_FIELDS",
    "DocumentMetadata",
    "GroundTruthEntry",
    "LegalDocument",
    "Record",
    "RecordKind",
    "record_model",
    # Lifecycle
    "approve",
    "assign_identity",
    "generate_id",
    "hydrate_record",
    "revoke_approval",
    "utc_now_iso",
    "validate_record",
    # Sample data
    "sample_dataset",
]
