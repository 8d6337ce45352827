"""BPMN validation and repair exports."""
from bpmn_assistant.tools.bpmn_repair import ProcessRebuilder, QuoteSanitizer, RepairOutcome, RepairPipeline, Repairer
from bpmn_assistant.tools.bpmn_validator import (
    DocumentValidationError,
    ParseCheck,
    ValidationVerdict,
    validate_document,
    validate_domain_rules,
    validate_structure,
    validate_with_parser,
)
from bpmn_assistant.tools.tag_balance import TagCounts, analyze_tag_balance

__all__ = [
    "DocumentValidationError",
    "ParseCheck",
    "ProcessRebuilder",
    "QuoteSanitizer",
    "RepairOutcome",
    "RepairPipeline",
    "Repairer",
    "TagCounts",
    "ValidationVerdict",
    "analyze_tag_balance",
    "validate_document",
    "validate_domain_rules",
    "validate_structure",
    "validate_with_parser",
]
