"""Validation helpers for LLM-supplied BPMN 2.0 documents."""
from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from bpmn_assistant.tools.bpmn_templates import NAMESPACE_DECLARATIONS
from bpmn_assistant.tools.tag_balance import TagCounts, analyze_tag_balance


ROOT_MARKERS: tuple[str, str] = ("<bpmn:definitions", "</bpmn:definitions>")
PROCESS_MARKERS: tuple[str, str] = ("<bpmn:process", "</bpmn:process>")
_DOUBLED_BRACKETS: tuple[str, ...] = ("<<", ">>")

RECOGNIZED_ELEMENTS: tuple[str, ...] = (
    "startEvent",
    "endEvent",
    "task",
    "userTask",
    "serviceTask",
    "scriptTask",
    "manualTask",
    "businessRuleTask",
    "sendTask",
    "receiveTask",
    "exclusiveGateway",
    "parallelGateway",
    "inclusiveGateway",
    "eventBasedGateway",
    "complexGateway",
    "intermediateCatchEvent",
    "intermediateThrowEvent",
    "boundaryEvent",
    "subProcess",
    "callActivity",
    "sequenceFlow",
)
_ELEMENT_MARKERS: tuple[str, ...] = tuple(f"<bpmn:{kind}" for kind in RECOGNIZED_ELEMENTS)


@dataclass(frozen=True)
class ValidationVerdict:
    valid: bool
    error: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "error": self.error, "details": _jsonable(self.details)}


@dataclass(frozen=True)
class ParseCheck:
    valid: bool
    errors: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors)}


class DocumentValidationError(ValueError):
    """Raised when a candidate document cannot be validated or repaired."""

    def __init__(self, message: str, outcome: Any = None):
        super().__init__(message)
        self.outcome = outcome


def _jsonable(value: Any) -> Any:
    if hasattr(value, "as_dict"):
        return value.as_dict()
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


def _missing(text: str, markers: tuple[str, ...]) -> List[str]:
    return [marker for marker in markers if marker not in text]


def validate_structure(text: object) -> ValidationVerdict:
    """Cheap structural checks, short-circuiting on the first failure."""
    if not isinstance(text, str) or not text.strip():
        return ValidationVerdict(False, "Document text is empty or not a string")

    missing_root = _missing(text, ROOT_MARKERS)
    if missing_root:
        return ValidationVerdict(
            False,
            "Missing root section marker(s): " + ", ".join(missing_root),
            {"missing_markers": missing_root},
        )

    missing_process = _missing(text, PROCESS_MARKERS)
    if missing_process:
        return ValidationVerdict(
            False,
            "Missing process section marker(s): " + ", ".join(missing_process),
            {"missing_markers": missing_process},
        )

    counts = analyze_tag_balance(text)
    if not counts.balanced:
        return ValidationVerdict(
            False,
            "Tag mismatch: " + counts.describe(),
            {"tag_counts": counts},
        )

    for sequence in _DOUBLED_BRACKETS:
        if sequence in text:
            return ValidationVerdict(
                False,
                f"Malformed markup: found doubled angle brackets '{sequence}'",
                {"tag_counts": counts},
            )

    return ValidationVerdict(True, None, {"tag_counts": counts})


def _local_name(tag: str) -> str:
    return tag.split("}")[-1] if "}" in tag else tag


def validate_with_parser(text: object) -> ParseCheck:
    """Parse with ElementTree and report every parser complaint as text."""
    if not isinstance(text, str) or not text.strip():
        return ParseCheck(False, ["Document text is empty or not a string"])
    try:
        root = ET.fromstring(text.lstrip())
    except ET.ParseError as exc:
        return ParseCheck(False, [f"XML parse error: {exc}"])
    except Exception as exc:
        return ParseCheck(False, [f"XML parser failure: {exc}"])

    errors = [
        (el.text or "parser error").strip()
        for el in root.iter()
        if _local_name(el.tag) == "parsererror"
    ]
    return ParseCheck(not errors, errors)


def validate_domain_rules(text: object) -> ValidationVerdict:
    """Check BPMN namespace declarations and that some BPMN element is present."""
    if not isinstance(text, str) or not text.strip():
        return ValidationVerdict(False, "Document text is empty or not a string")

    for declaration in NAMESPACE_DECLARATIONS:
        if declaration not in text:
            return ValidationVerdict(
                False,
                f"Missing required namespace declaration: {declaration}",
                {"missing_namespace": declaration},
            )

    found = [kind for kind, marker in zip(RECOGNIZED_ELEMENTS, _ELEMENT_MARKERS) if marker in text]
    if not found:
        return ValidationVerdict(
            False,
            "No recognized BPMN elements found (expected one of: "
            + ", ".join(RECOGNIZED_ELEMENTS)
            + ")",
        )
    return ValidationVerdict(True, None, {"element_kinds": found})


def validate_document(text: object) -> ValidationVerdict:
    """Run every validator and aggregate a single verdict.

    The document is valid only when the structural, parser, tag balance and
    domain checks all pass. Failures are reported as
    ``"<Component>: <message>"`` joined with ``" | "`` in that order.
    """
    structural = validate_structure(text)
    parsed = validate_with_parser(text)
    counts: TagCounts = analyze_tag_balance(text)
    domain = validate_domain_rules(text)

    failures: List[str] = []
    if not structural.valid:
        failures.append(f"Structural: {structural.error}")
    if not parsed.valid:
        failures.append("Parser: " + "; ".join(parsed.errors))
    if not counts.balanced:
        if counts.valid:
            failures.append("Tag balance: " + counts.describe())
        else:
            failures.append("Tag balance: no tags to count")
    if not domain.valid:
        failures.append(f"Domain: {domain.error}")

    details: Dict[str, Any] = {
        "structural": structural,
        "parser": parsed,
        "tag_counts": counts,
        "domain": domain,
    }
    if failures:
        return ValidationVerdict(False, " | ".join(failures), details)
    return ValidationVerdict(True, None, details)
