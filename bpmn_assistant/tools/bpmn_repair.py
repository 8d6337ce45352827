"""Best-effort repair of BPMN documents that fail validation.

Two strategies are applied by :class:`RepairPipeline` after the original text
fails :func:`validate_document`:

* ``sanitize`` rewrites attribute quoting with regular expressions. It is a
  heuristic, not a grammar-aware fix, and can alter attribute values that
  legitimately contain quote-like runs.
* ``rebuild`` keeps only a well-formed ``bpmn:process`` section and wraps it in
  a fixed definitions envelope, dropping the diagram layout.

Both strategies implement the :class:`Repairer` protocol so either can be
replaced without touching the pipeline.
"""
from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol

from bpmn_assistant.tools.bpmn_templates import wrap_process
from bpmn_assistant.tools.bpmn_validator import ValidationVerdict, validate_document
from bpmn_assistant.tools.tag_balance import ATTRIBUTE_SPAN

logger = logging.getLogger(__name__)


class Repairer(Protocol):
    name: str

    def repair(self, text: Optional[str]) -> Optional[str]:
        ...


_ATTR_NAME = r"[\w:.-]+"

# name="value" where the value may hold stray double quotes; the closing quote
# is the one followed by another attribute or the end of the tag.
_NESTED_QUOTE_ATTR_RE = re.compile(
    rf'(?P<prefix>\s{_ATTR_NAME}=")'
    rf'(?P<value>(?:(?!\s{_ATTR_NAME}=")[^<>])*?)'
    rf'"(?=\s+{_ATTR_NAME}="|\s*/?>)'
)

# name="value next="...  (closing quote of the first value is missing)
_UNTERMINATED_VALUE_RE = re.compile(
    rf'(?P<prefix>\s{_ATTR_NAME}=")(?P<value>[^"<>\s]+)(?P<gap>\s+)(?={_ATTR_NAME}=")'
)


def _is_well_formed(text: str) -> bool:
    try:
        ET.fromstring(text.lstrip())
    except ET.ParseError:
        return False
    return True


def _collapse_nested_quotes(match: re.Match) -> str:
    value = match.group("value")
    if '"' not in value:
        return match.group(0)
    return f'{match.group("prefix")}{value.replace(chr(34), chr(39))}"'


class QuoteSanitizer:
    """Regex repairs for attribute quoting, applied in a fixed order.

    Text that already parses is returned unchanged.
    """

    name = "sanitize"

    def repair(self, text: Optional[str]) -> Optional[str]:
        if not isinstance(text, str):
            return None
        # Legal values such as b="p q=" match the patterns below.
        if _is_well_formed(text):
            return text
        repaired = _NESTED_QUOTE_ATTR_RE.sub(_collapse_nested_quotes, text)
        repaired = _UNTERMINATED_VALUE_RE.sub(r'\g<prefix>\g<value>"\g<gap>', repaired)
        return repaired


_PROCESS_OPEN_RE = re.compile(rf"<bpmn:process\b{ATTRIBUTE_SPAN}>")
_PROCESS_CLOSE = "</bpmn:process>"
_ID_ATTR_RE = re.compile(r'\sid="([^"]+)"')
DEFAULT_PROCESS_ID = "Process_1"


class ProcessRebuilder:
    """Rebuild a minimal document around the innermost well-formed process."""

    name = "rebuild"

    def _sections(self, text: str) -> List[tuple[str, str]]:
        sections: List[tuple[str, str]] = []
        for match in _PROCESS_OPEN_RE.finditer(text):
            end = text.find(_PROCESS_CLOSE, match.end())
            if end == -1:
                continue
            opening = match.group(0)
            id_match = _ID_ATTR_RE.search(opening)
            if id_match:
                process_id = id_match.group(1)
                body = text[match.start():end + len(_PROCESS_CLOSE)]
            else:
                process_id = DEFAULT_PROCESS_ID
                fixed_opening = opening.replace(
                    "<bpmn:process", f'<bpmn:process id="{DEFAULT_PROCESS_ID}"', 1
                )
                body = fixed_opening + text[match.end():end + len(_PROCESS_CLOSE)]
            sections.append((body, process_id))
        # Shortest first: the innermost section wins over any that swallowed a
        # stray second opening tag.
        return sorted(sections, key=lambda item: len(item[0]))

    def repair(self, text: Optional[str]) -> Optional[str]:
        if not isinstance(text, str):
            return None
        for body, process_id in self._sections(text):
            document = wrap_process("  " + body.strip(), process_id)
            if _is_well_formed(document):
                return document
        return None


@dataclass(frozen=True)
class RepairAttempt:
    strategy: str
    document_text: Optional[str]
    verdict: ValidationVerdict


@dataclass
class RepairOutcome:
    accepted: bool
    document_text: Optional[str]
    strategy: str
    verdict: ValidationVerdict
    attempts: List[RepairAttempt] = field(default_factory=list)

    @property
    def repaired(self) -> bool:
        return self.accepted and self.strategy != "original"

    @property
    def error(self) -> Optional[str]:
        return self.verdict.error

    def as_dict(self) -> dict:
        return {
            "accepted": self.accepted,
            "strategy": self.strategy,
            "verdict": self.verdict.as_dict(),
            "attempts": [
                {"strategy": attempt.strategy, "valid": attempt.verdict.valid, "error": attempt.verdict.error}
                for attempt in self.attempts
            ],
        }


_QUOTE_HINTS = ("quot", "attribute", "invalid token")


def _mentions_quoting(error: Optional[str]) -> bool:
    lowered = (error or "").lower()
    return any(hint in lowered for hint in _QUOTE_HINTS)


class RepairPipeline:
    """Validate a candidate and fall back to sanitize, then rebuild."""

    def __init__(
        self,
        validator: Callable[[object], ValidationVerdict] = validate_document,
        sanitizer: Optional[Repairer] = None,
        rebuilder: Optional[Repairer] = None,
    ):
        self.validator = validator
        self.sanitizer = sanitizer or QuoteSanitizer()
        self.rebuilder = rebuilder or ProcessRebuilder()

    def run(self, text: Optional[str]) -> RepairOutcome:
        attempts: List[RepairAttempt] = []
        verdict = self.validator(text)
        attempts.append(RepairAttempt("original", text, verdict))
        if verdict.valid:
            return RepairOutcome(True, text, "original", verdict, attempts)

        candidate = text
        sanitized = self.sanitizer.repair(text)
        if sanitized is not None and (sanitized != text or _mentions_quoting(verdict.error)):
            verdict = self.validator(sanitized)
            attempts.append(RepairAttempt(self.sanitizer.name, sanitized, verdict))
            if verdict.valid:
                logger.info("Document accepted after sanitizing attribute quotes")
                return RepairOutcome(True, sanitized, self.sanitizer.name, verdict, attempts)
            candidate = sanitized

        rebuilt = self.rebuilder.repair(candidate)
        if rebuilt is not None:
            verdict = self.validator(rebuilt)
            attempts.append(RepairAttempt(self.rebuilder.name, rebuilt, verdict))
            if verdict.valid:
                logger.info("Document accepted after rebuilding around the process section")
                return RepairOutcome(True, rebuilt, self.rebuilder.name, verdict, attempts)

        logger.warning(
            "Document rejected after %d attempt(s)",
            len(attempts),
            extra={"error": verdict.error},
        )
        return RepairOutcome(False, text, "none", verdict, attempts)


def sanitize_document(text: Optional[str]) -> Optional[str]:
    return QuoteSanitizer().repair(text)


def rebuild_document(text: Optional[str]) -> Optional[str]:
    return ProcessRebuilder().repair(text)
