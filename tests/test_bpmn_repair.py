import pytest

from bpmn_assistant.tools.bpmn_repair import (
    ProcessRebuilder,
    QuoteSanitizer,
    RepairPipeline,
    rebuild_document,
    sanitize_document,
)
from bpmn_assistant.tools.bpmn_templates import DEFAULT_DIAGRAM
from bpmn_assistant.tools.bpmn_validator import validate_document, validate_structure
from bpmn_assistant.tools.tag_balance import analyze_tag_balance


NESTED_QUOTES = DEFAULT_DIAGRAM.replace('name="Do Something"', 'name="Do "Something" now"')
MISSING_QUOTE = DEFAULT_DIAGRAM.replace('id="Task_1" name=', 'id="Task_1 name=')
UNCLOSED_LABEL = DEFAULT_DIAGRAM.replace("</bpmndi:BPMNLabel>", "", 1)

_SECOND_FLOW = '<bpmn:sequenceFlow id="SequenceFlow_2" sourceRef="Task_1" targetRef="EndEvent_1" />'
_TASK_OPEN = '<bpmn:task id="Task_1" name="Do Something">'

CONDITION_LABEL = DEFAULT_DIAGRAM.replace(
    _SECOND_FLOW,
    '<bpmn:sequenceFlow id="SequenceFlow_2" sourceRef="Task_1" targetRef="EndEvent_1" name="amount > 100" />',
)

WELL_FORMED_VARIANTS = {
    "condition_label": CONDITION_LABEL,
    "apostrophe": DEFAULT_DIAGRAM.replace(_TASK_OPEN, '<bpmn:task id="Task_1" name="Manager\'s review">'),
    "quot_entity": DEFAULT_DIAGRAM.replace(
        _TASK_OPEN, '<bpmn:task id="Task_1" name="Say &quot;hello&quot; to the customer">'
    ),
    "single_quoted_value": DEFAULT_DIAGRAM.replace(
        _TASK_OPEN, "<bpmn:task id=\"Task_1\" name='Reply \"approved\" > notify'>"
    ),
    "multi_line_value": DEFAULT_DIAGRAM.replace(
        _TASK_OPEN, '<bpmn:task id="Task_1" name="Review\n        order">'
    ),
    "cdata_condition": DEFAULT_DIAGRAM.replace(
        _SECOND_FLOW,
        '<bpmn:sequenceFlow id="SequenceFlow_2" sourceRef="Task_1" targetRef="EndEvent_1">\n'
        '      <bpmn:conditionExpression xsi:type="bpmn:tFormalExpression">'
        '<![CDATA[${amount > 100 && region != "EU"}]]></bpmn:conditionExpression>\n'
        "    </bpmn:sequenceFlow>",
    ),
    "process_name": DEFAULT_DIAGRAM.replace(
        '<bpmn:process id="Process_1" isExecutable="false">',
        '<bpmn:process id="Process_1" name="Orders > 100" isExecutable="false">',
    ),
    "legal_equals_in_value": DEFAULT_DIAGRAM.replace(
        _TASK_OPEN, '<bpmn:task id="Task_1" name="p q=" documentation="x">'
    ),
}


class _FixedRepairer:
    name = "fixed"

    def __init__(self, result):
        self.result = result
        self.calls = []

    def repair(self, text):
        self.calls.append(text)
        return self.result


def test_sanitizer_leaves_valid_document_unchanged():
    assert sanitize_document(DEFAULT_DIAGRAM) == DEFAULT_DIAGRAM
    assert validate_document(sanitize_document(DEFAULT_DIAGRAM)).valid


def test_sanitizer_swaps_nested_double_quotes_for_single_quotes():
    repaired = QuoteSanitizer().repair('<bpmn:task id="Task_1" name="Check "urgent" order">')
    assert repaired == "<bpmn:task id=\"Task_1\" name=\"Check 'urgent' order\">"


def test_sanitizer_closes_unterminated_attribute_value():
    assert sanitize_document(MISSING_QUOTE) == DEFAULT_DIAGRAM


def test_sanitizer_ignores_non_string_input():
    assert sanitize_document(None) is None
    assert sanitize_document(12) is None


def test_rebuilder_wraps_process_in_minimal_envelope():
    rebuilt = rebuild_document(UNCLOSED_LABEL)
    assert rebuilt is not None
    assert '<bpmn:process id="Process_1" isExecutable="false">' in rebuilt
    assert 'bpmnElement="Process_1"' in rebuilt
    assert "BPMNShape" not in rebuilt
    assert validate_structure(rebuilt).valid
    assert validate_document(rebuilt).valid


def test_rebuilder_prefers_the_innermost_process_section():
    text = (
        '<bpmn:process id="Broken"><bpmn:process id="Process_2">'
        '<bpmn:startEvent id="StartEvent_1" /></bpmn:process>'
    )
    rebuilt = ProcessRebuilder().repair(text)
    assert rebuilt is not None
    assert 'id="Process_2"' in rebuilt
    assert "Broken" not in rebuilt


def test_rebuilder_assigns_default_process_id():
    text = '<bpmn:process isExecutable="false"><bpmn:startEvent id="StartEvent_1" /></bpmn:process>'
    rebuilt = rebuild_document(text)
    assert '<bpmn:process id="Process_1" isExecutable="false">' in rebuilt
    assert 'bpmnElement="Process_1"' in rebuilt


def test_rebuilder_returns_none_without_process_section():
    assert rebuild_document('<bpmn:definitions id="D"></bpmn:definitions>') is None
    assert rebuild_document(None) is None


def test_pipeline_accepts_valid_document_as_is():
    outcome = RepairPipeline().run(DEFAULT_DIAGRAM)
    assert outcome.accepted
    assert outcome.strategy == "original"
    assert not outcome.repaired
    assert outcome.document_text == DEFAULT_DIAGRAM
    assert len(outcome.attempts) == 1


def test_pipeline_repairs_nested_quotes_with_sanitizer():
    assert not validate_document(NESTED_QUOTES).valid
    outcome = RepairPipeline().run(NESTED_QUOTES)
    assert outcome.accepted
    assert outcome.strategy == "sanitize"
    assert "name=\"Do 'Something' now\"" in outcome.document_text


def test_pipeline_repairs_missing_quote_with_sanitizer():
    outcome = RepairPipeline().run(MISSING_QUOTE)
    assert outcome.accepted
    assert outcome.strategy == "sanitize"
    assert outcome.document_text == DEFAULT_DIAGRAM


def test_pipeline_falls_back_to_rebuild_for_unclosed_diagram_tag():
    outcome = RepairPipeline().run(UNCLOSED_LABEL)
    assert outcome.accepted
    assert outcome.repaired
    assert outcome.strategy == "rebuild"
    assert [attempt.strategy for attempt in outcome.attempts] == ["original", "rebuild"]
    assert 'bpmnElement="Process_1"' in outcome.document_text


def test_pipeline_rejects_unrepairable_document():
    text = "<root><a></a></root>"
    outcome = RepairPipeline().run(text)
    assert not outcome.accepted
    assert outcome.strategy == "none"
    assert outcome.document_text == text
    assert outcome.error.startswith("Structural:")
    assert outcome.as_dict()["attempts"][0]["valid"] is False


def test_pipeline_accepts_replacement_repairers():
    rebuilder = _FixedRepairer(DEFAULT_DIAGRAM)
    outcome = RepairPipeline(rebuilder=rebuilder).run(UNCLOSED_LABEL)
    assert outcome.accepted
    assert outcome.strategy == "fixed"
    assert rebuilder.calls == [UNCLOSED_LABEL]


@pytest.mark.parametrize("text", list(WELL_FORMED_VARIANTS.values()), ids=list(WELL_FORMED_VARIANTS))
def test_well_formed_variants_survive_every_stage(text):
    assert text != DEFAULT_DIAGRAM
    assert analyze_tag_balance(text).balanced
    assert validate_document(text).valid
    assert sanitize_document(text) == text
    rebuilt = rebuild_document(text)
    assert rebuilt is not None
    assert validate_structure(rebuilt).valid


def test_pipeline_accepts_condition_label_without_repair():
    outcome = RepairPipeline().run(CONDITION_LABEL)
    assert outcome.accepted
    assert outcome.strategy == "original"
    assert outcome.document_text == CONDITION_LABEL


def test_rebuilder_finds_process_tag_with_angle_bracket_in_value():
    text = WELL_FORMED_VARIANTS["process_name"].replace("</bpmndi:BPMNLabel>", "", 1)
    outcome = RepairPipeline().run(text)
    assert outcome.accepted
    assert outcome.strategy == "rebuild"
    assert 'name="Orders > 100"' in outcome.document_text


def test_sanitizer_keeps_legal_value_that_looks_unterminated():
    text = '<task id="Task_1" b="p q=" c="r" />'
    assert sanitize_document(text) == text
