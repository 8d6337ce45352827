import json

from bpmn_assistant.tools.bpmn_templates import DEFAULT_DIAGRAM, wrap_process
from bpmn_assistant.tools.bpmn_validator import (
    validate_document,
    validate_domain_rules,
    validate_structure,
    validate_with_parser,
)
from bpmn_assistant.tools.tag_balance import TagCounts, analyze_tag_balance


UNCLOSED_TASK = DEFAULT_DIAGRAM.replace("</bpmn:task>", "", 1)


def test_default_diagram_passes_every_check():
    assert validate_structure(DEFAULT_DIAGRAM).valid
    assert validate_with_parser(DEFAULT_DIAGRAM).valid
    assert validate_domain_rules(DEFAULT_DIAGRAM).valid
    verdict = validate_document(DEFAULT_DIAGRAM)
    assert verdict.valid
    assert verdict.error is None


def test_structure_rejects_document_without_root_markers():
    verdict = validate_structure("<root><a></a></root>")
    assert not verdict.valid
    assert "<bpmn:definitions" in verdict.error
    assert "</bpmn:definitions>" in verdict.error


def test_structure_names_only_the_missing_root_marker():
    verdict = validate_structure(DEFAULT_DIAGRAM.replace("</bpmn:definitions>", ""))
    assert not verdict.valid
    assert verdict.error == "Missing root section marker(s): </bpmn:definitions>"


def test_structure_requires_process_section():
    text = '<bpmn:definitions id="Definitions_1"></bpmn:definitions>'
    verdict = validate_structure(text)
    assert not verdict.valid
    assert verdict.error == "Missing process section marker(s): <bpmn:process, </bpmn:process>"


def test_structure_reports_all_three_counts_on_mismatch():
    counts = analyze_tag_balance(UNCLOSED_TASK)
    verdict = validate_structure(UNCLOSED_TASK)
    assert not verdict.valid
    assert verdict.error == "Tag mismatch: " + counts.describe()
    assert str(counts.open_count) in verdict.error
    assert str(counts.self_closing_count) in verdict.error
    assert str(counts.close_count) in verdict.error


def test_structure_rejects_doubled_angle_brackets():
    text = DEFAULT_DIAGRAM.replace('<bpmn:task id="Task_1"', '<<bpmn:task id="Task_1"')
    verdict = validate_structure(text)
    assert not verdict.valid
    assert "'<<'" in verdict.error


def test_structure_rejects_empty_and_non_string_input():
    for value in ("", None, 3):
        verdict = validate_structure(value)
        assert not verdict.valid
        assert verdict.error == "Document text is empty or not a string"


def test_parser_reports_errors_without_raising():
    result = validate_with_parser("<a><b></a>")
    assert not result.valid
    assert len(result.errors) == 1
    assert result.errors[0].startswith("XML parse error")


def test_parser_tolerates_leading_whitespace_before_declaration():
    assert validate_with_parser("\n   " + DEFAULT_DIAGRAM).valid


def test_parser_handles_non_string_input():
    result = validate_with_parser(None)
    assert not result.valid
    assert result.errors == ["Document text is empty or not a string"]


def test_domain_rules_name_the_missing_namespace():
    text = DEFAULT_DIAGRAM.replace('xmlns:bpmndi="http://www.omg.org/spec/BPMN/20100524/DI" ', "")
    verdict = validate_domain_rules(text)
    assert not verdict.valid
    assert 'xmlns:bpmndi="http://www.omg.org/spec/BPMN/20100524/DI"' in verdict.error


def test_domain_rules_require_a_recognized_element():
    text = wrap_process('  <bpmn:process id="Process_1"></bpmn:process>', "Process_1")
    verdict = validate_domain_rules(text)
    assert not verdict.valid
    assert verdict.error.startswith("No recognized BPMN elements found")


def test_comprehensive_error_lists_failing_components_in_order():
    verdict = validate_document(UNCLOSED_TASK)
    assert not verdict.valid
    prefixes = [part.split(":", 1)[0] for part in verdict.error.split(" | ")]
    assert prefixes == ["Structural", "Parser", "Tag balance"]


def test_comprehensive_skips_components_that_pass():
    verdict = validate_document("<root><a></a></root>")
    assert not verdict.valid
    assert verdict.error.startswith("Structural: Missing root section marker(s)")
    assert " | Domain: Missing required namespace declaration" in verdict.error
    assert "Parser:" not in verdict.error
    assert "Tag balance:" not in verdict.error


def test_comprehensive_details_aggregate_component_results():
    verdict = validate_document(DEFAULT_DIAGRAM)
    assert set(verdict.details) == {"structural", "parser", "tag_counts", "domain"}
    assert isinstance(verdict.details["tag_counts"], TagCounts)
    payload = json.loads(json.dumps(verdict.as_dict()))
    assert payload["details"]["tag_counts"]["balanced"] is True
    assert "startEvent" in payload["details"]["domain"]["details"]["element_kinds"]
