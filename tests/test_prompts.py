from bpmn_assistant.prompts.chat import REPLY_CONTRACT, compose_prompt, format_selection
from bpmn_assistant.tools.bpmn_templates import DEFAULT_DIAGRAM


def test_selection_is_listed_or_none():
    assert format_selection(["Task_1", "Gateway_1"]) == "Task_1, Gateway_1"
    assert format_selection([]) == "None"


def test_existing_document_uses_editing_prompt():
    prompt = compose_prompt(DEFAULT_DIAGRAM, ["Task_1"], "Add a review step")
    assert "Current BPMN Diagram XML:\n" + DEFAULT_DIAGRAM in prompt
    assert "Selected Element IDs: Task_1" in prompt
    assert prompt.rstrip().endswith("User's Request: Add a review step")
    assert REPLY_CONTRACT in prompt


def test_blank_document_uses_creation_prompt():
    prompt = compose_prompt("   \n", [], "Order fulfilment with payment check")
    assert "No existing diagram - creating new flow" in prompt
    assert "Selected Elements: None" in prompt
    assert "Order fulfilment with payment check" in prompt
    assert "Current BPMN Diagram XML" not in prompt


def test_reply_contract_describes_batched_mode():
    assert '"batchCount"' in REPLY_CONTRACT
    assert "batchPart1" in REPLY_CONTRACT
