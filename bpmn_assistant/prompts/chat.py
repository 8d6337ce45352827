"""Prompt templates for editing, discussing and creating BPMN diagrams."""
from __future__ import annotations

from typing import Sequence

REPLY_CONTRACT = """**Response Format:**
Return a single JSON object (you may fence it in a ```json code block) using these fields:
- "updatedDocumentText": the complete updated BPMN 2.0 XML. If no changes are made, return the original XML.
- "response": your explanation or answer for the user.
- "impactAnalysis": potential impacts or inconsistencies the change introduces, or an empty string.

For modifications:
{
  "updatedDocumentText": "<bpmn:definitions>...</bpmn:definitions>",
  "impactAnalysis": "Changing this task might affect the subsequent gateway decision."
}

For conversations:
{
  "response": "The selected task 'Review Application' is a User Task that represents manual work. It connects to..."
}

For mixed requests:
{
  "response": "I understand you want to modify the gateway. Currently, this exclusive gateway...",
  "updatedDocumentText": "<bpmn:definitions>...</bpmn:definitions>",
  "impactAnalysis": "This change will affect downstream processes..."
}

**Large diagrams:**
If the XML is too long to emit as a single string, split it into consecutive parts and reply with
{
  "batched": true,
  "batchCount": 2,
  "batchPart1": "<first part of the XML>",
  "batchPart2": "<second part of the XML>",
  "response": "..."
}
Concatenating batchPart1..batchPartN in order must yield the complete XML."""


XML_REQUIREMENTS = """**CRITICAL XML STRUCTURE REQUIREMENTS:**
- Every opening tag must have a corresponding closing tag
- Escape double quotes inside attribute values (use &quot; or single quotes)
- All elements must have proper IDs (e.g., "StartEvent_1", "Task_1", "Gateway_1")
- All sequence flows must have both sourceRef and targetRef attributes
- All elements must be properly nested within the bpmn:process element
- Include all required namespaces (bpmn, bpmndi, dc, di)
- Include both the process definition AND the diagram information (BPMNDiagram section)"""


def format_selection(selected_element_ids: Sequence[str]) -> str:
    return ", ".join(selected_element_ids) if selected_element_ids else "None"


def build_chat_prompt(document_text: str, selected_element_ids: Sequence[str], prompt: str) -> str:
    """Prompt for modifying or discussing an existing diagram."""
    return f"""You are an AI assistant that helps modify BPMN diagrams based on user instructions.
The user will provide the current BPMN diagram XML, a list of selected element IDs, and a natural language prompt.
Your task is to:
1. Understand the user's request in the context of the provided BPMN diagram and selected elements.
2. Generate the updated BPMN XML based on the request. Ensure the generated BPMN XML is valid and adheres
to the BPMN 2.0 specification, including all required attributes (e.g., `sourceRef` and `targetRef` for `bpmn:sequenceFlow`).
3. Identify any potential impacts or inconsistencies that the change might introduce to other parts of the diagram.

**Conversational Capabilities:**
4. Engage in natural conversation with the user about their BPMN diagram and selected elements.
5. When the user asks about selected shapes, explain the element type and purpose, its current properties,
   and its significance in the overall workflow.
6. Explain connections between selected elements and other shapes: incoming and outgoing sequence flows,
   data associations and message flows, pools, lanes and subprocesses.
7. Offer BPMN best practices and suggestions for process improvement when relevant.

{XML_REQUIREMENTS}

{REPLY_CONTRACT}

Current BPMN Diagram XML:
{document_text}

Selected Element IDs: {format_selection(selected_element_ids)}

User's Request: {prompt}
"""


def build_creation_prompt(selected_element_ids: Sequence[str], prompt: str) -> str:
    """Prompt for creating a new diagram when the editor holds none."""
    return f"""You are a BPMN (Business Process Model and Notation) expert AI assistant that creates new workflow diagrams based on user descriptions.

Your primary task is to:
1. Understand the user's business process description
2. Create a complete, valid BPMN 2.0 XML diagram that represents the described workflow
3. Ensure the generated BPMN XML follows all BPMN 2.0 specifications and best practices

{XML_REQUIREMENTS}

**Process Creation Guidelines:**
- Start with a Start Event and end with an End Event
- Use appropriate BPMN elements (User, Service and Script Tasks; Exclusive, Parallel and Inclusive Gateways; Intermediate Events)
- Add meaningful names and labels to all elements
- Include BPMNDiagram, BPMNPlane, BPMNShape and BPMNEdge information positioned logically

{REPLY_CONTRACT}

Current Context:
No existing diagram - creating new flow
Selected Elements: {format_selection(selected_element_ids)}

User's Request: {prompt}

Create a complete BPMN 2.0 XML diagram that represents this workflow. Double-check that all XML tags are properly closed and nested.
"""


def compose_prompt(document_text: str, selected_element_ids: Sequence[str], prompt: str) -> str:
    if document_text and document_text.strip():
        return build_chat_prompt(document_text, selected_element_ids, prompt)
    return build_creation_prompt(selected_element_ids, prompt)
