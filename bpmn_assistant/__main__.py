from bpmn_assistant.cli import app

app()
