"""DocuSync domain layer: entities, state machine, ports and error taxonomy."""
