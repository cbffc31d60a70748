"""Media host application orchestrator."""
