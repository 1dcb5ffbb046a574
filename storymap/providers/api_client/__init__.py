"""HTTP client for the story API, used by the view orchestrator."""
