"""Core domain: request model, log, timeline, policies and the orchestrator."""
