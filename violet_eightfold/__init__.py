"""Core of the Violet Eightfold: prompts, dialogue parsing, session state,
LLM clients, integration analysis and the session orchestrator."""
