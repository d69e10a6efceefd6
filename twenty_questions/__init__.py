"""Twenty Questions - LLM-mediated game engine."""
