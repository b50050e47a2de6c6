"""Core engine: tokenizer, decisions, ambiguity tracking, synthesis."""
