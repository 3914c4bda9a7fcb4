"""Terminal presentation: device tables and prompts."""
