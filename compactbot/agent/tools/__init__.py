"""Shell tools exposed to the summarizer agent."""
