"""Summarizer agent: analysis, model selection and the tool loop."""
