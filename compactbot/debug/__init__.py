"""Diagnostics for postmortem inspection of compactions."""
