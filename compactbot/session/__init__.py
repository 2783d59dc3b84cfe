"""Session files and the conversation wire model."""
