"""Utility modules for tasksync."""
