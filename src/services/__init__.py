"""
Utility functions for the contact pipeline.

This package contains reusable service functions for validation, message
rendering, the submissions log and static API data.
"""

__all__ = ['validation', 'templates', 'submission_log', 'projects']
