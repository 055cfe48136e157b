"""
Domain layer for contact submission business logic.

This layer contains:
- Data models (submission input, rendered notification, outcomes)
- Business logic (validate -> persist -> render -> deliver pipeline)
"""
