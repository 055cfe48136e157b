"""
Integrations with external services (outgoing mail).
"""
