"""
Service classes holding the application's business rules. Routes stay thin
and call into these.
"""
