"""
Lead follow-up alerting service.

A Flask API that classifies prospects by time since last contact,
aggregates follow-up alerts per user and feeds a polling notifier
that reminds the user of overdue and due-today follow-ups.
"""

__version__ = "1.0.0"
