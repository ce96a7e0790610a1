"""
Tickets Module
==============

Collaborator boundary to the surrounding ticketing application.

Responsibilities:
- Define the ticket, comment and article shapes the AI core consumes
- Define repository interfaces (read ticket, reassign, comment, articles)
- Provide a SQLAlchemy adapter for deployments sharing the database
"""

__version__ = "1.0.0"
