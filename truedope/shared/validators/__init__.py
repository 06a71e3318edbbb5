"""Shared validators package for the application.

Reusable validation functions used by feature services and schemas.

Available validators:
- password.py: Password policy validation
- email.py: Email normalization
"""
