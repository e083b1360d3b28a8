"""Hostel gate-pass system package.

Feature modules (gatepass, attendance, guardians, ...) follow the same shape:
frozen dataclass models, Protocol repositories with MySQL implementations,
services holding the business rules, and a thin Flask controller layer.
"""
