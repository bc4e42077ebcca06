"""
ID generation utilities for medconsent
Unique identifiers for consent events and audit records
"""

import uuid


def generate_event_id() -> str:
    """Generate consent event ID"""
    return f"event_{uuid.uuid4()}"


def generate_audit_id() -> str:
    """Generate audit event ID"""
    return f"audit_{uuid.uuid4()}"
