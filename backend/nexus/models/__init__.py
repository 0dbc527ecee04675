# Ontology Models
from nexus.models.ontology import (
    Room, Booking, Payment, LedgerEntry, DeletionRequest, User, AuditLogRecord
)

__all__ = [
    'Room', 'Booking', 'Payment', 'LedgerEntry', 'DeletionRequest', 'User', 'AuditLogRecord'
]
