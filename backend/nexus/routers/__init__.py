# API Routers
from nexus.routers import auth, users, rooms, bookings, payments, deletions, reports, audit_logs

__all__ = ['auth', 'users', 'rooms', 'bookings', 'payments', 'deletions', 'reports', 'audit_logs']
