# Business Services
from nexus.services.availability_service import AvailabilityService
from nexus.services.booking_service import BookingService
from nexus.services.payment_service import PaymentService
from nexus.services.ledger_service import LedgerService
from nexus.services.deletion_service import DeletionService
from nexus.services.metrics_service import MetricsService
from nexus.services.room_service import RoomService
from nexus.services.user_service import UserService
from nexus.services.risk_service import RiskScorer

__all__ = [
    'AvailabilityService', 'BookingService', 'PaymentService',
    'LedgerService', 'DeletionService', 'MetricsService',
    'RoomService', 'UserService', 'RiskScorer'
]
