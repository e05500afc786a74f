from queueskip.schemas.venue import VenueCreate, VenueUpdate, VenuePriceUpdate, VenueResponse, VenueDetailResponse
from queueskip.schemas.schedule import (
    DayScheduleUpsert, DayToggle, HourWindowUpsert, WeeklyScheduleApply,
    DayScheduleResponse, HourWindowResponse,
)
from queueskip.schemas.reservation import (
    ReservationCreate, ReservationResponse, ReservationStatusResponse, AvailabilityResponse,
)
from queueskip.schemas.transaction import TransactionListResponse, AuditLogListResponse
from queueskip.schemas.webhook import WebhookAck, parse_payment_event

__all__ = [
    "VenueCreate", "VenueUpdate", "VenuePriceUpdate", "VenueResponse", "VenueDetailResponse",
    "DayScheduleUpsert", "DayToggle", "HourWindowUpsert", "WeeklyScheduleApply",
    "DayScheduleResponse", "HourWindowResponse",
    "ReservationCreate", "ReservationResponse", "ReservationStatusResponse", "AvailabilityResponse",
    "TransactionListResponse", "AuditLogListResponse",
    "WebhookAck", "parse_payment_event",
]
