from queueskip.models.venue import Venue
from queueskip.models.schedule import DaySchedule, HourWindow
from queueskip.models.hold import PendingHold, HoldStatus
from queueskip.models.sale import ConfirmedSale
from queueskip.models.audit import AuditLogEntry

__all__ = [
    "Venue",
    "DaySchedule",
    "HourWindow",
    "PendingHold",
    "HoldStatus",
    "ConfirmedSale",
    "AuditLogEntry",
]
