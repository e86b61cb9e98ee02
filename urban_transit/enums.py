from enum import Enum

# ================================
# Ticket Types
# ================================
class TicketType(str, Enum):
    RIDE = "RIDE"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"

    @property
    def validity_days(self) -> int:
        return _TICKET_TYPE_INFO[self][0]

    @property
    def prefix(self) -> str:
        return _TICKET_TYPE_INFO[self][1]

    @property
    def display_name(self) -> str:
        return _TICKET_TYPE_INFO[self][2]

    @property
    def is_unlimited(self) -> bool:
        return self in (TicketType.MONTHLY, TicketType.YEARLY)

    @classmethod
    def unlimited_types(cls):
        return [t for t in cls if t.is_unlimited]


_TICKET_TYPE_INFO = {
    TicketType.RIDE: (1, "RD", "Single Ride Ticket"),
    TicketType.MONTHLY: (30, "MO", "Monthly Pass"),
    TicketType.YEARLY: (365, "YR", "Yearly Pass"),
}

# ================================
# Ticket Status
# ================================
class TicketStatus(str, Enum):
    ACTIVE = "ACTIVE"
    USED = "USED"
    EXPIRED = "EXPIRED"

    @property
    def is_terminal(self) -> bool:
        return self in (TicketStatus.USED, TicketStatus.EXPIRED)

# ================================
# Transport Types
# ================================
class TransportType(str, Enum):
    BUS = "BUS"
    METRO = "METRO"
    TRAM = "TRAM"
    TRAIN = "TRAIN"

    @property
    def display_name(self) -> str:
        return self.value.capitalize()

# ================================
# User Roles
# ================================
class UserRole(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"
