import enum


class EventStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class UserRole(str, enum.Enum):
    GROUP_DESK = "GROUP_DESK"
    ROUTE_CONTROLLER = "ROUTE_CONTROLLER"
    ADMIN = "ADMIN"


class GroupRequestStatus(str, enum.Enum):
    NEW = "NEW"
    REVIEWING = "REVIEWING"
    QUOTED = "QUOTED"
    CONFIRMED = "CONFIRMED"
    TICKETED = "TICKETED"
    CANCELLED = "CANCELLED"
    # Stored refinements of CONFIRMED / TICKETED kept for older records.
    CONFIRMED_PNR = "CONFIRMED_PNR"
    SETTLED = "SETTLED"


class GroupRequestAction(str, enum.Enum):
    ASSIGN_RC = "ASSIGN_RC"
    QUOTE = "QUOTE"
    ACCEPT_QUOTATION = "ACCEPT_QUOTATION"
    MARK_TICKETED = "MARK_TICKETED"
    CANCEL = "CANCEL"


class QuotationStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"
    RESENT = "RESENT"


class QuotationAction(str, enum.Enum):
    SEND = "SEND"
    ACCEPT = "ACCEPT"
    REJECT = "REJECT"
    EXPIRE = "EXPIRE"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"


class PaymentViewStatus(str, enum.Enum):
    """Display status: stored PaymentStatus plus the derived OVERDUE."""

    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"


class RoutingType(str, enum.Enum):
    ONE_WAY = "ONE_WAY"
    RETURN = "RETURN"
    MULTICITY = "MULTICITY"


class RequestCategory(str, enum.Enum):
    DIRECT_CUSTOMER = "DIRECT_CUSTOMER"
    GSA = "GSA"
    CUSTOMER_CARE = "CUSTOMER_CARE"
    AGENT = "AGENT"


class GroupType(str, enum.Enum):
    EDUCATION = "EDUCATION"
    CONFERENCE = "CONFERENCE"
    SPORTS = "SPORTS"
    PILGRIMAGE = "PILGRIMAGE"
    MICE = "MICE"
    OTHER = "OTHER"


class Salutation(str, enum.Enum):
    MR = "MR"
    MRS = "MRS"
    MS = "MS"
    DR = "DR"
