"""Closed value sets stored as plain strings."""

from enum import Enum


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class PaymentStatus(str, Enum):
    PAID = "paid"
    UNPAID = "unpaid"
    PENDING = "pending"


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"


class AuditAction(str, Enum):
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    REGISTER = "REGISTER"


class ResourceKind(str, Enum):
    ITEM = "ITEM"
    USER = "USER"
    PROFILE = "PROFILE"


class Severity(str, Enum):
    INFO = "INFO"
    SUCCESS = "SUCCESS"
    WARNING = "WARNING"
    ERROR = "ERROR"
