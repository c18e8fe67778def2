"""Auth-related enums."""

from enum import Enum


class Role(str, Enum):
    """
    Platform roles.

    Roles only widen permissions; record relations (lawyer on the appointment,
    mediator on the mediation) are checked separately.
    """

    CLIENT = "client"
    LAWYER = "lawyer"
    MEDIATOR = "mediator"
    ADMIN = "admin"
