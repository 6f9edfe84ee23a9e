"""
Enumerations for email agent data models.

All enums are closed taxonomies - no values outside these sets are permitted.
"""

from enum import Enum


class CategoryEnum(str, Enum):
    """
    Closed taxonomy of hotel email categories.

    Single-label: OTHER is a valid label when the email fits no other category.
    """

    BOOKING = "booking"
    INQUIRY = "inquiry"
    COMPLAINT = "complaint"
    CANCELLATION = "cancellation"
    OTHER = "other"


class SentimentEnum(str, Enum):
    """Email sentiment classification (exactly one value per email)."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class PriorityEnum(str, Enum):
    """
    Email priority/urgency classification.

    Ordered from low to urgent (can be used for ordinal comparisons).
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @classmethod
    def get_ordinal(cls, priority: "PriorityEnum") -> int:
        """Get ordinal value for priority (0=low, 1=medium, 2=high, 3=urgent)."""
        order = [cls.LOW, cls.MEDIUM, cls.HIGH, cls.URGENT]
        return order.index(priority)


class RequestTypeEnum(str, Enum):
    """Kind of guest request a generated reply addresses."""

    BOOKING = "booking"
    INQUIRY = "inquiry"
    MODIFICATION = "modification"
