"""
Structured results produced by the email agents.

EmailClassification is the validated form of the classifier's JSON output.
ResponseContext carries the business facts the reply generator may mention.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from email_agent_core.models.enums import (
    CategoryEnum,
    PriorityEnum,
    RequestTypeEnum,
    SentimentEnum,
)


class ExtractedInfo(BaseModel):
    """
    Booking details the model found in the email.

    All fields optional: models often omit or null out what they cannot find.
    Unknown extra keys are kept.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    guest_name: Optional[str] = Field(default=None, alias="guestName")
    check_in: Optional[str] = Field(default=None, alias="checkIn")
    check_out: Optional[str] = Field(default=None, alias="checkOut")
    room_type: Optional[str] = Field(default=None, alias="roomType")
    number_of_guests: Optional[int] = Field(default=None, ge=0, alias="numberOfGuests")


class EmailClassification(BaseModel):
    """
    Classification of one inbound email.

    Field aliases match the camelCase keys the model is asked to produce.
    """
    model_config = ConfigDict(populate_by_name=True)

    advert: bool = Field(..., description="True when the email is marketing/advertising")
    category: CategoryEnum = Field(..., description="Email category")
    priority: PriorityEnum = Field(..., description="Urgency")
    sentiment: SentimentEnum = Field(..., description="Overall tone")
    extracted_info: ExtractedInfo = Field(default_factory=ExtractedInfo, alias="extractedInfo")
    suggested_action: str = Field(..., alias="suggestedAction", description="Next step for staff")
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0, description="Model confidence")


class HotelPolicies(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    cancellation: str
    check_in_time: str = Field(..., alias="checkInTime")
    check_out_time: str = Field(..., alias="checkOutTime")


class ResponseContext(BaseModel):
    """Facts the response generator is allowed to state in a reply."""
    model_config = ConfigDict(populate_by_name=True)

    hotel_name: str = Field(..., alias="hotelName")
    request_type: RequestTypeEnum = Field(..., alias="requestType")
    rooms_available: bool = Field(..., alias="roomsAvailable")
    hotel_policies: HotelPolicies = Field(..., alias="hotelPolicies")
    guest_name: Optional[str] = Field(default=None, alias="guestName")
    check_in_date: Optional[str] = Field(default=None, alias="checkInDate")
    check_out_date: Optional[str] = Field(default=None, alias="checkOutDate")
    suggested_price: Optional[float] = Field(default=None, ge=0.0, alias="suggestedPrice")
