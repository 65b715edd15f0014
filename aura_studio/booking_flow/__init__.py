"""
Booking flow client.

Drives the booking modal against the public API: availability paging, the
reservation hold state machine and the payment submission sequence.
"""

from .api_client import BookingApiClient, BookingApiError
from .models import ContactDetails, DiscountValidation, Reservation, SlotSelection
from .payment_flow import BookingSession, CardConfirmationError, StripeCardConfirmer
from .reservation_hold import HoldState, ReservationHold

__all__ = [
    "BookingApiClient",
    "BookingApiError",
    "BookingSession",
    "CardConfirmationError",
    "ContactDetails",
    "DiscountValidation",
    "HoldState",
    "Reservation",
    "ReservationHold",
    "SlotSelection",
    "StripeCardConfirmer",
]
