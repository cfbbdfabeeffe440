from photobook.tools.booking_api import BookingApiClient, BookingApiError

__all__ = ["BookingApiClient", "BookingApiError"]
