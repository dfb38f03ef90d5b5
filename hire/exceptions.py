"""
Domain errors raised by the hire services.

Views catch these and show the message as a flash notification instead of
letting the request fail with a 500.
"""


class HireError(Exception):
    """Base class for errors with a user-facing message."""

    default_message = "Operation failed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidPeriodError(HireError):
    default_message = "The rental must end after it starts."


class VehicleUnavailableError(HireError):
    default_message = "The vehicle is already booked for the selected period."


class InvalidStatusError(HireError):
    default_message = "The rental is not in a state that allows this action."


class MileageError(HireError):
    default_message = "Enter a valid odometer reading."


class SignatureError(HireError):
    default_message = "The document must be signed."


class InvoiceError(HireError):
    default_message = "The invoice could not be created."


class PreRegistrationError(HireError):
    default_message = "This registration link is invalid or has expired."


class StorageUploadError(HireError):
    default_message = "The file could not be uploaded."


class ContractRenderError(HireError):
    default_message = "The document could not be generated."
