class BookingError(Exception):
    status_code = 500

    def __init__(self, message: str, *, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(BookingError):
    status_code = 400


class InvalidFormat(ValidationError):
    pass


class AuthError(BookingError):
    status_code = 401


class Unauthenticated(AuthError):
    pass


class ProviderUnavailable(BookingError):
    status_code = 500


class MailError(ProviderUnavailable):
    pass
