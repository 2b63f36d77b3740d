"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class BankIntegrationError(DomainException):
    """Base error for the Banco do Brasil integration"""

    pass


class CertificatesNotFound(BankIntegrationError):
    """mTLS certificate set for a connection is missing or empty"""

    def __init__(self, connection_id: str, detail: str = "certificates not found"):
        self.connection_id = connection_id
        super().__init__(f"{detail} for connection {connection_id}")


class TransportError(BankIntegrationError):
    """Socket or connection level failure (including timeouts)"""

    pass


class HttpStatusError(BankIntegrationError):
    """Bank API answered with a non-2xx status"""

    def __init__(self, status_code: int, status_message: str = ""):
        self.status_code = status_code
        self.status_message = status_message
        super().__init__(f"Bank API error: {status_code} {status_message}".rstrip())


class MalformedResponse(BankIntegrationError):
    """Successful response whose body is not valid JSON"""

    pass


class CredentialsInsufficient(BankIntegrationError):
    """Stored wallet metadata lacks the minimum credential fields"""

    pass


class InvalidDateRangeError(DomainException):
    """Requested statement period is outside what the bank accepts"""

    pass
