"""Error taxonomy for the key system"""


class KeyGateError(Exception):
    """Base error; each subclass carries the HTTP status it maps to."""

    status_code = 500
    default_message = "Erro interno"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(KeyGateError):
    status_code = 400
    default_message = "Requisição inválida"


class AuthError(KeyGateError):
    status_code = 403
    default_message = "Token inválido"


class NotFoundError(KeyGateError):
    status_code = 404
    default_message = "Key não encontrada"


class StorageError(KeyGateError):
    status_code = 500
    default_message = "Erro ao salvar keys"


class GatewayError(KeyGateError):
    """Generic upstream failure from the Monetizzy API."""

    status_code = 500
    default_message = "Erro na API Monetizzy"


class GatewayTimeoutError(GatewayError):
    status_code = 408
    default_message = "Tempo esgotado na API Monetizzy"


class GatewayAuthError(GatewayError):
    """Monetizzy rejected our bearer credential (not the caller's token check)."""

    status_code = 401
    default_message = "Token recusado pela API Monetizzy"
