from .service import DEFAULT_ENCODER, TokenService

__all__ = ["TokenService", "DEFAULT_ENCODER"]
