"""
Envelope padrão das respostas da API
"""

from enum import Enum
from typing import Any, Optional

from fastapi.responses import JSONResponse


class ApiErrorType(str, Enum):
    VALIDATION = 'validation_error'
    AUTH = 'authentication_error'
    NOT_FOUND = 'not_found'
    RATE_LIMIT = 'rate_limit_exceeded'
    UNAVAILABLE = 'service_unavailable'
    SERVER = 'internal_server_error'


STATUS_MAP = {
    ApiErrorType.VALIDATION: 400,
    ApiErrorType.AUTH: 401,
    ApiErrorType.NOT_FOUND: 404,
    ApiErrorType.RATE_LIMIT: 429,
    ApiErrorType.UNAVAILABLE: 503,
    ApiErrorType.SERVER: 500,
}


class ApiError(Exception):
    """Erro de rota convertido no envelope {success: false, error}"""

    def __init__(self, error_type: ApiErrorType, message: str,
                 details: Any = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.error_type = error_type
        self.message = message
        self.details = details
        self.status_code = status_code or STATUS_MAP[error_type]


def success_response(data: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={'success': True, 'data': data})


def error_response(error_type: ApiErrorType, message: str, details: Any = None,
                   status_code: Optional[int] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code or STATUS_MAP[error_type],
        content={
            'success': False,
            'error': {
                'type': error_type.value,
                'message': message,
                'details': details,
            }
        }
    )
