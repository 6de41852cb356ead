from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from pydantic import ValidationError
from fastapi.exceptions import HTTPException
from timeclock.services.exceptions import TimeclockError
from timeclock.utils.logger import log_error

def timeclock_error_response(error: TimeclockError) -> JSONResponse:
    content = {
        "success": False,
        "error": {
            "code": error.code,
            "message": error.message,
        }
    }
    if error.details:
        content["error"]["details"] = error.details
    return JSONResponse(status_code=error.status_code, content=content)

class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)

        except ValidationError as ve:
            return JSONResponse(
                status_code=422,
                content={
                    "success": False,
                    "error": {
                        "code": "VALIDATION_ERROR",
                        "message": str(ve),
                        "details": ve.errors(include_url=False, include_context=False)
                    }
                },
            )

        except HTTPException as he:
            return JSONResponse(
                status_code=he.status_code,
                content={
                    "success": False,
                    "error": {
                        "code": "HTTP_EXCEPTION",
                        "message": he.detail
                    }
                },
            )

        except Exception as e:
            log_error(f"Unhandled error on {request.method} {request.url.path}", e)

            return JSONResponse(
                status_code=500,
                content={
                    "success": False,
                    "error": {
                        "code": "INTERNAL_ERROR",
                        "message": "An internal error occurred."
                    }
                },
            )
