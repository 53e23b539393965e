"""
Main entrypoint for the FastAPI server
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException as StarletteHTTPException
from core.lifespan import lifespan
from core.config import get_settings
from core.logger import logger
from core.models import generate_response

from api.files.exceptions import FileDropError, InvalidUpload
from api.files.routes import router as files_router


# Customize route id's
# Helpful for creating sensible names in the client
def custom_generate_unique_id(route: APIRoute):
    """ Generate unique route IDs based on route name """
    return f"{route.name}"  # these must be unique


# Create schema & router
app = FastAPI(
    title="Ghost Drop",
    lifespan=lifespan,
    generate_unique_id_function=custom_generate_unique_id
)

# CORS settings to allow client-server communication
# Set with env variable
origins = [get_settings().client_origin] if get_settings().client_origin else []

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# REST routers
# Add each api/feature folder here
API_PREFIX = "/v1"

app.include_router(files_router, prefix=API_PREFIX)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # Routing and body parsing errors get the envelope too
    return generate_response(
        exc.status_code,
        success=exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_410_GONE),
        error_text=str(exc.detail),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    fields = ", ".join(
        ".".join(str(part) for part in error["loc"]) for error in exc.errors()
    )
    return generate_response(
        status.HTTP_400_BAD_REQUEST,
        success=False,
        error_text=f"Invalid Form. ({fields})",
    )


@app.exception_handler(InvalidUpload)
async def invalid_upload_handler(request: Request, exc: InvalidUpload):
    return generate_response(
        status.HTTP_400_BAD_REQUEST, success=False, error_text=str(exc)
    )


@app.exception_handler(FileDropError)
async def file_drop_error_handler(request: Request, exc: FileDropError):
    # Store failures are operational; keep details in the log only
    logger.error(
        "%s %s failed: %s", request.method, request.url.path, exc, exc_info=exc
    )
    return generate_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        success=False,
        error_text="The request could not be completed. Please try again later.",
    )


# Health check endpoint for monitoring
@app.get("/health", tags=["health"])
def health_check():
    return {"status": "ok", "message": "Ghost Drop API is running"}


if __name__ == "__main__":
    # For debugging purposes
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=3000, reload=True)
