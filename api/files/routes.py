"""
Routes/endpoints for the Files API
"""

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from fastapi.responses import JSONResponse

from api.files.models import RetrievalStatus
from core.deps import CoordinatorDep, IngestorDep
from core.models import ResponseEnvelope, generate_response

router = APIRouter(prefix="/files", tags=["File Endpoints"])


async def get_supplied_password(request: Request) -> str | None:
    """
    Password sent with a retrieval, from the form body or the query string.
    Form values take precedence.
    """
    form = await request.form()
    password = form.get("password")
    if isinstance(password, str) and password:
        return password
    return request.query_params.get("password")


@router.put(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ResponseEnvelope,
    tags=["File Endpoints"],
)
def upload_file(
    ingestor: IngestorDep,
    file: UploadFile | None = File(None),
    password: str | None = Form(None),
) -> JSONResponse:
    """
    Upload a file, optionally protected by a password.

    The returned id can be used exactly once to retrieve the file.
    """
    if file is None:
        return generate_response(
            status.HTTP_400_BAD_REQUEST,
            success=False,
            error_text="Invalid Form. (Missing file)",
        )

    stored = ingestor.ingest(
        content=file.file.read(),
        filename=file.filename,
        content_type=file.content_type,
        password=password,
    )
    return generate_response(status.HTTP_201_CREATED, success=True, content=stored)


# Status code and success flag for each retrieval result
_RETRIEVAL_RESPONSES = {
    RetrievalStatus.GRANTED: (status.HTTP_200_OK, True),
    RetrievalStatus.GONE: (status.HTTP_410_GONE, True),
    RetrievalStatus.NOT_FOUND: (status.HTTP_404_NOT_FOUND, True),
    RetrievalStatus.UNAUTHORIZED: (status.HTTP_401_UNAUTHORIZED, False),
    RetrievalStatus.INVALID_IDENTIFIER: (status.HTTP_400_BAD_REQUEST, False),
}


@router.get("/{file_id}", response_model=ResponseEnvelope, tags=["File Endpoints"])
def retrieve_file(
    file_id: str,
    coordinator: CoordinatorDep,
    password: str | None = Depends(get_supplied_password),
) -> JSONResponse:
    """
    Retrieve a file. Succeeds only once per file; afterwards the file
    is deleted and this endpoint answers 410 Gone.
    """
    outcome = coordinator.retrieve(file_id, password)
    status_code, success = _RETRIEVAL_RESPONSES[outcome.status]
    return generate_response(
        status_code,
        success=success,
        error_text=outcome.message or "No Error.",
        content=outcome.file,
    )
