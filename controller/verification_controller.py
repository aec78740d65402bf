# controller/verification_controller.py
from fastapi import APIRouter, Depends, File, UploadFile, status
from config.settings import settings
from model.api import (
    PaperLookupResponse,
    SupportedFormatsResponse,
    VerificationReport,
    VerificationRequest,
)
from model.principal import Principal
from service.verification_service import VerificationService
from util.constants import (
    InternalURIs,
    REPORT_DISCLAIMER,
    SUPPORTED_CONTENT_TYPES,
    SUPPORTED_EXTENSIONS,
)
from controller.controller_dependencies import (
    enforce_max_upload_size,
    get_principal,
    get_verification_service,
    rate_limited,
    require_reviewer,
    to_uploaded,
    verification_form,
)

verification_router = APIRouter(dependencies=[Depends(rate_limited)])


@verification_router.post(
    InternalURIs.VERIFY_THESIS,
    response_model=VerificationReport,
    status_code=status.HTTP_200_OK,
    dependencies=[Depends(enforce_max_upload_size)],
)
async def verify_thesis(
    file: UploadFile = File(...),
    request: VerificationRequest = Depends(verification_form),
    principal: Principal = Depends(get_principal),
    service: VerificationService = Depends(get_verification_service),
) -> VerificationReport:
    document = await to_uploaded(file)
    return await service.verify(principal, request, document)


@verification_router.get(
    InternalURIs.SUPPORTED_FORMATS, response_model=SupportedFormatsResponse
)
async def supported_formats() -> SupportedFormatsResponse:
    return SupportedFormatsResponse(
        formats=list(SUPPORTED_EXTENSIONS),
        contentTypes=list(SUPPORTED_CONTENT_TYPES),
        maxFileMb=settings.MAX_FILE_MB,
        notes="Legacy .doc files must be converted to .docx. " + REPORT_DISCLAIMER,
    )


@verification_router.get(InternalURIs.PAPER_BY_HASH, response_model=PaperLookupResponse)
async def paper_by_hash(
    file_hash: str,
    _: Principal = Depends(require_reviewer),
    service: VerificationService = Depends(get_verification_service),
) -> PaperLookupResponse:
    return await service.lookup_by_hash(file_hash.strip().lower())
