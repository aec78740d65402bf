# controller/approval_controller.py
from fastapi import APIRouter, Depends, File, Query, UploadFile, status
from model.api import (
    ApprovalStatistics,
    PendingSubmissionResponse,
    RejectRequest,
    SubmitResponse,
    VerificationRequest,
)
from model.principal import Principal
from service.approval_service import ApprovalService
from util.constants import InternalURIs
from util.enums import SubmissionStatus
from controller.controller_dependencies import (
    enforce_max_upload_size,
    get_approval_service,
    rate_limited,
    require_admin,
    require_reviewer,
    to_uploaded,
    verification_form,
)

approval_router = APIRouter(dependencies=[Depends(rate_limited)])


@approval_router.post(
    InternalURIs.PENDING_SUBMIT,
    response_model=SubmitResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_max_upload_size)],
)
async def submit_thesis(
    file: UploadFile = File(...),
    validationDocument: UploadFile | None = File(None),
    request: VerificationRequest = Depends(verification_form),
    principal: Principal = Depends(require_admin),
    service: ApprovalService = Depends(get_approval_service),
) -> SubmitResponse:
    document = await to_uploaded(file)
    validation = await to_uploaded(validationDocument)
    submission, report = await service.submit(principal, request, document, validation)
    return SubmitResponse(
        submission=PendingSubmissionResponse.from_submission(submission), report=report
    )


@approval_router.get(InternalURIs.PENDING, response_model=list[PendingSubmissionResponse])
async def list_pending(
    status_filter: SubmissionStatus | None = Query(None, alias="status"),
    _: Principal = Depends(require_reviewer),
    service: ApprovalService = Depends(get_approval_service),
) -> list[PendingSubmissionResponse]:
    items = await service.list_by_status(status_filter)
    return [PendingSubmissionResponse.from_submission(s) for s in items]


# Static paths are registered before /{submission_id}
@approval_router.get(
    InternalURIs.PENDING_AWAITING, response_model=list[PendingSubmissionResponse]
)
async def awaiting_my_approval(
    principal: Principal = Depends(require_reviewer),
    service: ApprovalService = Depends(get_approval_service),
) -> list[PendingSubmissionResponse]:
    items = await service.awaiting_approval(principal)
    return [PendingSubmissionResponse.from_submission(s) for s in items]


@approval_router.get(InternalURIs.PENDING_STATS, response_model=ApprovalStatistics)
async def approval_stats(
    principal: Principal = Depends(require_reviewer),
    service: ApprovalService = Depends(get_approval_service),
) -> ApprovalStatistics:
    return await service.statistics(principal)


@approval_router.get(InternalURIs.PENDING_ITEM, response_model=PendingSubmissionResponse)
async def get_pending(
    submission_id: str,
    _: Principal = Depends(require_reviewer),
    service: ApprovalService = Depends(get_approval_service),
) -> PendingSubmissionResponse:
    return PendingSubmissionResponse.from_submission(await service.get(submission_id))


@approval_router.post(InternalURIs.PENDING_APPROVE, response_model=PendingSubmissionResponse)
async def approve_thesis(
    submission_id: str,
    principal: Principal = Depends(require_reviewer),
    service: ApprovalService = Depends(get_approval_service),
) -> PendingSubmissionResponse:
    return PendingSubmissionResponse.from_submission(
        await service.approve(submission_id, principal)
    )


@approval_router.post(InternalURIs.PENDING_REJECT, response_model=PendingSubmissionResponse)
async def reject_thesis(
    submission_id: str,
    payload: RejectRequest,
    principal: Principal = Depends(require_reviewer),
    service: ApprovalService = Depends(get_approval_service),
) -> PendingSubmissionResponse:
    return PendingSubmissionResponse.from_submission(
        await service.reject(submission_id, principal, payload.reason)
    )


@approval_router.post(
    InternalURIs.PENDING_RETRY_LEDGER, response_model=PendingSubmissionResponse
)
async def retry_ledger(
    submission_id: str,
    _: Principal = Depends(require_admin),
    service: ApprovalService = Depends(get_approval_service),
) -> PendingSubmissionResponse:
    return PendingSubmissionResponse.from_submission(
        await service.retry_ledger(submission_id)
    )
