from fastapi import HTTPException, status


class JobHubException(HTTPException):
    code: str = "server_error"

    def __init__(self, detail: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR):
        super().__init__(status_code=status_code, detail=detail)


class NotFoundError(JobHubException):
    code = "not_found"

    def __init__(self, resource: str, resource_id: str | None = None):
        detail = f"{resource} not found"
        if resource_id:
            detail = f"{resource} '{resource_id}' not found"
        super().__init__(detail=detail, status_code=status.HTTP_404_NOT_FOUND)


class PermissionDeniedError(JobHubException):
    code = "permission_denied"

    def __init__(self, detail: str = "You do not have permission to perform this action"):
        super().__init__(detail=detail, status_code=status.HTTP_403_FORBIDDEN)


class BadRequestError(JobHubException):
    code = "bad_request"

    def __init__(self, detail: str):
        super().__init__(detail=detail, status_code=status.HTTP_400_BAD_REQUEST)


class ConflictError(JobHubException):
    """Optimistic-concurrency precondition failed; re-read the job and retry."""

    code = "conflict"

    def __init__(self, detail: str = "The job was modified by someone else. Please refresh and try again."):
        super().__init__(detail=detail, status_code=status.HTTP_409_CONFLICT)


class InvalidTransitionError(JobHubException):
    code = "invalid_transition"

    def __init__(self, action: str, current_status: str):
        self.action = action
        self.current_status = current_status
        super().__init__(
            detail=f"Cannot {action.replace('_', ' ')} while job is {current_status}",
            status_code=status.HTTP_400_BAD_REQUEST,
        )


class QuoteExpiredError(JobHubException):
    code = "quote_expired"

    def __init__(self, detail: str = "This quote has expired or is no longer current"):
        super().__init__(detail=detail, status_code=status.HTTP_410_GONE)


class InvalidQuoteError(JobHubException):
    code = "invalid_quote"

    def __init__(self, detail: str):
        super().__init__(detail=detail, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


class AmountMismatchError(JobHubException):
    code = "amount_mismatch"

    def __init__(self, expected: str, received: str):
        self.expected = expected
        self.received = received
        super().__init__(
            detail=f"Payment amount {received} does not match accepted quote amount {expected}",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )


class OutOfOrderStageError(JobHubException):
    code = "out_of_order_stage"

    def __init__(self, stage: str, current_stage: str):
        super().__init__(
            detail=f"Stage {stage} cannot be recorded after {current_stage}",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )


class ExternalServiceError(JobHubException):
    code = "external_service_error"

    def __init__(self, service: str, detail: str | None = None):
        msg = f"External service error: {service}"
        if detail:
            msg += f" - {detail}"
        super().__init__(detail=msg, status_code=status.HTTP_502_BAD_GATEWAY)
