"""Error envelope returned by every failing endpoint."""

from pydantic import BaseModel, Field


class ErrorDetail(BaseModel):
    field: str | None = None
    message: str


class ErrorBody(BaseModel):
    code: str
    message: str
    details: list[ErrorDetail] = []
    request_id: str = Field(alias="requestId")

    model_config = {"populate_by_name": True}


class ErrorResponse(BaseModel):
    """Top-level error envelope."""

    error: ErrorBody

    @classmethod
    def build(
        cls, code: str, message: str, request_id: str, details: list[dict] | None = None
    ) -> "ErrorResponse":
        return cls(
            error=ErrorBody(
                code=code,
                message=message,
                details=[ErrorDetail(**d) for d in details or []],
                request_id=request_id,
            )
        )
