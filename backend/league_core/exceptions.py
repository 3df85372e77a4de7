from pydantic import BaseModel
from typing import Optional


class ProblemDetail(BaseModel):
    """RFC 7807 compliant error response."""

    type: str = "about:blank"
    title: str
    detail: Optional[str] = None
    status: int
    instance: Optional[str] = None
    code: str


class DomainException(Exception):
    """Base class for domain-specific exceptions."""

    def __init__(
        self,
        status_code: int,
        title: str,
        *,
        code: str,
        detail: str | None = None,
        type_: str = "about:blank",
    ) -> None:
        super().__init__(detail or title)
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.type = type_
        self.code = code


class MatchNotFound(DomainException):
    def __init__(self, match_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Match not found",
            detail=f"match '{match_id}' not found",
            code="match_not_found",
        )


class DivisionNotFound(DomainException):
    def __init__(self, division_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Division not found",
            detail=f"division '{division_id}' not found",
            code="division_not_found",
        )


class MatchNotCompleted(DomainException):
    def __init__(self, match_id: str, status: str | None) -> None:
        super().__init__(
            status_code=409,
            title="Match not completed",
            detail=f"match '{match_id}' has status {status!r}; expected 'completed'",
            code="match_not_completed",
        )


class ResultsAlreadyExist(DomainException):
    def __init__(self, match_id: str) -> None:
        super().__init__(
            status_code=409,
            title="Results already exist",
            detail=f"results for match '{match_id}' were already created",
            code="results_already_exist",
        )


class RatingNotFound(DomainException):
    def __init__(self, player_id: str, season_id: str | None = None) -> None:
        scope = f" in season '{season_id}'" if season_id else ""
        super().__init__(
            status_code=404,
            title="Rating not found",
            detail=f"no rating for player '{player_id}'{scope}",
            code="rating_not_found",
        )


class InvalidMatchDataError(ValueError):
    """Raised when submitted scores or match participants are unusable.

    The operation that raised it has not mutated anything; the caller is
    expected to correct the input and resubmit.
    """

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail
