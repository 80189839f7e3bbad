import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

HEADING_LEVELS = range(1, 7)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BrokenLink(BaseModel):
    """A sampled link whose probe errored or answered with status >= 400."""

    model_config = ConfigDict(frozen=True)

    url: str
    status_code: int = 0
    error: Optional[str] = None


class AnalysisResult(BaseModel):
    """
    Outcome of one page analysis run.

    Heading counts are derived from the heading lists, so they cannot drift
    from them. Metrics that were not computed before a failure keep their
    zero/empty defaults.
    """

    model_config = ConfigDict(frozen=True)

    url: str
    status_code: int = 0
    html_version: str = ""
    meta_title: str = ""
    meta_description: str = ""

    h1_tags: List[str] = Field(default_factory=list)
    h2_tags: List[str] = Field(default_factory=list)
    h3_tags: List[str] = Field(default_factory=list)
    h4_tags: List[str] = Field(default_factory=list)
    h5_tags: List[str] = Field(default_factory=list)
    h6_tags: List[str] = Field(default_factory=list)

    image_count: int = 0
    total_links: int = 0
    internal_links: int = 0
    external_links: int = 0
    broken_links: List[BrokenLink] = Field(default_factory=list)

    has_login_form: bool = False
    form_count: int = 0

    load_time: float = 0.0
    page_size: int = 0

    error_message: Optional[str] = None
    analyzed_at: datetime = Field(default_factory=_utcnow)

    @computed_field
    @property
    def h1_count(self) -> int:
        return len(self.h1_tags)

    @computed_field
    @property
    def h2_count(self) -> int:
        return len(self.h2_tags)

    @computed_field
    @property
    def h3_count(self) -> int:
        return len(self.h3_tags)

    @computed_field
    @property
    def h4_count(self) -> int:
        return len(self.h4_tags)

    @computed_field
    @property
    def h5_count(self) -> int:
        return len(self.h5_tags)

    @computed_field
    @property
    def h6_count(self) -> int:
        return len(self.h6_tags)

    @computed_field
    @property
    def broken_link_count(self) -> int:
        return len(self.broken_links)

    def headings(self, level: int) -> List[str]:
        if level not in HEADING_LEVELS:
            raise ValueError(f"Heading level must be 1-6, got {level}")
        return getattr(self, f"h{level}_tags")

    @property
    def outcome(self) -> str:
        """
        "completed" for a clean run, "completed_with_errors" when the page
        answered but something went wrong afterwards, "failed" when no
        status code was ever received.
        """
        if not self.error_message:
            return "completed"
        if self.status_code > 0:
            return "completed_with_errors"
        return "failed"


class AnalysisPatch(BaseModel):
    """
    Partial update for a stored URL record, shaped like AnalysisResult.

    Every field is optional; None means "leave the stored value alone".
    """

    status: Optional[str] = None
    status_code: Optional[int] = None
    html_version: Optional[str] = None
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None

    h1_tags: Optional[List[str]] = None
    h2_tags: Optional[List[str]] = None
    h3_tags: Optional[List[str]] = None
    h4_tags: Optional[List[str]] = None
    h5_tags: Optional[List[str]] = None
    h6_tags: Optional[List[str]] = None

    image_count: Optional[int] = None
    total_links: Optional[int] = None
    internal_links: Optional[int] = None
    external_links: Optional[int] = None
    broken_links: Optional[List[BrokenLink]] = None

    has_login_form: Optional[bool] = None
    form_count: Optional[int] = None

    load_time: Optional[float] = None
    page_size: Optional[int] = None

    error_message: Optional[str] = None
    analyzed_at: Optional[datetime] = None

    @classmethod
    def from_result(cls, result: AnalysisResult) -> "AnalysisPatch":
        # A run that never got a status code failed; anything else completed.
        status = "completed" if result.status_code > 0 else "failed"
        data = result.model_dump(
            exclude={
                "url",
                "h1_count",
                "h2_count",
                "h3_count",
                "h4_count",
                "h5_count",
                "h6_count",
                "broken_link_count",
            }
        )
        data["status"] = status
        data["error_message"] = result.error_message or ""
        return cls(**data)

    @classmethod
    def failed(cls, message: str) -> "AnalysisPatch":
        return cls(status="failed", error_message=message, analyzed_at=_utcnow())

    def to_record(self) -> Dict[str, Any]:
        """
        Flatten the patch into storage columns.

        List fields are JSON-encoded, link totals are stored as
        ``link_count`` and the broken link list as ``broken_links_list`` with
        its length in ``broken_links``. Unset fields are omitted.
        """
        record = self.model_dump(exclude_none=True, mode="json")

        for level in HEADING_LEVELS:
            key = f"h{level}_tags"
            if key in record:
                tags = record[key]
                record[key] = json.dumps(tags)
                record[f"h{level}_count"] = len(tags)

        if "total_links" in record:
            record["link_count"] = record.pop("total_links")

        if "broken_links" in record:
            broken = record.pop("broken_links")
            record["broken_links"] = len(broken)
            record["broken_links_list"] = json.dumps(
                [{k: v for k, v in link.items() if v is not None} for link in broken]
            )

        return record
