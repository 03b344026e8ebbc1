"""Tag recommendation and analytics Pydantic schemas."""

from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

SignalTypeField = Literal["similar_content", "co_occurrence", "user_pattern", "popularity"]


class TagResponse(BaseModel):
    """Tag as shown to the presentation layer."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str = Field(..., description="Tag ID")
    workspace_id: str = Field(..., alias="workspaceId")
    name: str = Field(..., description="Tag name")
    color: str | None = Field(None, description="Badge color")


class SignalReasonResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    signal_type: SignalTypeField = Field(..., alias="type")
    description: str
    score: float = Field(..., ge=0.0, le=1.0)


class SimilarItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    name: str
    type: Literal["project", "folder"]


class TagRecommendationResponse(BaseModel):
    """One recommended tag with provenance."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    tag: TagResponse
    score: float = Field(..., ge=0.0, description="Combined weighted score")
    reason: SignalTypeField | None = Field(
        None, description="Signal with the largest weighted contribution"
    )
    reasons: list[SignalReasonResponse] = Field(default_factory=list)
    cooccurring_tag_names: list[str] | None = Field(
        None, alias="cooccurringTags"
    )
    similar_items: list[SimilarItemResponse] | None = Field(
        None, alias="similarItems"
    )


class TagUsageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    tag_id: str = Field(..., alias="tagId")
    tag_name: str = Field(..., alias="tagName")
    color: str | None = None
    count: int


class TagTrendResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    day: date = Field(..., alias="date")
    tag_id: str = Field(..., alias="tagId")
    tag_name: str = Field(..., alias="tagName")
    count: int


class TagDistributionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    entity_type: str = Field(..., alias="entityType")
    tag_id: str = Field(..., alias="tagId")
    tag_name: str = Field(..., alias="tagName")
    count: int


class TagPairResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    tag1_id: str = Field(..., alias="tag1Id")
    tag1_name: str = Field(..., alias="tag1Name")
    tag2_id: str = Field(..., alias="tag2Id")
    tag2_name: str = Field(..., alias="tag2Name")
    count: int


class TagAnalyticsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    usage: list[TagUsageResponse] = Field(default_factory=list)
    trend: list[TagTrendResponse] = Field(default_factory=list)
    distribution: list[TagDistributionResponse] = Field(default_factory=list)
    cooccurrence: list[TagPairResponse] = Field(default_factory=list)


class TagCountsResponse(BaseModel):
    """Association counts of one tag."""

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    project_count: int = Field(..., alias="projectCount")
    folder_count: int = Field(..., alias="folderCount")
    template_count: int = Field(..., alias="templateCount")
    total_items: int = Field(..., alias="totalItems")


class TagStatsResponse(BaseModel):
    stats: TagCountsResponse


class EmbeddingBackfillResponse(BaseModel):
    """Result of an embedding backfill run."""

    model_config = ConfigDict(populate_by_name=True)

    workspace_id: str = Field(..., alias="workspaceId")
    embedded: dict[str, int] = Field(
        default_factory=dict, description="Number of embedded rows per kind"
    )
