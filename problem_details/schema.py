"""Pydantic model for the Problem Details response schema."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Problem(BaseModel):
    """Model of the RFC 9457 Problem Details response schema.

    This describes the wire format, where extension members appear as
    additional top-level properties. It is only used for documentation;
    see `problem_details.ProblemDetails` for the model used at runtime.
    """

    model_config = ConfigDict(extra='allow', title='Problem')

    type: Optional[str] = Field(
        None,
        description='A URI reference identifying the problem type.',
        json_schema_extra={'format': 'uri-reference', 'default': 'about:blank'},
    )
    status: Optional[int] = Field(
        None, ge=100, le=599,
        description='The HTTP status code generated by the origin server for this occurrence.',
    )
    title: Optional[str] = Field(
        None, description='A short, human-readable summary of the problem type.',
    )
    detail: Optional[str] = Field(
        None, description='A human-readable explanation specific to this occurrence.',
    )
    instance: Optional[str] = Field(
        None,
        description='A URI reference identifying this specific occurrence.',
        json_schema_extra={'format': 'uri-reference'},
    )
