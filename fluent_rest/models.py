"""Result envelope returned by every fetch operation."""

from datetime import timedelta
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator

from fluent_rest.constants import NO_STATUS, is_success_status
from fluent_rest.errors import ErrorKind, FluentRestError


T = TypeVar("T")


class RestResult(BaseModel, Generic[T]):
    """Result of a REST call.

    Encapsulates the decoded value (if any), the status code, the error
    description and the durations of the request and deserialization phases.
    Envelopes are immutable: streams derive each new envelope from the
    previous one with ``advance`` instead of mutating it.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    request_time: timedelta = Field(
        default=timedelta(0), description="Duration of the network phase"
    )
    deserialization_time: timedelta = Field(
        default=timedelta(0),
        description="Duration of the decode phase; cumulative since stream open "
        "when streaming",
    )
    status_code: int = Field(
        default=NO_STATUS, ge=0, le=999, description="HTTP status, 0 on local failure"
    )
    error_description: str = Field(default="", description="Failure message")
    error_kind: ErrorKind | None = Field(
        default=None, description="Failure classification"
    )
    sequence: int = Field(default=0, ge=0, description="Position within a stream")
    value: T | None = Field(default=None, description="Decoded value")

    @model_validator(mode="after")
    def check_value_requires_success(self) -> "RestResult[T]":
        if self.value is not None and not self.is_success:
            msg = (
                f"Envelope with status {self.status_code} and error kind "
                f"{self.error_kind} cannot carry a value"
            )
            raise ValueError(msg)
        return self

    @property
    def total_time(self) -> timedelta:
        """Total duration of request and deserialization."""
        return self.request_time + self.deserialization_time

    @property
    def is_success(self) -> bool:
        """Check if the status is 2xx and no error was recorded."""
        return self.error_kind is None and is_success_status(self.status_code)

    def _carried_fields(self) -> dict[str, Any]:
        return {
            "request_time": self.request_time,
            "deserialization_time": self.deserialization_time,
            "status_code": self.status_code,
            "error_description": self.error_description,
            "error_kind": self.error_kind,
        }

    def retype(self) -> "RestResult[Any]":
        """Reinterpret this result for another value type.

        Returns:
            New envelope with status, error and timing copied, no value and
            sequence reset to 0.
        """
        return RestResult(**self._carried_fields())

    def advance(self) -> "RestResult[T]":
        """Derive the next envelope of a stream.

        Returns:
            New envelope with status, error and timing copied, no value and
            sequence incremented by one.
        """
        return type(self)(**self._carried_fields(), sequence=self.sequence + 1)

    def with_value(self, value: T, deserialization_time: timedelta) -> "RestResult[T]":
        """Attach a decoded value.

        Args:
            value: Decoded value.
            deserialization_time: Duration of the decode phase.

        Returns:
            New envelope carrying the value.

        Raises:
            pydantic.ValidationError: If this envelope is not a success.
        """
        fields = self._carried_fields()
        fields["deserialization_time"] = deserialization_time
        return type(self)(**fields, sequence=self.sequence, value=value)

    def with_error(
        self,
        error: FluentRestError,
        deserialization_time: timedelta | None = None,
    ) -> "RestResult[T]":
        """Record a failure.

        Args:
            error: Failure to report.
            deserialization_time: Decode duration to record, if any.

        Returns:
            New envelope with the error's status and message and no value.
        """
        fields = self._carried_fields()
        fields["status_code"] = error.status_code
        fields["error_description"] = error.message
        fields["error_kind"] = error.kind
        if deserialization_time is not None:
            fields["deserialization_time"] = deserialization_time
        return type(self)(**fields, sequence=self.sequence)
