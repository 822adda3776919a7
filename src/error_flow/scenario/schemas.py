"""
Schemas for scenario documents.

A scenario describes custom kinds, one protected block made of declarative
steps and, optionally, the outcome the block is expected to produce.
"""
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

STEP_ACTIONS = ("print_", "raise_", "terminate", "return_", "block")


class StepSpec(BaseModel):
    """One operation or cleanup step. Exactly one action key is allowed."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    name: Optional[str] = None
    print_: Optional[str] = Field(default=None, alias="print")
    raise_: Optional[str] = Field(default=None, alias="raise")
    message: Optional[str] = None
    terminate: Optional[int] = None
    return_: Optional[Any] = Field(default=None, alias="return")
    block: Optional["BlockSpec"] = None
    declares: Optional[List[str]] = None

    @field_validator("print_", "raise_", "terminate", "block")
    @classmethod
    def action_not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("this action needs a value")
        return value

    @model_validator(mode="after")
    def exactly_one_action(self) -> "StepSpec":
        present = [field for field in STEP_ACTIONS if field in self.model_fields_set]
        if len(present) != 1:
            keys = ", ".join(field.rstrip("_") for field in STEP_ACTIONS)
            raise ValueError(f"a step needs exactly one of: {keys}")
        if self.message is not None and self.action != "raise":
            raise ValueError("'message' is only valid on a raise step")
        return self

    @property
    def action(self) -> str:
        for field in STEP_ACTIONS:
            if field in self.model_fields_set:
                return field.rstrip("_")
        raise ValueError("step has no action")


class HandlerSpec(BaseModel):
    """A catch clause."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    catch: List[str]
    name: Optional[str] = None
    print_: Optional[str] = Field(default=None, alias="print")
    steps: List[StepSpec] = Field(default_factory=list)
    result: Optional[Any] = None
    rethrow: Union[bool, str, None] = None
    message: Optional[str] = None

    @field_validator("catch", mode="before")
    @classmethod
    def single_kind_to_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [part.strip() for part in value.split("|")]
        return value

    @field_validator("catch")
    @classmethod
    def at_least_one_kind(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("a handler must catch at least one kind")
        return value


class BlockSpec(BaseModel):
    """A protected block: operations, handlers and optional cleanup."""

    model_config = ConfigDict(extra="forbid")

    name: str = "main"
    operations: List[StepSpec] = Field(default_factory=list)
    handlers: List[HandlerSpec] = Field(default_factory=list)
    cleanup: Optional[List[StepSpec]] = None
    declares: List[str] = Field(default_factory=list)


class ExpectSpec(BaseModel):
    """Expected outcome of a scenario."""

    model_config = ConfigDict(extra="forbid")

    outcome: Literal["completed", "handled", "unhandled", "terminated"]
    output: Optional[List[str]] = None
    result: Optional[Any] = None
    kind: Optional[str] = None
    cleanup_ran: Optional[bool] = None


class ScenarioSpec(BaseModel):
    """Top-level scenario document."""

    model_config = ConfigDict(extra="forbid")

    name: str
    description: str = ""
    kinds: Dict[str, str] = Field(default_factory=dict)
    block: BlockSpec
    expect: Optional[ExpectSpec] = None


StepSpec.model_rebuild()
HandlerSpec.model_rebuild()
BlockSpec.model_rebuild()
ScenarioSpec.model_rebuild()
