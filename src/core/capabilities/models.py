# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Capability data model.

A capability is a versioned, declarative description of one action the
system can perform: its parameter schema, the triggers and examples used
to match it against free text, the function declaration offered to the
LLM, and a tagged execution descriptor telling the dispatcher what to do.

Documents are stored with camelCase field names (``shortDescription``,
``functionDeclaration``...). Python code uses the snake_case attributes;
both spellings are accepted on input.

Example:
    >>> capability = Capability.model_validate(load_yaml(path))
    >>> capability.execution.type
    'wizard'
    >>> capability.missing_required({"grade": "ד"})
    ['topic']
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model reading and writing camelCase documents."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


# =============================================================================
# Enumerations
# =============================================================================


class CapabilityCategory(str, Enum):
    """Closed set of capability categories."""

    INTERACTIVE_CONTENT = "interactive_content"
    STATIC_CONTENT = "static_content"
    CURRICULUM = "curriculum"
    MEDIA = "media"
    SEARCH = "search"
    ANALYTICS = "analytics"
    UTILITY = "utility"


class ComplexityLevel(str, Enum):
    """Advisory complexity, ordered simple < medium < complex."""

    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"

    @property
    def rank(self) -> int:
        """Ordinal used for tie-breaking (lower is simpler)."""
        return _COMPLEXITY_RANK[self]


_COMPLEXITY_RANK = {
    ComplexityLevel.SIMPLE: 0,
    ComplexityLevel.MEDIUM: 1,
    ComplexityLevel.COMPLEX: 2,
}


class ExecutionType(str, Enum):
    """How a capability is executed."""

    WIZARD = "wizard"
    DIRECT_API = "direct_api"
    PROMPT_BASED = "prompt_based"
    HYBRID = "hybrid"


class CapabilityStatus(str, Enum):
    """Publication status.

    Disabled entries are never matched; deprecated entries stay matchable
    but are down-ranked.
    """

    ACTIVE = "active"
    DEPRECATED = "deprecated"
    BETA = "beta"
    DISABLED = "disabled"


class ParameterType(str, Enum):
    """Supported parameter types."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"
    ENUM = "enum"


CAPABILITY_CATEGORY_LABELS: dict[CapabilityCategory, str] = {
    CapabilityCategory.INTERACTIVE_CONTENT: "תוכן אינטראקטיבי",
    CapabilityCategory.STATIC_CONTENT: "תוכן להדפסה",
    CapabilityCategory.CURRICULUM: 'תוכ"ל',
    CapabilityCategory.MEDIA: "מדיה",
    CapabilityCategory.SEARCH: "חיפוש",
    CapabilityCategory.ANALYTICS: "ניתוח",
    CapabilityCategory.UTILITY: "כלים",
}

# Old wizard productType values still sent by clients.
LEGACY_PRODUCT_TYPE_TO_CAPABILITY: dict[str, str] = {
    "lesson": "create_interactive_lesson",
    "activity": "create_interactive_activity",
    "exam": "create_interactive_exam",
    "micro_activity": "create_micro_activity",
    "worksheet": "generate_worksheet",
    "lesson_plan": "generate_lesson_plan",
    "letter": "generate_letter",
    "feedback": "generate_feedback",
    "rubric": "generate_rubric",
    "test": "generate_printable_test",
}


def is_missing_value(value: Any) -> bool:
    """Whether a collected value counts as absent (None, blank, empty list)."""
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    if isinstance(value, (list, dict)) and not value:
        return True
    return False


# =============================================================================
# Parameter schema
# =============================================================================


class ValidationRules(CamelModel):
    """Length, range and pattern constraints of a parameter."""

    min_length: int | None = None
    max_length: int | None = None
    min: float | None = None
    max: float | None = None
    pattern: str | None = None


class ParameterSpec(CamelModel):
    """Schema of a single capability parameter.

    Attributes:
        name: Parameter name (filled from the mapping key).
        type: Parameter type.
        description: Human readable description (Hebrew).
        required: Whether the parameter must be supplied.
        default_value: Value applied when an optional parameter is absent.
        enum_values: Allowed values for enum parameters.
        validation_rules: Length/range/pattern constraints.
        properties: Nested schema for object parameters.
    """

    name: str = ""
    type: ParameterType = ParameterType.STRING
    description: str = ""
    required: bool = False
    default_value: Any = None
    enum_values: list[str] | None = None
    validation_rules: ValidationRules | None = None
    properties: dict[str, "ParameterSpec"] | None = None

    @property
    def has_default(self) -> bool:
        """Whether a default value is declared."""
        return self.default_value is not None

    def to_json_schema(self) -> dict[str, Any]:
        """Render the parameter as a JSON-schema property."""
        schema: dict[str, Any] = {}
        if self.type == ParameterType.ENUM:
            schema["type"] = "string"
            if self.enum_values:
                schema["enum"] = list(self.enum_values)
        elif self.type == ParameterType.ARRAY:
            schema["type"] = "array"
            schema["items"] = {"type": "string"}
        elif self.type == ParameterType.OBJECT:
            schema["type"] = "object"
            if self.properties:
                schema["properties"] = {
                    key: spec.to_json_schema() for key, spec in self.properties.items()
                }
                nested_required = [
                    key for key, spec in self.properties.items() if spec.required
                ]
                if nested_required:
                    schema["required"] = nested_required
        else:
            schema["type"] = self.type.value
            if self.enum_values:
                schema["enum"] = list(self.enum_values)
        if self.description:
            schema["description"] = self.description
        return schema


# =============================================================================
# Matching hints
# =============================================================================


class Triggers(CamelModel):
    """Cheap matching rules.

    Attributes:
        keywords: Substrings that make the capability a candidate.
        patterns: Regular expressions that make the capability a candidate.
        contexts: Advisory context tags (e.g. ``interactive_mode``).
        exclusions: Substrings that veto a match even if keywords hit.
    """

    keywords: list[str] = Field(default_factory=list)
    patterns: list[str] = Field(default_factory=list)
    contexts: list[str] = Field(default_factory=list)
    exclusions: list[str] = Field(default_factory=list)


class CapabilityExample(CamelModel):
    """Few-shot example: an utterance and the parameters it should yield."""

    user_message: str
    expected_params: dict[str, Any] = Field(default_factory=dict)
    explanation: str | None = None


class FunctionParameters(CamelModel):
    """JSON-schema object describing function arguments."""

    type: Literal["object"] = "object"
    properties: dict[str, Any] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)


class FunctionDeclaration(CamelModel):
    """Function declaration offered to an LLM function-calling API."""

    name: str
    description: str = ""
    parameters: FunctionParameters = Field(default_factory=FunctionParameters)


# =============================================================================
# Execution descriptors (tagged by ``type``)
# =============================================================================


class _ExecutionBase(CamelModel):
    preprocessors: list[str] = Field(default_factory=list)
    postprocessors: list[str] = Field(default_factory=list)


class WizardExecution(_ExecutionBase):
    """Open a UI wizard with the collected parameters."""

    type: Literal["wizard"] = "wizard"
    wizard_component: str
    wizard_mode: str
    api_endpoint: str | None = None


class DirectApiExecution(_ExecutionBase):
    """Call an external generation endpoint."""

    type: Literal["direct_api"] = "direct_api"
    api_endpoint: str
    api_method: Literal["GET", "POST"] = "POST"


class PromptExecution(_ExecutionBase):
    """Run a stored prompt template through the LLM."""

    type: Literal["prompt_based"] = "prompt_based"
    prompt_id: str


StepExecution = Annotated[
    Union[WizardExecution, DirectApiExecution, PromptExecution],
    Field(discriminator="type"),
]


class HybridExecution(_ExecutionBase):
    """Run a list of non-hybrid steps in order."""

    type: Literal["hybrid"] = "hybrid"
    steps: list[StepExecution] = Field(min_length=1)


ExecutionDescriptor = Annotated[
    Union[WizardExecution, DirectApiExecution, PromptExecution, HybridExecution],
    Field(discriminator="type"),
]


# =============================================================================
# Presentation, dependencies, analytics
# =============================================================================


class CapabilityUI(CamelModel):
    """Menu and presentation hints."""

    icon: str | None = None
    color: str | None = None
    show_in_menu: bool = False
    menu_order: int = 100
    quick_replies_after: list[str] = Field(default_factory=list)


class CapabilityDependencies(CamelModel):
    """Relations to other capabilities."""

    requires: list[str] = Field(default_factory=list)
    conflicts_with: list[str] = Field(default_factory=list)
    suggest_after: list[str] = Field(default_factory=list)


class CapabilityAnalytics(CamelModel):
    """Usage counters maintained by the dispatcher."""

    usage_count: int = 0
    success_count: int = 0
    success_rate: float = 0.0
    avg_execution_time_ms: float = 0.0
    last_used: datetime | None = None


# =============================================================================
# Capability
# =============================================================================


class Capability(CamelModel):
    """A declaratively registered action.

    Attributes:
        id: Stable unique identifier (also the function name).
        version: Semantic version of the document.
        name: Display name.
        description: Full description.
        short_description: One-line description used for ranking.
        category: Capability category.
        complexity: Advisory complexity.
        execution_type: Mirrors ``execution.type``.
        parameters: Ordered parameter schema.
        triggers: Keyword/pattern/context/exclusion rules.
        examples: Few-shot examples.
        function_declaration: Declaration for LLM function calling.
        execution: Tagged execution descriptor.
        ui: Menu and presentation hints.
        dependencies: Relations to other capabilities.
        status: Publication status.
        analytics: Stored usage counters.
        tags: Free-form tags.
    """

    id: str = Field(min_length=1)
    version: str = "1.0.0"
    name: str
    description: str = ""
    short_description: str = ""
    category: CapabilityCategory
    complexity: ComplexityLevel = ComplexityLevel.MEDIUM
    execution_type: ExecutionType | None = None
    parameters: dict[str, ParameterSpec] = Field(default_factory=dict)
    triggers: Triggers = Field(default_factory=Triggers)
    examples: list[CapabilityExample] = Field(default_factory=list)
    function_declaration: FunctionDeclaration | None = None
    execution: ExecutionDescriptor
    ui: CapabilityUI = Field(default_factory=CapabilityUI)
    dependencies: CapabilityDependencies = Field(default_factory=CapabilityDependencies)
    status: CapabilityStatus = CapabilityStatus.ACTIVE
    analytics: CapabilityAnalytics | None = None
    tags: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    created_by: str | None = None

    @model_validator(mode="after")
    def _check_consistency(self) -> "Capability":
        for key, spec in self.parameters.items():
            spec.name = key
        declared = ExecutionType(self.execution.type)
        if self.execution_type is None:
            self.execution_type = declared
        elif self.execution_type != declared:
            raise ValueError(
                f"executionType '{self.execution_type.value}' does not match "
                f"execution.type '{declared.value}'"
            )
        return self

    @property
    def is_matchable(self) -> bool:
        """Disabled capabilities never take part in matching."""
        return self.status != CapabilityStatus.DISABLED

    def required_parameters(self) -> list[str]:
        """Names of required parameters in schema order."""
        return [name for name, spec in self.parameters.items() if spec.required]

    def missing_required(self, params: dict[str, Any]) -> list[str]:
        """Required parameters absent from ``params`` (defaults never count)."""
        return [
            name for name in self.required_parameters()
            if is_missing_value(params.get(name))
        ]

    def required_with_defaults(self) -> list[str]:
        """Required parameters that also declare a (meaningless) default."""
        return [
            name for name, spec in self.parameters.items()
            if spec.required and spec.has_default
        ]

    def get_function_declaration(self) -> FunctionDeclaration:
        """Return the declared function, or derive one from the schema."""
        if self.function_declaration is not None:
            return self.function_declaration
        return FunctionDeclaration(
            name=self.id,
            description=self.short_description or self.description or self.name,
            parameters=FunctionParameters(
                properties={
                    name: spec.to_json_schema() for name, spec in self.parameters.items()
                },
                required=self.required_parameters(),
            ),
        )

    def to_tool_definition(self) -> dict[str, Any]:
        """Function declaration in the OpenAI/LiteLLM ``tools`` shape.

        The function name is always the capability id so that a call can
        be matched back to the registry.
        """
        declaration = self.get_function_declaration()
        return {
            "type": "function",
            "function": {
                "name": self.id,
                "description": declaration.description or self.name,
                "parameters": declaration.parameters.model_dump(by_alias=True),
            },
        }
