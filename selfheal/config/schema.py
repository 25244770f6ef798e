from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field, field_validator


class EnvironmentConfig(BaseModel):
    base_url: str = "http://localhost:8080"
    browser_matrix: list[str] = Field(default_factory=lambda: ["chrome"])
    default_timeout_seconds: int = 10
    headless: bool = True

    @field_validator("browser_matrix")
    @classmethod
    def validate_browsers(cls, value: list[str]) -> list[str]:
        allowed = {"chrome", "firefox"}
        normalized = [item.lower() for item in value]
        invalid = [item for item in normalized if item not in allowed]
        if invalid:
            raise ValueError(f"Unsupported browsers: {', '.join(invalid)}")
        return normalized


class SuggestionMode(str, Enum):
    DISABLED = "disabled"
    MOCK = "mock"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"


class SuggestionConfig(BaseModel):
    mode: SuggestionMode = SuggestionMode.DISABLED
    model: str | None = None
    api_key: str | None = None
    timeout_seconds: float = 30.0
    excerpt_chars: int = Field(default=5000, gt=0)
    default_context: str = "General page interaction"


class LedgerConfig(BaseModel):
    directory: Path = Path("data/selectors")
    filename: str = "healing-log.jsonl"
    lock_timeout_seconds: float = Field(default=5.0, ge=0)
    recent_window: int = Field(default=10, ge=0)

    @property
    def path(self) -> Path:
        return self.directory / self.filename


class HeuristicSelector(BaseModel):
    selector: str
    reason: str


TODOMVC_HEURISTICS = [
    HeuristicSelector(selector=".new-todo", reason="TodoMVC new todo input class"),
    HeuristicSelector(selector="input.new-todo", reason="TodoMVC new todo input"),
    HeuristicSelector(selector='input[type="text"]', reason="Generic text input"),
    HeuristicSelector(selector="input:not([type])", reason="Input with no type (defaults to text)"),
    HeuristicSelector(selector=".toggle", reason="TodoMVC toggle checkbox class"),
    HeuristicSelector(selector='input[type="checkbox"]', reason="Generic checkbox input"),
    HeuristicSelector(selector=".destroy", reason="TodoMVC delete button"),
]


class ResolverConfig(BaseModel):
    domain_heuristics: list[HeuristicSelector] = Field(
        default_factory=lambda: [item.model_copy() for item in TODOMVC_HEURISTICS]
    )


class ElementDefinition(BaseModel):
    key: str
    selector: str
    context: str | None = None

    @field_validator("selector")
    @classmethod
    def validate_selector(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("selector must not be empty")
        return value.strip()


class SuiteConfig(BaseModel):
    environment: EnvironmentConfig = Field(default_factory=EnvironmentConfig)
    suggestion: SuggestionConfig = Field(default_factory=SuggestionConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    elements: list[ElementDefinition] = Field(default_factory=list)

    def get_element(self, key: str) -> ElementDefinition:
        for element in self.elements:
            if element.key == key:
                return element
        raise KeyError(f"Unknown element key: {key}")
