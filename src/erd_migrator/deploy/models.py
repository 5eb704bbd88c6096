"""Result models for a convergence run.

- ``ItemResult``: outcome for one named object
- ``CategoryReport``: outcomes for one object category with counts
- ``CreatedObjectRegistry``: logical name -> remote identifier, per category
- ``StageResult``: what one driver stage adds
- ``MigrationResult``: the folded, final summary of a run
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from erd_migrator.erd.models import ParseDiagnostic


class ItemOutcome(str, Enum):
    CREATED = "created"
    EXISTING = "existing"
    FAILED = "failed"
    SKIPPED = "skipped"


class ObjectCategory(str, Enum):
    OPTION_SETS = "option_sets"
    TABLES = "tables"
    RELATIONSHIPS = "relationships"


class ItemResult(BaseModel):
    """Outcome for one declared object.

    Example:
        >>> ItemResult(name="new_status", outcome=ItemOutcome.CREATED, identifier="abc").ok
        True
    """

    model_config = ConfigDict(frozen=True)

    name: str
    outcome: ItemOutcome
    identifier: str | None = None
    error: str | None = None
    note: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is not ItemOutcome.FAILED


class CategoryReport(BaseModel):
    """All item outcomes for one category, in processing order."""

    model_config = ConfigDict(frozen=True)

    category: ObjectCategory
    items: tuple[ItemResult, ...] = ()

    def _count(self, outcome: ItemOutcome) -> int:
        return sum(1 for item in self.items if item.outcome is outcome)

    @property
    def declared(self) -> int:
        """Items the source asked for (reserved/skipped items excluded)."""
        return len(self.items) - self._count(ItemOutcome.SKIPPED)

    @property
    def created(self) -> int:
        return self._count(ItemOutcome.CREATED)

    @property
    def existing(self) -> int:
        return self._count(ItemOutcome.EXISTING)

    @property
    def failed(self) -> int:
        return self._count(ItemOutcome.FAILED)

    def merged(self, other: "CategoryReport") -> "CategoryReport":
        return CategoryReport(category=self.category, items=self.items + other.items)


class CreatedObjectRegistry(BaseModel):
    """Logical name -> remote identifier for every converged object."""

    model_config = ConfigDict(frozen=True)

    option_sets: dict[str, str] = Field(default_factory=dict)
    tables: dict[str, str] = Field(default_factory=dict)
    relationships: dict[str, str] = Field(default_factory=dict)

    def merged(self, other: "CreatedObjectRegistry") -> "CreatedObjectRegistry":
        return CreatedObjectRegistry(
            option_sets={**self.option_sets, **other.option_sets},
            tables={**self.tables, **other.tables},
            relationships={**self.relationships, **other.relationships},
        )


class StageResult(BaseModel):
    """Additions produced by one stage of the driver."""

    model_config = ConfigDict(frozen=True)

    report: CategoryReport
    registry: CreatedObjectRegistry = Field(default_factory=CreatedObjectRegistry)


class MigrationResult(BaseModel):
    """Summary of one convergence run.

    Example:
        >>> result = MigrationResult()
        >>> result.success
        True
        >>> print(result.format_report())
        Option sets: 0 declared, 0 created, 0 existing, 0 failed
        Tables: 0 declared, 0 created, 0 existing, 0 failed
        Relationships: 0 declared, 0 created, 0 existing, 0 failed
    """

    model_config = ConfigDict(frozen=True)

    option_sets: CategoryReport = Field(
        default_factory=lambda: CategoryReport(category=ObjectCategory.OPTION_SETS)
    )
    tables: CategoryReport = Field(
        default_factory=lambda: CategoryReport(category=ObjectCategory.TABLES)
    )
    relationships: CategoryReport = Field(
        default_factory=lambda: CategoryReport(category=ObjectCategory.RELATIONSHIPS)
    )
    registry: CreatedObjectRegistry = Field(default_factory=CreatedObjectRegistry)
    diagnostics: tuple[ParseDiagnostic, ...] = ()
    dry_run: bool = False

    @property
    def reports(self) -> list[CategoryReport]:
        return [self.option_sets, self.tables, self.relationships]

    @property
    def success(self) -> bool:
        """True if no item failed."""
        return all(report.failed == 0 for report in self.reports)

    @property
    def created_count(self) -> int:
        return sum(report.created for report in self.reports)

    def with_stage(self, stage: StageResult) -> "MigrationResult":
        """Fold a stage's additions into a new result."""
        field_name = stage.report.category.value
        current: CategoryReport = getattr(self, field_name)
        return self.model_copy(
            update={
                field_name: current.merged(stage.report),
                "registry": self.registry.merged(stage.registry),
            }
        )

    def format_report(self) -> str:
        """Format the run summary as human-readable text."""
        titles = {
            ObjectCategory.OPTION_SETS: "Option sets",
            ObjectCategory.TABLES: "Tables",
            ObjectCategory.RELATIONSHIPS: "Relationships",
        }
        lines: list[str] = []
        for report in self.reports:
            lines.append(
                f"{titles[report.category]}: {report.declared} declared, "
                f"{report.created} created, {report.existing} existing, "
                f"{report.failed} failed"
            )
            for item in report.items:
                if item.outcome is ItemOutcome.FAILED:
                    lines.append(f"  - {item.name}: {item.error}")
        return "\n".join(lines)
