"""Core validation pipeline for bundle modules.

Rules run in a fixed order and the first failure is raised. ``check`` wraps
the raising pipeline into a report for CLI output.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

from apkx.config import ApkxConfig
from apkx.errors import ValidationFailure
from apkx.models.bundle import Bundle, BundleModule

from .rules import DEFAULT_BUNDLE_RULES, DEFAULT_MODULE_RULES, BundleRule, ModuleRule

logger = logging.getLogger(__name__)


class ValidationStatus(str, Enum):
    """Validation status."""
    PASS = "pass"
    FAIL = "fail"


@dataclass
class ValidationIssue:
    """A single validation issue found during validation."""
    rule: str
    message: str
    module: str | None = None

    def __str__(self) -> str:
        location = f" in module '{self.module}'" if self.module else ""
        return f"[FAIL] {self.rule}: {self.message}{location}"


@dataclass
class ValidationReport:
    """Outcome of validating one bundle."""
    status: ValidationStatus
    issues: list[ValidationIssue] = field(default_factory=list)
    counters: dict[str, int] = field(default_factory=dict)

    @property
    def exit_code(self) -> int:
        """Exit code for CI: 0 = pass, 1 = fail."""
        return 0 if self.status == ValidationStatus.PASS else 1

    def increment_counter(self, name: str, value: int = 1) -> None:
        self.counters[name] = self.counters.get(name, 0) + value

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON output."""
        return {
            "status": self.status.value,
            "exit_code": self.exit_code,
            "counters": self.counters,
            "issues": [
                {"rule": issue.rule, "message": issue.message, "module": issue.module}
                for issue in self.issues
            ],
        }


def rule_name(rule) -> str:
    return rule.__name__


class BundleValidator:
    """Runs module rules on each module, then bundle rules across all modules."""

    def __init__(
        self,
        module_rules: Sequence[ModuleRule] | None = None,
        bundle_rules: Sequence[BundleRule] | None = None,
    ):
        self.module_rules: list[ModuleRule] = list(
            DEFAULT_MODULE_RULES if module_rules is None else module_rules
        )
        self.bundle_rules: list[BundleRule] = list(
            DEFAULT_BUNDLE_RULES if bundle_rules is None else bundle_rules
        )

    @classmethod
    def from_config(cls, config: ApkxConfig) -> "BundleValidator":
        """Create the default pipeline minus the rules disabled in config."""
        validator = cls()
        validator.disable(config.validation.disabled_rules)
        return validator

    @property
    def rule_names(self) -> list[str]:
        return [rule_name(rule) for rule in [*self.module_rules, *self.bundle_rules]]

    def disable(self, names: Sequence[str]) -> None:
        """Remove rules by name.

        Raises:
            ValueError: If a name matches no rule
        """
        unknown = set(names) - set(self.rule_names)
        if unknown:
            raise ValueError(
                f"Unknown validation rules: {', '.join(sorted(unknown))}. "
                f"Available: {', '.join(self.rule_names)}"
            )
        self.module_rules = [r for r in self.module_rules if rule_name(r) not in names]
        self.bundle_rules = [r for r in self.bundle_rules if rule_name(r) not in names]

    def validate_module(self, module: BundleModule) -> None:
        """Raise the first ValidationFailure found in a module."""
        for rule in self.module_rules:
            failure = rule(module)
            if failure is not None:
                failure.rule = rule_name(rule)
                raise failure

    def validate_all_modules(self, modules: Sequence[BundleModule]) -> None:
        """Raise the first ValidationFailure found across the modules."""
        for rule in self.bundle_rules:
            failure = rule(modules)
            if failure is not None:
                failure.rule = rule_name(rule)
                raise failure

    def validate(self, bundle: Bundle) -> None:
        """Validate every module, then the bundle as a whole."""
        logger.info(f"Validating {len(bundle.modules)} modules of {bundle.source or 'bundle'}")
        for module in bundle.modules:
            logger.debug(f"Validating module: {module.name}")
            self.validate_module(module)
        self.validate_all_modules(bundle.modules)

    def check(self, bundle: Bundle) -> ValidationReport:
        """Validate a bundle and report the outcome instead of raising."""
        report = ValidationReport(status=ValidationStatus.PASS)
        report.increment_counter("modules", len(bundle.modules))
        report.increment_counter("apex_modules", sum(1 for m in bundle.modules if m.is_apex))
        report.increment_counter("rules", len(self.module_rules) + len(self.bundle_rules))
        try:
            self.validate(bundle)
        except ValidationFailure as failure:
            report.status = ValidationStatus.FAIL
            report.issues.append(
                ValidationIssue(failure.rule or "unknown", failure.message, failure.module_name)
            )

        logger.info(f"Validation completed with status: {report.status.value}")
        return report
