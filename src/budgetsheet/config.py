from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from types import MappingProxyType, SimpleNamespace
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from .cells import normalize_text, parse_percent
from .errors import ConfigError
from .models import Category, ColumnRole, CostComponent

_BOOLEAN_TRUE = {"1", "true", "yes", "on"}

DEFAULT_HEADER_SYNONYMS: Dict[ColumnRole, Tuple[str, ...]] = {
    ColumnRole.ITEM: (
        "item", "items", "description", "desc", "scope", "scope of work", "line item",
        "task", "work item",
    ),
    ColumnRole.LABOR_COST: (
        "labor", "labour", "labor cost", "labor amt", "labor amount", "labor total",
    ),
    ColumnRole.MATERIAL_COST: (
        "material", "materials", "mat", "mat cost", "material cost", "materials cost",
    ),
    ColumnRole.SUBCONTRACTOR_COST: (
        "sub", "subs", "sub cost", "sub amount", "subcontract", "subcontract cost",
        "subcontractor cost",
    ),
    ColumnRole.EQUIPMENT_COST: (
        "equipment", "equip", "equipment cost", "equipment rental", "rental",
    ),
    ColumnRole.UNIT: ("unit", "units", "uom", "u m"),
    ColumnRole.QUANTITY: ("quantity", "qty", "quant", "count"),
    ColumnRole.TOTAL_COST: (
        "total", "total cost", "cost total", "sum", "ext", "extended", "extended cost",
    ),
    ColumnRole.TOTAL_PRICE: (
        "total price", "total with markup", "total with mark up", "total w markup",
        "total w mark up", "sell", "sell price", "price",
    ),
    ColumnRole.VENDOR: (
        "subcontractor", "sub contractor", "vendor", "vendor name", "trade", "company",
        "contractor",
    ),
    ColumnRole.MARKUP: ("markup", "mark up", "mu", "markup pct", "margin"),
}

DEFAULT_STOP_MARKERS: Tuple[str, ...] = (
    "expenses",
    "expense tracking",
    "expense log",
    "rcg labor",
    "labor tracking",
    "timecard",
    "payroll",
    "reconciliation",
    "total cost",
    "total contract",
    "total job proposal",
    "construction contract",
    "terms and conditions",
    "signature",
    "summary",
)

DEFAULT_SUMMARY_MARKERS: Tuple[str, ...] = ("grand total", "subtotal", "sub total", "total")
DEFAULT_TOTAL_MARKERS: Tuple[str, ...] = ("total",)
DEFAULT_ZERO_MARKUP_PHRASES: Tuple[str, ...] = ("no markup", "no mark up", "zero markup", "at cost")
DEFAULT_MANAGEMENT_KEYWORDS: Tuple[str, ...] = (
    "supervision",
    "superintendent",
    "project manager",
    "project management",
    "management",
    "overhead",
)

DEFAULT_MARKUP_RATES: Dict[Category, Decimal] = {
    Category.SUBCONTRACTOR: Decimal("0.25"),
    Category.MATERIALS: Decimal("0.25"),
    Category.LABOR_INTERNAL: Decimal("0.25"),
    Category.EQUIPMENT: Decimal("0.25"),
    Category.MANAGEMENT: Decimal("0"),
    Category.OTHER: Decimal("0.25"),
}

DEFAULT_SPLIT_QUALIFIERS: Dict[CostComponent, str] = {
    CostComponent.LABOR: "Labor",
    CostComponent.MATERIAL: "Materials",
    CostComponent.SUBCONTRACTOR: "Subcontractor",
    CostComponent.EQUIPMENT: "Equipment",
}


@dataclass(frozen=True)
class ParserConfig:
    """Business rules consumed by every pipeline stage.

    Instances are immutable; build variants with :meth:`from_dict` or
    :func:`dataclasses.replace`.
    """

    header_synonyms: Mapping[ColumnRole, Tuple[str, ...]] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_HEADER_SYNONYMS))
    )
    stop_markers: Tuple[str, ...] = DEFAULT_STOP_MARKERS
    summary_markers: Tuple[str, ...] = DEFAULT_SUMMARY_MARKERS
    total_markers: Tuple[str, ...] = DEFAULT_TOTAL_MARKERS
    zero_markup_phrases: Tuple[str, ...] = DEFAULT_ZERO_MARKUP_PHRASES
    management_keywords: Tuple[str, ...] = DEFAULT_MANAGEMENT_KEYWORDS
    markup_rates: Mapping[Category, Decimal] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_MARKUP_RATES))
    )
    split_qualifiers: Mapping[CostComponent, str] = field(
        default_factory=lambda: MappingProxyType(dict(DEFAULT_SPLIT_QUALIFIERS))
    )
    reported_optional_roles: Tuple[ColumnRole, ...] = (ColumnRole.UNIT, ColumnRole.QUANTITY)
    internal_vendor: str = "RCG"
    header_scan_rows: int = 20
    min_header_score: int = 8
    max_consecutive_empty_rows: int = 3
    min_mapping_confidence: float = 0.6
    optional_role_penalty: float = 0.02
    optional_penalty_cap: float = 0.1
    totals_tolerance: Decimal = Decimal("1.00")
    default_unit: str = "LS"
    split_name_format: str = "{name} ({qualifier})"
    labor_billing_rate: Decimal = Decimal("75")
    labor_actual_rate: Decimal = Decimal("35")

    def markup_rate(self, category: Category) -> Decimal:
        if category is Category.MANAGEMENT:
            return Decimal("0")
        return self.markup_rates.get(category, self.markup_rates.get(Category.OTHER, Decimal("0")))

    def synonyms(self, role: ColumnRole) -> Tuple[str, ...]:
        return tuple(self.header_synonyms.get(role, ()))

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], base: Optional["ParserConfig"] = None) -> "ParserConfig":
        """Overlay ``raw`` (parsed JSON/YAML) on ``base`` or the defaults."""

        cfg = base or cls()
        changes: Dict[str, Any] = {}

        if "header_synonyms" in raw:
            synonyms = dict(cfg.header_synonyms)
            for key, values in (raw.get("header_synonyms") or {}).items():
                role = _enum_value(ColumnRole, key, "header_synonyms")
                synonyms[role] = tuple(normalize_text(v) for v in _as_list(values, key) if normalize_text(v))
            changes["header_synonyms"] = MappingProxyType(synonyms)

        for key in (
            "stop_markers",
            "summary_markers",
            "total_markers",
            "zero_markup_phrases",
            "management_keywords",
        ):
            if key in raw:
                changes[key] = tuple(normalize_text(v) for v in _as_list(raw[key], key) if normalize_text(v))

        if "markup_rates" in raw:
            rates = dict(cfg.markup_rates)
            for key, value in (raw.get("markup_rates") or {}).items():
                category = _enum_value(Category, key, "markup_rates")
                rate = parse_percent(value)
                if rate is None:
                    raise ConfigError(f"markup_rates.{key} must be a rate such as 0.25 or 25%, got {value!r}")
                rates[category] = rate
            changes["markup_rates"] = MappingProxyType(rates)

        if "split_qualifiers" in raw:
            qualifiers = dict(cfg.split_qualifiers)
            for key, value in (raw.get("split_qualifiers") or {}).items():
                qualifiers[_enum_value(CostComponent, key, "split_qualifiers")] = str(value)
            changes["split_qualifiers"] = MappingProxyType(qualifiers)

        if "reported_optional_roles" in raw:
            changes["reported_optional_roles"] = tuple(
                _enum_value(ColumnRole, v, "reported_optional_roles")
                for v in _as_list(raw["reported_optional_roles"], "reported_optional_roles")
            )

        for key in ("internal_vendor", "default_unit", "split_name_format"):
            if key in raw:
                changes[key] = str(raw[key]).strip()
        for key in ("header_scan_rows", "min_header_score", "max_consecutive_empty_rows"):
            if key in raw:
                changes[key] = _require_int(raw[key], key)
        for key in ("min_mapping_confidence", "optional_role_penalty", "optional_penalty_cap"):
            if key in raw:
                changes[key] = float(_require_decimal(raw[key], key))
        for key in ("totals_tolerance", "labor_billing_rate", "labor_actual_rate"):
            if key in raw:
                changes[key] = _require_decimal(raw[key], key)

        if "{name}" not in changes.get("split_name_format", cfg.split_name_format):
            raise ConfigError("split_name_format must contain '{name}'")
        return replace(cfg, **changes)


@dataclass(frozen=True)
class ClassifierConfig:
    """Settings for the optional line item classification step."""

    enabled: bool = False
    provider: str = "keywords"
    model: str = "gpt-4o-mini"
    api_key_env: str = "OPENAI_API_KEY"
    system_prompt: Optional[str] = None
    max_items: int = 200

    def resolve_api_key(self, env: Mapping[str, str] | None = None) -> Optional[str]:
        source = os.environ if env is None else env
        token = str(source.get(self.api_key_env, "")).strip()
        return token or None


@dataclass(frozen=True)
class Settings:
    """Runtime configuration assembled from a config file, the environment and CLI options."""

    parser: ParserConfig
    classifier: ClassifierConfig
    config_path: Optional[Path] = None
    max_rows: Optional[int] = None
    log_level: str = "WARNING"


def _as_list(value: Any, key: str) -> list:
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return list(value)
    raise ConfigError(f"{key} must be a list of strings")


def _enum_value(enum_cls, value: Any, key: str):
    text = str(value).strip().lower()
    try:
        return enum_cls(text)
    except ValueError as exc:
        raise ConfigError(f"Unknown {key} entry: {value!r}") from exc


def _to_decimal(value: object | None) -> Optional[Decimal]:
    if value is None:
        return None
    text = str(value).replace("$", "").replace(",", "").replace("%", "").strip()
    if not text:
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    return amount if amount.is_finite() else None


def _require_decimal(value: object, key: str) -> Decimal:
    amount = _to_decimal(value)
    if amount is None:
        raise ConfigError(f"{key} must be a number, got {value!r}")
    return amount


def _to_int(value: object | None) -> Optional[int]:
    amount = _to_decimal(value)
    return int(amount) if amount is not None else None


def _require_int(value: object, key: str) -> int:
    amount = _to_int(value)
    if amount is None:
        raise ConfigError(f"{key} must be an integer, got {value!r}")
    return amount


def _to_path(value: object | None) -> Optional[Path]:
    if value is None:
        return None
    if isinstance(value, Path):
        return value.expanduser().resolve()
    text = str(value).strip()
    if not text:
        return None
    return Path(text).expanduser().resolve()


def _flag(value: object | None) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _BOOLEAN_TRUE


def _namespace(cli_args: object | None) -> SimpleNamespace:
    if cli_args is None:
        return SimpleNamespace()
    if isinstance(cli_args, SimpleNamespace):
        return cli_args
    if hasattr(cli_args, "__dict__"):
        return SimpleNamespace(**{k: v for k, v in vars(cli_args).items()})
    return SimpleNamespace()


def read_config_file(path: Path) -> Dict[str, Any]:
    """Read a JSON or YAML configuration file into a dictionary."""

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        try:
            if path.suffix.lower() in {".yaml", ".yml"}:
                raw = yaml.safe_load(f)
            else:
                raw = json.load(f)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ConfigError(f"Invalid configuration file {path}: {exc}") from exc
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Configuration file {path} must contain a mapping")
    return raw


def _env_parser_overrides(env: Mapping[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if env.get("BUDGETSHEET_INTERNAL_VENDOR", "").strip():
        overrides["internal_vendor"] = env["BUDGETSHEET_INTERNAL_VENDOR"]
    if env.get("BUDGETSHEET_DEFAULT_UNIT", "").strip():
        overrides["default_unit"] = env["BUDGETSHEET_DEFAULT_UNIT"]
    tolerance = _to_decimal(env.get("BUDGETSHEET_TOTALS_TOLERANCE"))
    if tolerance is not None:
        overrides["totals_tolerance"] = tolerance
    min_confidence = _to_decimal(env.get("BUDGETSHEET_MIN_CONFIDENCE"))
    if min_confidence is not None:
        overrides["min_mapping_confidence"] = min_confidence
    rates: Dict[str, str] = {}
    for category in Category:
        rate = env.get(f"BUDGETSHEET_MARKUP_{category.value.upper()}", "").strip()
        if rate:
            rates[category.value] = rate
    if rates:
        overrides["markup_rates"] = rates
    return overrides


def load_parser_config(env: Mapping[str, str], path: Path | None = None) -> ParserConfig:
    """Build a :class:`ParserConfig` from an optional file plus environment overrides."""

    config_path = path or _to_path(env.get("BUDGETSHEET_CONFIG"))
    cfg = ParserConfig()
    if config_path is not None:
        raw = read_config_file(config_path)
        cfg = ParserConfig.from_dict(raw.get("parser", raw), cfg)
    overrides = _env_parser_overrides(env)
    if overrides:
        cfg = ParserConfig.from_dict(overrides, cfg)
    return cfg


def load_settings(env: Mapping[str, str], cli_args: object | None = None) -> Settings:
    """Build runtime :class:`Settings` from environment variables and CLI options."""

    cli_ns = _namespace(cli_args)
    config_path = _to_path(getattr(cli_ns, "config", None)) or _to_path(env.get("BUDGETSHEET_CONFIG"))
    raw: Dict[str, Any] = read_config_file(config_path) if config_path else {}

    parser_cfg = load_parser_config(env, config_path)
    billing_rate = getattr(cli_ns, "labor_billing_rate", None)
    if billing_rate is not None:
        parser_cfg = ParserConfig.from_dict({"labor_billing_rate": billing_rate}, parser_cfg)

    classifier_raw = raw.get("classifier") or {}
    default_classifier = ClassifierConfig()
    provider = str(
        env.get("BUDGETSHEET_CLASSIFIER") or classifier_raw.get("provider") or default_classifier.provider
    ).strip().lower()
    enabled = _flag(classifier_raw.get("enabled")) or _flag(env.get("BUDGETSHEET_CLASSIFY"))
    cli_classify = getattr(cli_ns, "classify", None)
    if cli_classify:
        enabled = cli_classify != "none"
        if enabled:
            provider = cli_classify
    classifier_cfg = ClassifierConfig(
        enabled=enabled,
        provider=provider,
        model=str(env.get("BUDGETSHEET_CLASSIFIER_MODEL") or classifier_raw.get("model") or default_classifier.model),
        api_key_env=str(classifier_raw.get("api_key_env", default_classifier.api_key_env)),
        system_prompt=classifier_raw.get("system_prompt"),
        max_items=_to_int(classifier_raw.get("max_items")) or default_classifier.max_items,
    )

    max_rows = _to_int(env.get("BUDGETSHEET_MAX_ROWS"))
    if getattr(cli_ns, "max_rows", None) is not None:
        max_rows = max(1, int(cli_ns.max_rows))

    log_level = str(env.get("BUDGETSHEET_LOG_LEVEL") or "WARNING").upper()
    if getattr(cli_ns, "log_level", None):
        log_level = str(cli_ns.log_level).upper()

    return Settings(
        parser=parser_cfg,
        classifier=classifier_cfg,
        config_path=config_path,
        max_rows=max_rows,
        log_level=log_level,
    )


__all__ = [
    "ClassifierConfig",
    "DEFAULT_HEADER_SYNONYMS",
    "DEFAULT_MARKUP_RATES",
    "DEFAULT_STOP_MARKERS",
    "ParserConfig",
    "Settings",
    "load_parser_config",
    "load_settings",
    "read_config_file",
]
