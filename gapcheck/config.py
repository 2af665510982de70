"""Load gapcheck configuration from pyproject.toml."""

from __future__ import annotations

import dataclasses
import pathlib
import tomllib
import typing

from gapcheck import errors

if typing.TYPE_CHECKING:
    from gapcheck.rules import base


@dataclasses.dataclass(frozen=True)
class Config:
    """Resolved gapcheck configuration.

    Attributes:
        select: Rule IDs to run. ``None`` means all registered rules are active.
        ignore: Rule IDs to exclude from the active set.
        rule_options: Per-rule option tables keyed by rule ID. Values are
            passed to ``Rule.configure`` unchecked.
        problems: Malformed entries found while reading the file. They are
            skipped and reported alongside rule option errors.
    """

    select: frozenset[str] | None
    ignore: frozenset[str]
    rule_options: dict[str, dict[str, object]] = dataclasses.field(
        default_factory=dict, hash=False
    )
    problems: tuple[errors.ConfigurationError, ...] = ()


def _find_pyproject(start: pathlib.Path) -> pathlib.Path | None:
    """Walk up from *start* to find the nearest pyproject.toml."""
    for directory in [start, *start.parents]:
        candidate = directory / "pyproject.toml"
        if candidate.is_file():
            return candidate
    return None


def _id_list(
    section: dict[str, object],
    key: str,
    problems: list[errors.ConfigurationError],
) -> frozenset[str] | None:
    raw = section.get(key)
    if raw is None:
        return None
    if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
        problems.append(
            errors.ConfigurationError(f"{key}: expected a list of rule IDs, got {raw!r}")
        )
        return None
    return frozenset(rule_id.strip().upper() for rule_id in raw)


def _option_tables(
    section: dict[str, object],
    problems: list[errors.ConfigurationError],
) -> dict[str, dict[str, object]]:
    raw = section.get("rules", {})
    if not isinstance(raw, dict):
        problems.append(errors.ConfigurationError("rules: expected a table"))
        return {}
    tables: dict[str, dict[str, object]] = {}
    for rule_id, options in raw.items():
        if not isinstance(options, dict):
            problems.append(
                errors.ConfigurationError(f"rules.{rule_id}: expected a table of options")
            )
            continue
        tables[rule_id.upper()] = dict(options)
    return tables


def load_config(start: pathlib.Path | None = None) -> Config:
    """Return the Config from the nearest pyproject.toml, or defaults.

    Reads ``[tool.gapcheck]`` from the first ``pyproject.toml`` found by
    walking up from *start* (defaults to ``Path.cwd()``).  A missing file or
    section yields the defaults (all rules active, none ignored).  A file
    that cannot be parsed, or a ``select``, ``ignore`` or ``rules`` entry of
    the wrong shape, is recorded in ``Config.problems`` and otherwise
    treated as absent.

    Args:
        start: Directory to begin the upward search.  Defaults to cwd.
    """
    search_root = start if start is not None else pathlib.Path.cwd()
    pyproject = _find_pyproject(search_root)
    if pyproject is None:
        return Config(select=None, ignore=frozenset())

    try:
        with pyproject.open("rb") as fh:
            data = tomllib.load(fh)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        problem = errors.ConfigurationError(f"{pyproject}: {exc}")
        return Config(select=None, ignore=frozenset(), problems=(problem,))

    section = data.get("tool", {}).get("gapcheck", {})
    problems: list[errors.ConfigurationError] = []
    if not isinstance(section, dict):
        problems.append(errors.ConfigurationError("tool.gapcheck: expected a table"))
        section = {}
    select = _id_list(section, "select", problems)
    ignore = _id_list(section, "ignore", problems)
    rule_options = _option_tables(section, problems)
    return Config(
        select=select,
        ignore=ignore if ignore is not None else frozenset(),
        rule_options=rule_options,
        problems=tuple(problems),
    )


def configure_rules(
    active_rules: list[base.Rule],
    config: Config,
) -> tuple[list[base.Rule], list[errors.ConfigurationError]]:
    """Return rules with per-rule options from config applied.

    For each rule whose ID appears in ``config.rule_options``, calls
    ``rule.configure(opts)`` and uses the returned instance.  Rules with no
    matching options are returned unchanged.  A rule whose options cannot
    be parsed is left out, and its error is returned so the caller can
    report it before analysis starts; the other rules are unaffected.

    Args:
        active_rules: The filtered list of rules to configure.
        config: The active configuration.

    Returns:
        The configured rules, preserving order, and the configuration
        errors of the rules that were left out.
    """
    result: list[base.Rule] = []
    failures: list[errors.ConfigurationError] = []
    for rule in active_rules:
        opts = config.rule_options.get(rule.rule_id, {})
        if not opts:
            result.append(rule)
            continue
        try:
            result.append(rule.configure(opts))
        except errors.ConfigurationError as exc:
            failures.append(errors.ConfigurationError(f"{rule.rule_id}: {exc}"))
    return result, failures


def filter_rules(
    all_rules: list[base.Rule],
    config: Config,
) -> list[base.Rule]:
    """Return the subset of *all_rules* allowed by *config*.

    ``select`` is applied first (restricting to that set), then ``ignore``
    removes any listed IDs.  Rule identity is determined by the class name,
    which matches the rule ID (e.g. ``SEP001``).

    Args:
        all_rules: Full list of available rule instances.
        config: The active configuration.

    Returns:
        Filtered list preserving the original order.
    """
    active = all_rules
    if config.select is not None:
        active = [rule for rule in active if rule.rule_id in config.select]
    if config.ignore:
        active = [rule for rule in active if rule.rule_id not in config.ignore]
    return active


def resolve_rules(
    all_rules: list[base.Rule],
    config: Config,
) -> tuple[list[base.Rule], list[errors.ConfigurationError]]:
    """Filter then configure *all_rules* according to *config*.

    The returned errors start with the problems found while loading
    *config*, followed by those of rules whose options were rejected.
    """
    active, failures = configure_rules(filter_rules(all_rules, config), config)
    return active, [*config.problems, *failures]
