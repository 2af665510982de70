"""Entry point: gapcheck [check <path>... | serve]."""

import pathlib
import typing

import typer

app = typer.Typer()

# Directories that are never interesting to analyse.
_SKIP_DIRS: frozenset[str] = frozenset(
    {".git", ".gradle", ".idea", "build", "target", "out", "node_modules"}
)

_EXIT_FINDINGS = 1
_EXIT_ERRORS = 2


def _collect_java_files(root: pathlib.Path) -> list[pathlib.Path]:
    """Recursively find .java files under root, skipping non-source directories."""
    return sorted(
        java_file
        for java_file in root.rglob("*.java")
        if not any(part in _SKIP_DIRS for part in java_file.relative_to(root).parts)
    )


def _git_diff_java_files() -> list[pathlib.Path]:
    """Return .java files changed relative to HEAD in the current git repository.

    Returns an empty list when git is unavailable or the directory is not a
    git repository.
    """
    import subprocess  # noqa: PLC0415

    try:
        root_proc = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],  # noqa: S607
            capture_output=True,
            text=True,
            check=False,
        )
        diff_proc = subprocess.run(
            ["git", "diff", "--name-only", "--diff-filter=ACMR", "HEAD"],  # noqa: S607
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError:
        return []
    if root_proc.returncode != 0 or diff_proc.returncode != 0:
        return []
    git_root = pathlib.Path(root_proc.stdout.strip())
    return [
        git_root / line
        for line in diff_proc.stdout.splitlines()
        if line.endswith(".java")
    ]


def _resolve_files(
    paths: list[pathlib.Path] | None,
    *,
    diff: bool,
) -> list[pathlib.Path]:
    """Expand paths and optionally the git diff into a deduplicated .java file list."""
    candidates: list[pathlib.Path] = []
    if diff:
        candidates.extend(_git_diff_java_files())
    for raw_path in paths or []:
        if raw_path.is_dir():
            candidates.extend(_collect_java_files(raw_path))
        else:
            candidates.append(raw_path)
    seen: set[pathlib.Path] = set()
    unique: list[pathlib.Path] = []
    for file_path in candidates:
        resolved = file_path.resolve()
        if resolved not in seen:
            seen.add(resolved)
            unique.append(file_path)
    return unique


@app.command(no_args_is_help=True)
def check(
    paths: typing.Annotated[
        list[pathlib.Path] | None,
        typer.Argument(help="Files or directories to check."),
    ] = None,
    diff: typing.Annotated[  # noqa: FBT002
        bool,
        typer.Option("--diff", help="Check .java files changed in the current git diff."),
    ] = False,
) -> None:
    """Check one or more files/directories for blank-line violations.

    Rules with invalid options are reported and skipped; the remaining rules
    still run.  A file whose syntax tree breaks an internal invariant is
    reported as an internal error and skipped.

    Raises:
        typer.Exit: With code 2 on configuration or internal errors, otherwise
            code 1 if any violations were found.
    """
    from gapcheck import analyzer as gapcheck_analyzer  # noqa: PLC0415
    from gapcheck import config as gapcheck_config  # noqa: PLC0415
    from gapcheck import errors, rules  # noqa: PLC0415

    java_files = _resolve_files(paths, diff=diff)
    cfg = gapcheck_config.load_config()
    active_rules, config_errors = gapcheck_config.resolve_rules(rules.ALL_RULES, cfg)
    for config_error in config_errors:
        typer.echo(f"config error: {config_error}", err=True)

    analyzer = gapcheck_analyzer.Analyzer(rules=active_rules)
    found_any = False
    failed = bool(config_errors)

    for file_path in java_files:
        try:
            source = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            typer.echo(f"error: {file_path}: {e}", err=True)
            failed = True
            continue

        try:
            diagnostics = analyzer.analyze(source)
        except errors.ContractViolation as e:
            typer.echo(f"internal error: {file_path}: {e}", err=True)
            failed = True
            continue

        for diag in diagnostics:
            typer.echo(
                f"{file_path}:{diag.line}:{diag.col}: {diag.rule_id} {diag.message}"
            )
        if diagnostics:
            found_any = True

    if failed:
        raise typer.Exit(code=_EXIT_ERRORS)
    if found_any:
        raise typer.Exit(code=_EXIT_FINDINGS)


@app.command()
def serve() -> None:
    """Run the LSP server over stdio."""
    from gapcheck import server  # noqa: PLC0415

    server.start()


def main() -> None:
    """Dispatch to CLI check mode or LSP server mode."""
    app()


if __name__ == "__main__":
    main()
