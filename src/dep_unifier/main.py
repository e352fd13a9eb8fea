import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel

from .analyzer import WorkspaceCheckResult, check_workspace
from .cli_config import (
    OUTPUT_FORMATS,
    DepUnifierConfig,
    create_sample_config,
    get_config,
    load_config,
    load_config_file,
    validate_config_values,
)
from .error_handling import ManifestError, setup_error_handling
from .reporting import DuplicateReporter, result_to_dict
from .structured_logging import configure_logging

__version__ = "1.0.0"

console = Console()


def output_json_results(
    result: WorkspaceCheckResult, output_file: Optional[str] = None
) -> None:
    """Export results as JSON."""
    json_output = json.dumps(result_to_dict(result), indent=2, ensure_ascii=False)

    if output_file:
        with open(output_file, "w", encoding="utf-8") as f:
            f.write(json_output)
        console.print(
            f"✅ Results saved to {output_file}", style="green", soft_wrap=True
        )
    else:
        print(json_output)


def run_check(
    root: Path,
    config: DepUnifierConfig,
    output_format: str,
    output_file: Optional[str],
    verbose: bool,
    quiet: bool,
) -> WorkspaceCheckResult:
    """Check one workspace root and report the outcome."""
    if verbose and not quiet:
        console.print(f"📁 Checking workspace at: {root}", style="blue")

    result = check_workspace(root, config=config)

    if output_format == "json":
        output_json_results(result, output_file)
    elif quiet:
        for name in result.analysis.sorted_duplicates():
            print(name)
    else:
        DuplicateReporter(console).print_check_results(result, verbose=verbose)

    return result


@click.group(invoke_without_command=True)
@click.option("--version", is_flag=True, help="Show version information")
@click.pass_context
def cli(ctx, version):
    """
    🔍 Dep-Unifier: Workspace Duplicate Dependency Checker

    Finds dependencies that workspace members pin independently instead of
    inheriting them from [workspace.dependencies].
    """
    if version:
        console.print(f"Dep-Unifier version {__version__}", style="bold blue")
        ctx.exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help(), markup=False)
        return

    config = get_config()
    configure_logging(
        config.logging.log_level,
        config.logging.enable_json,
        config.logging.log_format,
    )
    setup_error_handling(config.logging.level_number)


@cli.command()
@click.argument(
    "path",
    required=False,
    type=click.Path(exists=True, file_okay=False, readable=True),
)
@click.option(
    "--output-format",
    type=click.Choice(list(OUTPUT_FORMATS), case_sensitive=False),
    help="Output format for results (default from config or console)",
)
@click.option(
    "--output-file",
    "-o",
    type=click.Path(),
    help="Save results to file (JSON format only)",
)
@click.option(
    "--manifest-name",
    help="Manifest file name to look for (default from config or Cargo.toml)",
)
@click.option("--quiet", "-q", is_flag=True, help="Only print duplicated names")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose output with additional details",
)
@click.option(
    "--no-fail",
    is_flag=True,
    help="Report duplicates but exit successfully",
)
def check(
    path: Optional[str],
    output_format: Optional[str],
    output_file: Optional[str],
    manifest_name: Optional[str],
    quiet: bool,
    verbose: bool,
    no_fail: bool,
) -> None:
    """
    Check a workspace for duplicated dependency declarations.

    PATH is the directory holding the root manifest (default: current directory).

    Examples:

      dep-unifier check

      dep-unifier check path/to/workspace --verbose

      dep-unifier check --output-format json -o duplicates.json
    """
    try:
        config = load_config()
        if manifest_name:
            config = replace(
                config, scan=replace(config.scan, manifest_name=manifest_name)
            )

        final_output_format = (output_format or config.scan.output_format).lower()
        final_output_file = output_file or config.scan.output_file
        final_quiet = quiet or config.scan.quiet
        final_verbose = verbose or config.scan.verbose
        fail_on_duplicates = config.scan.fail_on_duplicates and not no_fail

        if final_output_file and final_output_format != "json":
            raise click.ClickException("Output file can only be used with JSON format")

        root = Path(path) if path else Path.cwd()

        if not final_quiet and final_output_format == "console":
            console.print(
                Panel(
                    f"🔍 [bold blue]Dep-Unifier[/bold blue] v{__version__}",
                    border_style="blue",
                )
            )

        result = run_check(
            root,
            config,
            final_output_format,
            final_output_file,
            final_verbose,
            final_quiet,
        )

        if result.has_duplicates and fail_on_duplicates:
            sys.exit(1)

    except click.ClickException:
        raise
    except KeyboardInterrupt:
        Console(stderr=True).print("\n⚠️  Check interrupted by user", style="yellow")
        sys.exit(130)
    except ManifestError as e:
        Console(stderr=True).print(
            f"❌ Error: {e}", style="red", markup=False, soft_wrap=True
        )
        sys.exit(1)
    except Exception as e:
        Console(stderr=True).print(
            f"❌ Unexpected error: {e}", style="red", markup=False, soft_wrap=True
        )
        sys.exit(1)


@cli.group()
def config():
    """Configuration management commands."""
    pass


@config.command("init")
@click.option(
    "--path",
    type=click.Path(),
    default=".dep-unifier.json",
    help="Path where to create the config file",
    show_default=True,
)
@click.option("--force", is_flag=True, help="Overwrite existing config file")
def config_init(path: str, force: bool):
    """Create a sample configuration file."""
    config_path = Path(path)

    if config_path.exists() and not force:
        console.print(f"⚠️  Config file already exists at {config_path}", style="yellow")
        console.print("Use --force to overwrite", style="dim")
        return

    try:
        with open(config_path, "w", encoding="utf-8") as f:
            f.write(create_sample_config())
    except OSError as e:
        raise click.ClickException(f"Failed to create config file: {e}")

    console.print(f"✅ Created configuration file at {config_path}", style="green")


@config.command("show")
def config_show():
    """Show current configuration settings."""
    current_config = get_config()

    console.print(Panel("[bold blue]🔧 Configuration[/bold blue]", border_style="blue"))

    console.print("\n[bold cyan]📊 Check Settings:[/bold cyan]")
    console.print(f"  Manifest Name: {current_config.scan.manifest_name}")
    console.print(f"  Fail on Duplicates: {current_config.scan.fail_on_duplicates}")
    console.print(f"  Output Format: {current_config.scan.output_format}")

    console.print("\n[bold cyan]🔒 Limits:[/bold cyan]")
    console.print(f"  Max File Size: {current_config.security.max_file_size_mb} MB")

    console.print("\n[bold cyan]📝 Logging Settings:[/bold cyan]")
    console.print(f"  Log Level: {current_config.logging.log_level}")
    console.print(f"  JSON Logs: {current_config.logging.enable_json}")


@config.command("validate")
@click.argument("config_file", type=click.Path(exists=True, dir_okay=False))
def config_validate(config_file: str):
    """Validate a configuration file."""
    config_data = load_config_file(Path(config_file))

    if not isinstance(config_data, dict):
        console.print(f"❌ Could not load config from {config_file}", style="red")
        sys.exit(1)

    candidate = DepUnifierConfig()
    try:
        for section_name in ("scan", "security", "logging"):
            section = getattr(candidate, section_name)
            for key, value in config_data.get(section_name, {}).items():
                if not hasattr(section, key):
                    raise ValueError(f"unknown key {section_name}.{key}")
                setattr(section, key, value)
        errors = validate_config_values(candidate)
    except (AttributeError, TypeError, ValueError) as e:
        errors = [str(e)]

    if errors:
        console.print("❌ Configuration validation failed:", style="red")
        for error in errors:
            console.print(f"  • {error}", style="red")
        sys.exit(1)

    console.print(
        f"✅ Configuration file {config_file} is valid", style="green", soft_wrap=True
    )


if __name__ == "__main__":
    cli()
