"""
Snapshot commands for pkgsnap.

Create, inspect, verify and pull between package snapshots. Every
subcommand supports --json for JSONL output and --debug for verbose logging.
"""

import click
import json
import sys
from functools import wraps
from typing import Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..config import load_config, configure_logging
from ..database import Database, get_db_path
from ..domain import DependencyOptions, Diagnostic, DiagnosticKind
from ..exit_codes import CommandError, INTERRUPTED, get_exit_code_for_exception
from ..services import PullOptions, PullService, SnapshotService

_MARKERS = {
    DiagnosticKind.ADDED: ("[+] ", "green"),
    DiagnosticKind.REMOVED: ("[-] ", "red"),
    DiagnosticKind.UNSATISFIABLE: ("[!] ", "yellow"),
    DiagnosticKind.VERIFICATION_ERROR: ("[!] ", "yellow"),
    DiagnosticKind.LIMIT_REACHED: ("[!] ", "yellow"),
}


def _console() -> Console:
    return Console(soft_wrap=True, highlight=False)


def _fail(error: Exception, output_json: bool):
    """Report an error on stderr and exit with the code mapped to it."""
    exit_code = get_exit_code_for_exception(error)
    if output_json:
        print(json.dumps({
            'error': str(error),
            'type': error.__class__.__name__,
            'exit_code': exit_code,
        }), file=sys.stderr)
    elif isinstance(error, CommandError):
        print(f"Error: {error}", file=sys.stderr)
    else:
        print(f"Command failed: {error}", file=sys.stderr)
    sys.exit(exit_code)


def handle_errors(func):
    """
    Map exceptions raised by a command to stderr output and an exit code.

    click's own exceptions pass through so usage errors keep their format.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except click.ClickException:
            raise
        except KeyboardInterrupt:
            print("Interrupted by user", file=sys.stderr)
            sys.exit(INTERRUPTED)
        except Exception as e:
            _fail(e, kwargs.get('output_json', False))
    return wrapper


def _parse_architectures(value: Optional[str]) -> list:
    if not value:
        return []
    return [arch.strip() for arch in value.split(',') if arch.strip()]


def _dependency_options(config, follow_recommends, follow_suggests, follow_source,
                        follow_all_variants) -> DependencyOptions:
    """Flags switch options on; anything not given falls back to config."""
    base = DependencyOptions.from_config(config)
    return DependencyOptions(
        follow_recommends=follow_recommends or base.follow_recommends,
        follow_suggests=follow_suggests or base.follow_suggests,
        follow_source=follow_source or base.follow_source,
        follow_all_variants=follow_all_variants or base.follow_all_variants,
    )


def dependency_flags(func):
    """Attach the --dep-follow-* options shared by pull and verify."""
    options = [
        click.option('--dep-follow-all-variants', is_flag=True,
                     help='Follow all alternatives of a dependency (a | b)'),
        click.option('--dep-follow-source', is_flag=True,
                     help='Pull source packages along with binaries'),
        click.option('--dep-follow-suggests', is_flag=True,
                     help='Follow Suggests relations'),
        click.option('--dep-follow-recommends', is_flag=True,
                     help='Follow Recommends relations'),
    ]
    for option in options:
        func = option(func)
    return func


@click.group(name='snapshot')
def snapshot_cmd():
    """Manage immutable package snapshots.

    A snapshot is a named, frozen set of packages. New snapshots are
    created by importing Packages index files or by pulling packages
    (with their dependencies) from one snapshot into another.
    """
    pass


@snapshot_cmd.command('pull')
@click.argument('name')
@click.argument('source')
@click.argument('destination')
@click.argument('dependencies', nargs=-1, required=True)
@click.option('--dry-run', is_flag=True, help="Show what would be pulled, don't create the snapshot")
@click.option('--no-deps', is_flag=True, help="Don't process dependencies, pull only the named packages")
@click.option('--no-remove', is_flag=True, help="Don't remove other versions of pulled packages")
@click.option('--all-matches', is_flag=True, help='Pull every matching version, not only the latest')
@click.option('--architectures', '-a', help='Comma-separated list of architectures to process')
@dependency_flags
@click.option('--json', 'output_json', is_flag=True, help='Output as JSONL')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@handle_errors
def pull_handler(
    name: str,
    source: str,
    destination: str,
    dependencies: tuple,
    dry_run: bool,
    no_deps: bool,
    no_remove: bool,
    all_matches: bool,
    architectures: Optional[str],
    dep_follow_recommends: bool,
    dep_follow_suggests: bool,
    dep_follow_source: bool,
    dep_follow_all_variants: bool,
    output_json: bool,
    debug: bool,
):
    """
    Pull packages with their dependencies from SOURCE into snapshot NAME.

    The result is saved as the new snapshot DESTINATION; NAME and SOURCE
    are left untouched. Each DEPENDENCY is a package name, optionally with
    a version relation and architecture.

    Examples:

        # Pull the latest xorg and everything it needs
        pkgsnap snapshot pull wheezy-main wheezy-backports wheezy-new xorg

        # Pin a version, keep other versions in place
        pkgsnap snapshot pull base updates base-new 'nginx (>= 1.2)' --no-remove

        # Only amd64, preview without saving
        pkgsnap snapshot pull base updates base-new 'libc6 {amd64}' -a amd64 --dry-run
    """
    config = load_config()
    configure_logging(config, debug)

    options = PullOptions.from_config(
        config,
        no_deps=no_deps,
        no_remove=no_remove,
        all_matches=all_matches,
        dry_run=dry_run,
        dependency_options=_dependency_options(
            config, dep_follow_recommends, dep_follow_suggests,
            dep_follow_source, dep_follow_all_variants,
        ),
    )
    requested = _parse_architectures(architectures)
    if requested:
        options.architectures = requested

    service = PullService(config=config)
    with Database(config=config) as db:
        progress = service.pull_snapshots(db, name, source, destination, dependencies, options)
        if output_json:
            _pull_json(service, progress, destination, options)
        else:
            _pull_pretty(service, progress, destination, options)


def _drain(service: PullService, progress, on_diagnostic):
    """Run a pull generator to completion, handing each diagnostic over."""
    for diagnostic in progress:
        on_diagnostic(diagnostic)
    return service.last_result


def _count_problems(result) -> int:
    return sum(1 for diagnostic in result.diagnostics if diagnostic.is_problem)


def _pull_pretty(service: PullService, progress, destination: str, options: PullOptions):
    """Rich formatted output for pull."""
    console = _console()

    def show(diagnostic: Diagnostic):
        marker, style = _MARKERS[diagnostic.kind]
        console.print(Text.assemble((marker, style), diagnostic.message))

    result = _drain(service, progress, show)

    console.print()
    if result is not None:
        console.print(
            f"Architectures: {', '.join(result.architectures)}; "
            f"added {len(result.added)}, removed {len(result.removed)}"
        )
        problems = _count_problems(result)
        if problems:
            console.print(f"[yellow]{problems} problem(s) reported above.[/yellow]")
    if options.dry_run:
        console.print("[yellow]Not creating snapshot, as dry run was requested.[/yellow]")
    else:
        console.print(f"[green]Snapshot {destination} successfully created.[/green]")
        console.print(f"You can run 'pkgsnap snapshot show {destination}' to list its packages.")


def _pull_json(service: PullService, progress, destination: str, options: PullOptions):
    """JSONL output for pull."""
    result = _drain(service, progress, lambda d: print(d.to_jsonl(), flush=True))

    summary = {
        'type': 'summary',
        'architectures': result.architectures if result else [],
        'added': len(result.added) if result else 0,
        'removed': len(result.removed) if result else 0,
        'unsatisfied': [str(dep) for dep in result.unsatisfied] if result else [],
        'errors': [str(error) for error in result.errors] if result else [],
        'problems': _count_problems(result) if result else 0,
        'dry_run': options.dry_run,
        'snapshot': None if options.dry_run else destination,
    }
    print(json.dumps(summary), flush=True)


@snapshot_cmd.command('create')
@click.argument('name')
@click.option('--packages', '-p', 'packages_files', multiple=True,
              type=click.Path(exists=True, dir_okay=False),
              help='Debian Packages index to import (.gz/.xz accepted, repeatable)')
@click.option('--json', 'output_json', is_flag=True, help='Output as JSON')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@handle_errors
def create_handler(name: str, packages_files: tuple, output_json: bool, debug: bool):
    """
    Create snapshot NAME, empty or from Packages index files.

    Examples:

        pkgsnap snapshot create empty

        pkgsnap snapshot create wheezy-main -p main/binary-amd64/Packages.gz
    """
    config = load_config()
    configure_logging(config, debug)

    service = SnapshotService(config=config)
    with Database(config=config) as db:
        if packages_files:
            snapshot = service.create_from_packages_files(db, name, packages_files)
        else:
            snapshot = service.create_empty(db, name)

    if output_json:
        print(json.dumps(snapshot.to_dict()))
    else:
        console = _console()
        console.print(f"[green]Snapshot {snapshot.name} successfully created.[/green]")
        console.print(f"{len(snapshot)} packages")


@snapshot_cmd.command('show')
@click.argument('name')
@click.option('--with-packages', is_flag=True, help='List packages in the snapshot')
@click.option('--json', 'output_json', is_flag=True, help='Output as JSON')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@handle_errors
def show_handler(name: str, with_packages: bool, output_json: bool, debug: bool):
    """Show details of snapshot NAME."""
    config = load_config()
    configure_logging(config, debug)

    service = SnapshotService(config=config)
    read_only = get_db_path(config).exists()
    with Database(config=config, read_only=read_only) as db:
        snapshot = service.load(db, name)
        packages = sorted(
            service.load_package_set(db, snapshot),
            key=lambda p: (p.name, p.architecture, p.key),
        ) if with_packages else []

    if output_json:
        data = snapshot.to_dict()
        if with_packages:
            data['packages'] = [p.to_dict() for p in packages]
        print(json.dumps(data, ensure_ascii=False))
        return

    console = _console()
    console.print(f"[bold]Name:[/bold] {snapshot.name}")
    console.print(f"[bold]Created At:[/bold] {snapshot.created_at:%Y-%m-%d %H:%M:%S}")
    console.print(f"[bold]Description:[/bold] {snapshot.description}")
    console.print(f"[bold]Number of packages:[/bold] {len(snapshot)}")
    if snapshot.parents:
        console.print(f"[bold]Sources:[/bold] {', '.join(snapshot.parents)}")

    if with_packages:
        table = Table(title="Packages")
        table.add_column("Package", style="cyan")
        table.add_column("Version")
        table.add_column("Architecture", style="dim")
        for package in packages:
            table.add_row(package.name, package.version, package.architecture)
        console.print(table)


@snapshot_cmd.command('verify')
@click.argument('name')
@click.argument('sources', nargs=-1)
@click.option('--architectures', '-a', help='Comma-separated list of architectures to check')
@dependency_flags
@click.option('--json', 'output_json', is_flag=True, help='Output as JSONL')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@handle_errors
def verify_handler(
    name: str,
    sources: tuple,
    architectures: Optional[str],
    dep_follow_recommends: bool,
    dep_follow_suggests: bool,
    dep_follow_source: bool,
    dep_follow_all_variants: bool,
    output_json: bool,
    debug: bool,
):
    """
    Verify that dependencies of snapshot NAME are satisfied.

    Packages of NAME plus those of every SOURCES snapshot are searched when
    resolving dependencies.
    """
    config = load_config()
    configure_logging(config, debug)

    dependency_options = _dependency_options(
        config, dep_follow_recommends, dep_follow_suggests,
        dep_follow_source, dep_follow_all_variants,
    )
    service = SnapshotService(config=config)
    read_only = get_db_path(config).exists()
    with Database(config=config, read_only=read_only) as db:
        result = service.verify(
            db, name, sources, dependency_options, _parse_architectures(architectures) or None
        )

    missing = sorted(str(dep) for dep in result.missing)

    if output_json:
        for dep in missing:
            print(json.dumps({'type': 'missing', 'dependency': dep}))
        for error in result.errors:
            print(json.dumps({'type': 'error', 'package': error.package, 'message': str(error)}))
        print(json.dumps({'type': 'summary', 'missing': len(missing), 'errors': len(result.errors)}))
        return

    console = _console()
    for error in result.errors:
        console.print(Text.assemble(("[!] ", "yellow"), str(error)))
    if missing:
        console.print(f"Missing dependencies ({len(missing)}):")
        for dep in missing:
            console.print(f"  {dep}", markup=False)
    else:
        console.print("[green]All dependencies are satisfied.[/green]")
