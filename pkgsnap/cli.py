#!/usr/bin/env python3

import click

from pkgsnap.commands.snapshot import snapshot_cmd


@click.group()
@click.version_option(package_name='pkgsnap')
def cli():
    """pkgsnap - Immutable snapshots of Debian package sets.

    Import Packages indexes as named snapshots and derive new snapshots
    by pulling packages, with their dependencies, from one snapshot into
    another.
    """
    pass


# Command groups
cli.add_command(snapshot_cmd)


def main():
    cli()

if __name__ == "__main__":
    main()
