"""
Version command - displays ctrbench version information
"""

import click

from ctrbench.version.ctrbench_version import CTRBENCH_VERSION


def run_version(verbose: bool = False) -> None:
    """
    Display ctrbench version information.

    Args:
        verbose: If True, show additional details like full hash and date
    """
    if verbose:
        click.echo(f"ctrbench version {CTRBENCH_VERSION.full_version()}")
        click.echo("\nDetailed version information:")
        click.echo(f"  Semantic Version: {CTRBENCH_VERSION}")
        click.echo(f"  Build Date:       {CTRBENCH_VERSION.date_string()}")
        click.echo(f"  Package Hash:     {CTRBENCH_VERSION.hash}")
    else:
        click.echo(f"ctrbench {CTRBENCH_VERSION}")
