"""
Main CLI entry point for AdComposer
"""

import click

from .. import __version__
from .chat import chat
from .versions import activate_version, list_versions


@click.group()
@click.version_option(version=__version__)
def cli():
    """
    AdComposer - LLM-driven audio ad composition

    Generate and refine voice, music and sound effects drafts for an ad,
    and manage their version streams.
    """
    pass


# Register commands
cli.add_command(chat)
cli.add_command(list_versions)
cli.add_command(activate_version)


if __name__ == '__main__':
    cli()
